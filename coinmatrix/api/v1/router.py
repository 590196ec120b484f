from fastapi import APIRouter

from coinmatrix.api.v1.endpoints.auth import router as auth_router
from coinmatrix.api.v1.endpoints.bookmarks import router as bookmarks_router
from coinmatrix.api.v1.endpoints.markets import router as markets_router
from coinmatrix.api.v1.endpoints.sentiment import router as sentiment_router

router = APIRouter(prefix="/api/v1")
router.include_router(auth_router)
router.include_router(markets_router)
router.include_router(bookmarks_router)
router.include_router(sentiment_router)
