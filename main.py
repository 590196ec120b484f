from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coinmatrix.api.v1.router import router as v1_router
from coinmatrix.core.config import settings
from coinmatrix.core.exceptions.handlers import register_exception_handlers
from coinmatrix.core.lifespan import lifespan
from coinmatrix.core.logging import setup_early_logging
from coinmatrix.core.middlewares import LogRequestsMiddleware
from coinmatrix.core.openapi import custom_openapi
from coinmatrix.core.rate_limiting import setup_rate_limiting
from coinmatrix.core.responses import send_success

# Setup early logging for startup errors
setup_early_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.PROJECT_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Signup, login and token checks"},
        {"name": "Markets", "description": "Cached market data"},
        {"name": "Bookmarks", "description": "Per-user coin bookmarks"},
        {"name": "Sentiment", "description": "Bullish/bearish voting"},
    ],
)

app.openapi = lambda: custom_openapi(app)

setup_rate_limiting(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LogRequestsMiddleware)

register_exception_handlers(app)

app.include_router(v1_router)


@app.get("/health")
async def health_check():
    return send_success(
        message="OK", data={"status": "healthy", "version": settings.PROJECT_VERSION}
    )
