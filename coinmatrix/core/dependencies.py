from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from coinmatrix.db.session import SessionLocal
from coinmatrix.services.market import MarketService
from coinmatrix.utils.logging import get_logger

logger = get_logger()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.exception(f"Database transaction rolled back: {e}")
            raise


DBDependency = Annotated[AsyncSession, Depends(get_db)]


def get_market_service(request: Request) -> MarketService:
    return request.app.state.market_service


MarketServiceDependency = Annotated[MarketService, Depends(get_market_service)]
