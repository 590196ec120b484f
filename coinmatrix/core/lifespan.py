from contextlib import asynccontextmanager
from fastapi import FastAPI

from coinmatrix.core.config import settings
from coinmatrix.db.session import SessionLocal, init_db
from coinmatrix.services.market import MarketService
from coinmatrix.services.scheduler import MarketRefreshScheduler
from coinmatrix.services.upstream import UpstreamClient, build_http_client
from coinmatrix.utils.caching import CacheOrchestrator, CacheStore
from coinmatrix.utils.logging import get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = get_logger()
    # Startup
    await init_db()
    http_client = build_http_client()
    market_service = MarketService(
        orchestrator=CacheOrchestrator(CacheStore(SessionLocal)),
        upstream=UpstreamClient(http_client),
        max_age=settings.cache_max_age_seconds,
        page_size=settings.MARKETS_PAGE_SIZE,
    )
    app.state.market_service = market_service

    refresher = MarketRefreshScheduler(
        market_service, interval_minutes=settings.REFRESH_INTERVAL_MINUTES
    )
    app.state.refresher = refresher
    if settings.SCHEDULER_ENABLED:
        refresher.start(run_immediately=settings.REFRESH_ON_STARTUP)
    logger.info(f"Startup: {app.title} v{app.version} starting...")
    yield
    # Shutdown
    await refresher.shutdown()
    await http_client.aclose()
    logger.info("Shutdown: App shutting down...")
