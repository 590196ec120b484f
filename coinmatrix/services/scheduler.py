"""
Periodic refresh of the default market list using APScheduler.
"""
import asyncio
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from coinmatrix.services.market import MarketService
from coinmatrix.utils.logging import get_logger

logger = get_logger()

MARKETS_REFRESH_JOB_ID = "refresh-markets"


class MarketRefreshScheduler:
    """Keeps the highest-traffic dataset warm independent of request traffic.

    The job goes through the same cache path as requests, so a tick right
    after a request-driven refresh is served from the cache.
    """

    def __init__(
        self,
        market_service: MarketService,
        interval_minutes: int = 5,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.market_service = market_service
        self.interval_minutes = interval_minutes
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    async def refresh_markets(self) -> bool:
        """Run one refresh. Failures are logged, never raised."""
        logger.info("Running scheduled job: refreshing market data...")
        try:
            await self.market_service.refresh_markets()
        except Exception as e:
            logger.error(f"Scheduled market data refresh failed: {e}")
            return False
        logger.info("Market data refreshed successfully.")
        return True

    def start(self, run_immediately: bool = False):
        """Start the scheduler. Must be called from a running event loop."""
        if self.scheduler.running:
            logger.debug("Scheduler already running")
            return
        job_options = {}
        if run_immediately:
            # next_run_time=None would add the job paused
            job_options["next_run_time"] = datetime.now(timezone.utc)
        self.scheduler.add_job(
            self.refresh_markets,
            IntervalTrigger(minutes=self.interval_minutes),
            id=MARKETS_REFRESH_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **job_options,
        )
        self.scheduler.start()
        logger.info(
            f"✅ Scheduler started: markets refresh every {self.interval_minutes} min"
        )

    async def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # the asyncio scheduler stops on the next loop iteration
            await asyncio.sleep(0)
            logger.info("Scheduler stopped")
