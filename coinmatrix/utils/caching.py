"""Cache-through access to upstream market data.

Every externally sourced dataset is stored as one row of ``api_cache`` keyed
by a deterministic string. ``CacheOrchestrator.get_or_refresh`` is the only
path that writes those rows: it serves a row younger than ``max_age`` or runs
the dataset's fetcher, persists the result and returns it.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any, Awaitable, Callable, NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coinmatrix.core.exceptions.errors import StorageError
from coinmatrix.db.models.cache import CacheEntry
from coinmatrix.db.session import dialect_insert
from coinmatrix.utils.logging import get_logger

logger = get_logger()

Fetcher = Callable[[], Awaitable[Any]]
Clock = Callable[[], datetime]

MARKETS_KEY = "markets-100"
GLOBAL_KEY = "globalData"
TRENDING_KEY = "trendingData"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_cache_key(dataset: str, *params: Any) -> str:
    """Join a dataset name and its parameters with ``-``.

    ``make_cache_key("markets-100")`` is the bare name,
    ``make_cache_key("cg-chart", "bitcoin", 7)`` is ``"cg-chart-bitcoin-7"``.
    """
    if not dataset:
        raise ValueError("Cache key needs a dataset name")
    return "-".join([dataset, *(str(param) for param in params)])


def chart_cache_key(coin_id: str, days: str | int) -> str:
    return make_cache_key("cg-chart", coin_id, days)


def cmc_detail_cache_key(symbol: str) -> str:
    return make_cache_key("cmc-detail", symbol.upper())


class CachedPayload(NamedTuple):
    data: Any
    cached_at: datetime


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they are always written in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CacheStore:
    """Durable key -> JSON payload table with upsert semantics.

    Each operation opens its own session, so concurrent request handlers and
    the refresh scheduler never share one.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def read(self, key: str) -> Optional[CachedPayload]:
        """Return the stored entry for ``key`` regardless of its age."""
        stmt = select(CacheEntry.data, CacheEntry.cached_at).where(
            CacheEntry.cache_key == key
        )
        return await self._fetch_one(key, stmt)

    async def read_fresh(self, key: str, max_age: float) -> Optional[CachedPayload]:
        """Return the entry for ``key`` only if it was written less than ``max_age`` seconds ago."""
        threshold = self._clock() - timedelta(seconds=max_age)
        stmt = select(CacheEntry.data, CacheEntry.cached_at).where(
            CacheEntry.cache_key == key, CacheEntry.cached_at > threshold
        )
        return await self._fetch_one(key, stmt)

    async def upsert(self, key: str, payload: Any) -> datetime:
        """Insert or replace the row for ``key``; returns the new ``cached_at``."""
        cached_at = self._clock()
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    stmt = dialect_insert(session, CacheEntry).values(
                        cache_key=key, data=payload, cached_at=cached_at
                    )
                    stmt = stmt.on_conflict_do_update(
                        index_elements=["cache_key"],
                        set_={
                            "data": stmt.excluded.data,
                            "cached_at": stmt.excluded.cached_at,
                        },
                    )
                    await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not write cache entry '{key}': {exc}") from exc
        return cached_at

    async def _fetch_one(self, key: str, stmt) -> Optional[CachedPayload]:
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).first()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not read cache entry '{key}': {exc}") from exc
        if row is None:
            return None
        return CachedPayload(data=row.data, cached_at=_as_utc(row.cached_at))


class CacheOrchestrator:
    """Serve fresh-enough cached data or fetch, persist and return new data.

    Concurrent misses on one key share a single in-flight refresh. A failed
    refresh writes nothing and is not remembered, so the next caller retries.
    """

    def __init__(self, store: CacheStore):
        self.store = store
        self._inflight: dict[str, asyncio.Future] = {}

    async def get_or_refresh(self, key: str, max_age: float, fetcher: Fetcher) -> Any:
        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug(f"Joining in-flight refresh for '{key}'")
            return await asyncio.shield(pending)

        entry = await self.store.read_fresh(key, max_age)
        if entry is not None:
            logger.debug(f"Cache hit for '{key}' (cached at {entry.cached_at})")
            return entry.data

        # another caller may have started a refresh while we were reading
        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._refresh(key, fetcher))
            self._inflight[key] = pending
            pending.add_done_callback(partial(self._forget, key))
        return await asyncio.shield(pending)

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    def _forget(self, key: str, task: asyncio.Future) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Every waiter may have been cancelled; mark the failure as retrieved
        if not task.cancelled():
            task.exception()

    async def _refresh(self, key: str, fetcher: Fetcher) -> Any:
        logger.info(f"Cache miss for '{key}', fetching from upstream")
        try:
            payload = await fetcher()
        except Exception as exc:
            logger.warning(f"Refresh of '{key}' failed, nothing cached: {exc}")
            raise
        await self.store.upsert(key, payload)
        logger.info(f"Cached fresh data for '{key}'")
        return payload
