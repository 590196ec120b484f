import re

from coinmatrix.services.upstream import UpstreamClient
from coinmatrix.utils.caching import (
    GLOBAL_KEY,
    MARKETS_KEY,
    TRENDING_KEY,
    CacheOrchestrator,
    chart_cache_key,
    cmc_detail_cache_key,
)

SYMBOL_PATTERN = re.compile(r"^[A-Za-z0-9]{1,20}$")


def normalize_days(days: str | int) -> str:
    """Chart range: a positive whole number of days or ``max``."""
    value = str(days).strip().lower()
    if value == "max":
        return value
    if not value.isdigit() or int(value) < 1:
        raise ValueError("days must be a positive integer or 'max'")
    return str(int(value))


def normalize_symbol(symbol: str) -> str:
    if not SYMBOL_PATTERN.match(symbol):
        raise ValueError("symbol must be 1-20 letters or digits")
    return symbol.upper()


class MarketService:
    """Maps each market dataset to its cache key and fetcher."""

    def __init__(
        self,
        orchestrator: CacheOrchestrator,
        upstream: UpstreamClient,
        max_age: float,
        page_size: int = 50,
    ):
        self.orchestrator = orchestrator
        self.upstream = upstream
        self.max_age = max_age
        self.page_size = page_size

    async def refresh_markets(self) -> list[dict]:
        return await self.orchestrator.get_or_refresh(
            MARKETS_KEY, self.max_age, self.upstream.fetch_markets
        )

    async def get_markets(self, ids: list[str] | None = None) -> list[dict]:
        data = await self.refresh_markets()
        if ids:
            wanted = set(ids)
            return [coin for coin in data if coin.get("id") in wanted]
        return data[: self.page_size]

    async def get_global(self) -> dict:
        return await self.orchestrator.get_or_refresh(
            GLOBAL_KEY, self.max_age, self.upstream.fetch_global
        )

    async def get_trending(self) -> list[dict]:
        return await self.orchestrator.get_or_refresh(
            TRENDING_KEY, self.max_age, self.upstream.fetch_trending
        )

    async def get_price(self, ids: str, vs_currencies: str) -> dict:
        # Simple prices are passed straight through without caching.
        return await self.upstream.fetch_simple_price(ids, vs_currencies)

    async def get_coin_chart(self, coin_id: str, days: str | int) -> dict:
        days = normalize_days(days)
        return await self.orchestrator.get_or_refresh(
            chart_cache_key(coin_id, days),
            self.max_age,
            lambda: self.upstream.fetch_coin_chart(coin_id, days),
        )

    async def get_cmc_detail(self, symbol: str) -> dict:
        symbol = normalize_symbol(symbol)
        return await self.orchestrator.get_or_refresh(
            cmc_detail_cache_key(symbol),
            self.max_age,
            lambda: self.upstream.fetch_cmc_detail(symbol),
        )
