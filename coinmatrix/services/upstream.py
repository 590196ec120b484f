"""HTTP clients for the CoinGecko and CoinMarketCap APIs.

Fetchers only produce data. Caching is decided by the caller.
"""

import asyncio
from typing import Any
from urllib.parse import quote

import httpx

from coinmatrix.core.config import settings
from coinmatrix.core.exceptions.errors import UpstreamError
from coinmatrix.utils.logging import get_logger

logger = get_logger()

MARKETS_PARAMS = {
    "vs_currency": "usd",
    "order": "market_cap_desc",
    "per_page": 100,
    "page": 1,
    "sparkline": "true",
    "price_change_percentage": "1h,24h,7d",
}


def build_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        headers={"Accept": "application/json"},
    )


def _expect(data: Any, kind: type, what: str) -> Any:
    if not isinstance(data, kind):
        name = "JSON array" if kind is list else "JSON object"
        raise UpstreamError(f"{what} is not a {name}")
    return data


class UpstreamClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        coingecko_url: str = settings.COINGECKO_BASE_URL,
        cmc_url: str = settings.CMC_BASE_URL,
        cmc_api_key: str = settings.CMC_API_KEY,
    ):
        self.http = http
        self.coingecko_url = coingecko_url.rstrip("/")
        self.cmc_url = cmc_url.rstrip("/")
        self.cmc_api_key = cmc_api_key

    async def _get_json(
        self,
        url: str,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> Any:
        try:
            resp = await self.http.get(url, params=params, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"{url} returned {e.response.status_code}",
                url=url,
                upstream_status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Request to {url} failed: {e!r}", url=url) from e

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(f"{url} returned a malformed body", url=url) from e

    async def _coingecko(self, path: str, params: dict | None = None) -> Any:
        return await self._get_json(f"{self.coingecko_url}{path}", params=params)

    async def _cmc(self, path: str, params: dict) -> Any:
        return await self._get_json(
            f"{self.cmc_url}{path}",
            params=params,
            headers={"X-CMC_PRO_API_KEY": self.cmc_api_key},
        )

    async def fetch_markets(self) -> list[dict]:
        """Top 100 coins by market cap with sparkline and 1h/24h/7d change."""
        data = await self._coingecko("/coins/markets", params=MARKETS_PARAMS)
        return _expect(data, list, "Market list")

    async def fetch_global(self) -> dict:
        data = await self._coingecko("/global")
        return _expect(data, dict, "Global market data")

    async def fetch_trending(self) -> list[dict]:
        trending = await self._coingecko("/search/trending")
        try:
            coin_ids = [coin["item"]["id"] for coin in trending["coins"]]
        except (KeyError, TypeError) as e:
            raise UpstreamError("Trending response is missing coin ids") from e
        data = await self._coingecko(
            "/coins/markets",
            params={"vs_currency": "usd", "ids": ",".join(coin_ids)},
        )
        return _expect(data, list, "Trending market list")

    async def fetch_simple_price(self, ids: str, vs_currencies: str) -> dict:
        data = await self._coingecko(
            "/simple/price", params={"ids": ids, "vs_currencies": vs_currencies}
        )
        return _expect(data, dict, "Price data")

    async def fetch_coin_chart(self, coin_id: str, days: str | int) -> dict:
        data = await self._coingecko(
            f"/coins/{quote(coin_id, safe='')}/market_chart",
            params={"vs_currency": "usd", "days": days},
        )
        return _expect(data, dict, "Chart data")

    async def fetch_cmc_detail(self, symbol: str) -> dict:
        """Metadata and latest quote for ``symbol``, fetched in parallel and merged.

        Either call failing fails the whole fetch.
        """
        symbol = symbol.upper()
        info, quotes = await asyncio.gather(
            self._cmc("/v2/cryptocurrency/info", {"symbol": symbol}),
            self._cmc("/v2/cryptocurrency/quotes/latest", {"symbol": symbol}),
        )
        try:
            coin_info = info["data"][symbol][0]
            coin_data = quotes["data"][symbol][0]
            return {
                **coin_data,
                "logo": coin_info["logo"],
                "quote": coin_data["quote"]["USD"],
            }
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamError(f"CoinMarketCap has no usable data for {symbol}") from e
