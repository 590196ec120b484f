import os
import tempfile
from datetime import datetime, timedelta, timezone

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./coinmatrix-test.db")
os.environ.setdefault("SECRET_KEY", "coinmatrix-test-secret-key-0123456789abcdef")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="coinmatrix-logs-"))

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from coinmatrix.core.dependencies import get_db, get_market_service
from coinmatrix.db import Base
from coinmatrix.services.market import MarketService
from coinmatrix.services.upstream import UpstreamClient
from coinmatrix.utils.caching import CacheOrchestrator, CacheStore
from main import app

COINGECKO_URL = "https://api.coingecko.test/api/v3"
CMC_URL = "https://pro-api.coinmarketcap.test"
MAX_AGE = 300


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class FakeUpstream:
    """Canned responses for the market data providers, keyed by URL path."""

    def __init__(self):
        self.routes = {}
        self.requests: list[httpx.Request] = []

    def add(self, path, json=None, status_code=200, text=None, error=None):
        self.routes[path] = (status_code, json, text, error)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        status_code, body, text, error = self.routes[request.url.path]
        if error is not None:
            raise error("upstream unreachable", request=request)
        if text is not None:
            return httpx.Response(status_code, text=text)
        return httpx.Response(status_code, json=body)

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    def last(self, path: str) -> httpx.Request:
        return [r for r in self.requests if r.url.path == path][-1]


def coin(coin_id: str, rank: int) -> dict:
    return {
        "id": coin_id,
        "symbol": coin_id[:3],
        "name": coin_id.title(),
        "market_cap_rank": rank,
        "current_price": 100.0 / rank,
    }


@pytest.fixture
def market_list():
    coins = [coin("bitcoin", 1), coin("ethereum", 2), coin("usd-coin", 3)]
    coins += [coin(f"coin{i}", i) for i in range(4, 101)]
    return coins


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_factory(tmp_path):
    path = tmp_path / "coinmatrix.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def store(session_factory, clock):
    return CacheStore(session_factory, clock=clock)


@pytest.fixture
def orchestrator(store):
    return CacheOrchestrator(store)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def upstream_client(upstream):
    http = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
    return UpstreamClient(
        http, coingecko_url=COINGECKO_URL, cmc_url=CMC_URL, cmc_api_key="test-cmc-key"
    )


@pytest.fixture
def market_service(orchestrator, upstream_client):
    return MarketService(orchestrator, upstream_client, max_age=MAX_AGE, page_size=50)


@pytest.fixture
def client(session_factory, market_service):
    """TestClient wired to the per-test database and fake providers."""

    async def override_get_db():
        async with session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_market_service] = lambda: market_service
    yield TestClient(app)
    app.dependency_overrides.clear()
