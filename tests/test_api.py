import jwt
import pytest
from fastapi.testclient import TestClient

from coinmatrix.core.config import settings
from coinmatrix.services.market import MarketService
from coinmatrix.services.scheduler import MARKETS_REFRESH_JOB_ID
from generate_secret import generate_secret_key
from main import app

CG = "/api/v3"


def signup(client, username="satoshi", email=None, password="Password123!"):
    return client.post(
        "/api/v1/auth/signup",
        json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
        },
    )


def auth_headers(client, username="satoshi"):
    token = signup(client, username).json()["data"]["token"]
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "healthy"


@pytest.fixture
def lifespan_db(session_factory, monkeypatch):
    async def tables_ready():
        pass

    monkeypatch.setattr("coinmatrix.core.lifespan.init_db", tables_ready)
    monkeypatch.setattr("coinmatrix.core.lifespan.SessionLocal", session_factory)


def test_lifespan_wires_market_service(lifespan_db):
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert isinstance(app.state.market_service, MarketService)
        assert not app.state.refresher.running


def test_lifespan_starts_and_stops_scheduler(lifespan_db, monkeypatch):
    monkeypatch.setattr(settings, "SCHEDULER_ENABLED", True)
    monkeypatch.setattr(settings, "REFRESH_ON_STARTUP", False)

    with TestClient(app):
        refresher = app.state.refresher
        assert refresher.running
        assert [job.id for job in refresher.scheduler.get_jobs()] == [
            MARKETS_REFRESH_JOB_ID
        ]

    assert not refresher.running


# ---- Auth ----


def test_signup_returns_token(client):
    resp = signup(client)
    assert resp.status_code == 201
    data = resp.json()
    assert data["success"] is True
    assert data["data"]["username"] == "satoshi"

    claims = jwt.decode(
        data["data"]["token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
    )
    assert claims["username"] == "satoshi"
    assert isinstance(claims["id"], int)


def test_duplicate_username_or_email_is_rejected(client):
    signup(client)
    resp = signup(client, username="satoshi", email="other@example.com")
    assert resp.status_code == 409
    assert "already exists" in resp.json()["message"]

    resp = signup(client, username="hal", email="satoshi@example.com")
    assert resp.status_code == 409


def test_login_and_me(client):
    signup(client)

    bad = client.post(
        "/api/v1/auth/login", json={"username": "satoshi", "password": "wrong-pass"}
    )
    assert bad.status_code == 401

    resp = client.post(
        "/api/v1/auth/login", json={"username": "satoshi", "password": "Password123!"}
    )
    assert resp.status_code == 200
    token = resp.json()["data"]["token"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["username"] == "satoshi"


def test_protected_routes_reject_missing_and_bad_tokens(client):
    missing = client.get("/api/v1/bookmarks")
    assert missing.status_code == 401
    assert missing.json()["message"] == "No token provided."

    bad = client.get(
        "/api/v1/bookmarks", headers={"Authorization": "Bearer not-a-real-token"}
    )
    assert bad.status_code == 403
    assert bad.json()["message"] == "Token is not valid."

    forged = jwt.encode(
        {"id": 1, "username": "satoshi"}, generate_secret_key(), algorithm="HS256"
    )
    resp = client.get(
        "/api/v1/bookmarks", headers={"Authorization": f"Bearer {forged}"}
    )
    assert resp.status_code == 403


# ---- Bookmarks ----


def test_bookmark_lifecycle(client):
    headers = auth_headers(client)

    for _ in range(2):
        resp = client.post(
            "/api/v1/bookmarks", json={"coinId": "bitcoin"}, headers=headers
        )
        assert resp.status_code == 201
    client.post("/api/v1/bookmarks", json={"coinId": "ethereum"}, headers=headers)

    listed = client.get("/api/v1/bookmarks", headers=headers)
    assert listed.json()["data"] == ["bitcoin", "ethereum"]

    removed = client.delete("/api/v1/bookmarks/bitcoin", headers=headers)
    assert removed.status_code == 200
    again = client.delete("/api/v1/bookmarks/bitcoin", headers=headers)
    assert again.status_code == 404

    assert client.get("/api/v1/bookmarks", headers=headers).json()["data"] == [
        "ethereum"
    ]


def test_bookmarks_are_per_user(client):
    alice = auth_headers(client, "alice")
    bob = auth_headers(client, "bob")
    client.post("/api/v1/bookmarks", json={"coinId": "solana"}, headers=alice)

    assert client.get("/api/v1/bookmarks", headers=bob).json()["data"] == []


def test_bookmark_requires_coin_id(client):
    resp = client.post("/api/v1/bookmarks", json={}, headers=auth_headers(client))
    assert resp.status_code == 422


# ---- Sentiment ----


def test_sentiment_votes_are_counted_and_replaced(client):
    alice = auth_headers(client, "alice")
    bob = auth_headers(client, "bob")

    empty = client.get("/api/v1/sentiment/bitcoin").json()["data"]
    assert empty == {"bullish": 0, "bearish": 0}

    assert (
        client.post(
            "/api/v1/sentiment", json={"coinId": "bitcoin", "vote": 1}, headers=alice
        ).status_code
        == 201
    )
    client.post("/api/v1/sentiment", json={"coinId": "bitcoin", "vote": -1}, headers=bob)
    assert client.get("/api/v1/sentiment/bitcoin").json()["data"] == {
        "bullish": 1,
        "bearish": 1,
    }

    client.post("/api/v1/sentiment", json={"coinId": "bitcoin", "vote": -1}, headers=alice)
    assert client.get("/api/v1/sentiment/bitcoin").json()["data"] == {
        "bullish": 0,
        "bearish": 2,
    }

    mine = client.get("/api/v1/my-vote/bitcoin", headers=alice)
    assert mine.json()["data"] == {"vote": -1}
    none_yet = client.get("/api/v1/my-vote/ethereum", headers=alice)
    assert none_yet.json()["data"] == {"vote": None}


@pytest.mark.parametrize("vote", [0, 2, -5])
def test_sentiment_rejects_invalid_votes(client, vote):
    resp = client.post(
        "/api/v1/sentiment",
        json={"coinId": "bitcoin", "vote": vote},
        headers=auth_headers(client),
    )
    assert resp.status_code == 422


# ---- Market data ----


def test_markets_are_served_from_cache(client, upstream, market_list):
    upstream.add(f"{CG}/coins/markets", json=market_list)

    first = client.get("/api/v1/markets")
    assert first.status_code == 200
    assert len(first.json()["data"]) == 50

    second = client.get("/api/v1/markets")
    assert second.json()["data"] == first.json()["data"]
    assert upstream.count(f"{CG}/coins/markets") == 1


def test_markets_filter_by_ids(client, upstream, market_list):
    upstream.add(f"{CG}/coins/markets", json=market_list)

    resp = client.get("/api/v1/markets", params={"ids": "usd-coin,coin99,unknown"})

    assert [c["id"] for c in resp.json()["data"]] == ["usd-coin", "coin99"]


def test_upstream_failure_is_an_explicit_error(client, upstream):
    upstream.add(f"{CG}/coins/markets", json={"error": "down"}, status_code=500)

    resp = client.get("/api/v1/markets")

    assert resp.status_code == 502
    body = resp.json()
    assert body["success"] is False
    assert body["data"]["detail"]


def test_global_and_trending(client, upstream):
    upstream.add(f"{CG}/global", json={"data": {"active_cryptocurrencies": 10000}})
    upstream.add(f"{CG}/search/trending", json={"coins": [{"item": {"id": "pepe"}}]})
    upstream.add(f"{CG}/coins/markets", json=[{"id": "pepe"}])

    glob = client.get("/api/v1/global")
    assert glob.json()["data"]["data"]["active_cryptocurrencies"] == 10000
    trending = client.get("/api/v1/trending")
    assert trending.json()["data"] == [{"id": "pepe"}]


def test_price_requires_both_params(client, upstream):
    upstream.add(f"{CG}/simple/price", json={"bitcoin": {"usd": 64000}})

    assert client.get("/api/v1/price", params={"ids": "bitcoin"}).status_code == 400

    for _ in range(2):
        resp = client.get(
            "/api/v1/price", params={"ids": "bitcoin", "vs_currencies": "usd"}
        )
        assert resp.json()["data"] == {"bitcoin": {"usd": 64000}}
    # not cached
    assert upstream.count(f"{CG}/simple/price") == 2


def test_coin_chart_is_cached_per_range(client, upstream):
    upstream.add(f"{CG}/coins/bitcoin/market_chart", json={"prices": [[0, 1.0]]})

    resp = client.get("/api/v1/coin/bitcoin/chart", params={"days": "7"})
    assert resp.status_code == 200
    client.get("/api/v1/coin/bitcoin/chart", params={"days": "7"})
    client.get("/api/v1/coin/bitcoin/chart", params={"days": "30"})

    assert upstream.count(f"{CG}/coins/bitcoin/market_chart") == 2


def test_coin_chart_rejects_bad_range(client):
    resp = client.get("/api/v1/coin/bitcoin/chart", params={"days": "soon"})
    assert resp.status_code == 400


def test_cmc_detail_route(client, upstream):
    upstream.add(
        "/v2/cryptocurrency/info",
        json={"data": {"ETH": [{"logo": "https://img.test/eth.png"}]}},
    )
    upstream.add(
        "/v2/cryptocurrency/quotes/latest",
        json={"data": {"ETH": [{"name": "Ethereum", "quote": {"USD": {"price": 3000}}}]}},
    )

    resp = client.get("/api/v1/cmc/coin/eth")

    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "name": "Ethereum",
        "logo": "https://img.test/eth.png",
        "quote": {"price": 3000},
    }
