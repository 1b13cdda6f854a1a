"""Middleware tests: request ID, rate limiting, CORS, error rendering."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from trivia.config import get_settings
from trivia.errors import LeagueFull
from trivia.middleware import setup_middleware


class FakeRateLimitRedis:
    """Counts INCRs per key the way the rate limiter's pipeline uses them."""

    def __init__(self, fail: bool = False) -> None:
        self.counts: dict[str, int] = {}
        self.fail = fail

    def pipeline(self):
        redis = self
        pipe = MagicMock()
        ops = []
        pipe.incr.side_effect = lambda key: ops.append(key)

        async def execute():
            if redis.fail:
                raise RedisConnectionError("down")
            key = ops[0]
            redis.counts[key] = redis.counts.get(key, 0) + 1
            return [redis.counts[key], True]

        pipe.execute = execute
        return pipe


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_no_rate_limit_without_redis(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(client: AsyncClient) -> None:
    """One request past the window budget returns 429 with Retry-After."""
    limit = get_settings().rate_limit_requests
    with patch("trivia.middleware.rate_limit.get_redis", return_value=FakeRateLimitRedis()):
        for _ in range(limit):
            ok = await client.get("/version")
        blocked = await client.get("/version")

    assert ok.status_code == 200
    assert ok.headers["x-ratelimit-remaining"] == "0"
    assert blocked.status_code == 429
    assert blocked.json()["code"] == "rate_limited"
    assert "retry-after" in blocked.headers


@pytest.mark.asyncio
async def test_health_exempt_from_rate_limit(client: AsyncClient) -> None:
    fake = FakeRateLimitRedis()
    with patch("trivia.middleware.rate_limit.get_redis", return_value=fake):
        for _ in range(get_settings().rate_limit_requests + 5):
            response = await client.get("/health")
            assert response.status_code == 200
    assert fake.counts == {}


@pytest.mark.asyncio
async def test_redis_error_passes_through(client: AsyncClient) -> None:
    with patch("trivia.middleware.rate_limit.get_redis", return_value=FakeRateLimitRedis(fail=True)):
        response = await client.get("/version")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    """CORS preflight returns access-control-allow-origin for configured origin."""
    response = await client.options(
        "/health",
        headers={
            "Origin": "http://localhost:8081",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:8081"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_invalid_token_rejected(client: AsyncClient) -> None:
    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["code"] == "not_authenticated"


@pytest.mark.asyncio
async def test_expired_token_rejected(client: AsyncClient) -> None:
    from trivia.auth.jwt import create_access_token

    token = create_access_token("user-1", expires_in_minutes=-5)
    response = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token has expired"


class TestErrorRendering:
    """Error handlers on a bare app with the same middleware stack."""

    @pytest.fixture
    def app(self) -> FastAPI:
        app = FastAPI()
        setup_middleware(app, get_settings())

        @app.get("/domain")
        async def domain_error() -> None:
            raise LeagueFull()

        @app.get("/crash")
        async def crash() -> None:
            raise RuntimeError("boom")

        return app

    @pytest.mark.asyncio
    async def test_domain_error_shape(self, app: FastAPI) -> None:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/domain")
        assert response.status_code == 409
        assert response.json() == {"detail": "League is full", "code": "league_full"}

    @pytest.mark.asyncio
    async def test_unhandled_error_is_json_500(self, app: FastAPI) -> None:
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/crash")
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
