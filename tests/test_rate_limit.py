"""
Tests for Redis-backed rate limiting and the 429 dependency.

All Redis interactions are mocked -- no running Redis server required.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from phenotype_platform.api.deps import get_rate_limit_service
from phenotype_platform.api.errors import register_error_handlers
from phenotype_platform.api.middleware.rate_limit import (
    client_identifier,
    rate_limit_exceeded_detail,
    require_rate_limit,
)
from phenotype_platform.rate_limit import (
    LimiterKind,
    RateLimitResult,
    RateLimitService,
    check_rate_limit,
)
from phenotype_platform.settings import Settings


# -----------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------


def _make_mock_redis(count: int = 1) -> AsyncMock:
    """Create a mock Redis client whose INCR returns *count*."""
    mock = AsyncMock()
    mock.incr = AsyncMock(return_value=count)
    mock.expire = AsyncMock(return_value=True)
    mock.ping = AsyncMock(return_value=True)
    return mock


def _settings(**overrides) -> Settings:
    values = {
        "environment": "development",
        "redis_url": None,
        "upstash_redis_rest_url": None,
        "upstash_redis_rest_token": None,
    }
    values.update(overrides)
    return Settings(**values)


def _request(headers: dict[str, str], client: tuple[str, int] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


# -----------------------------------------------------------------------
# check_rate_limit
# -----------------------------------------------------------------------


class TestCheckRateLimit:

    @pytest.mark.asyncio
    async def test_first_request_sets_expiry(self) -> None:
        redis_mock = _make_mock_redis(count=1)

        result = await check_rate_limit(redis_mock, "1.2.3.4", limit=10, now=7200.5)

        assert result == RateLimitResult(
            success=True, limit=10, remaining=9, reset=10_800_000
        )
        redis_mock.incr.assert_awaited_once_with("ratelimit:1.2.3.4:2")
        redis_mock.expire.assert_awaited_once_with("ratelimit:1.2.3.4:2", 3600)

    @pytest.mark.asyncio
    async def test_later_requests_keep_expiry(self) -> None:
        redis_mock = _make_mock_redis(count=4)

        result = await check_rate_limit(redis_mock, "1.2.3.4", limit=10)

        assert result.success is True
        assert result.remaining == 6
        redis_mock.expire.assert_not_called()

    @pytest.mark.asyncio
    async def test_blocks_over_limit(self) -> None:
        redis_mock = _make_mock_redis(count=11)

        result = await check_rate_limit(redis_mock, "1.2.3.4", limit=10)

        assert result.success is False
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_redis_error_fails_open(self) -> None:
        redis_mock = _make_mock_redis()
        redis_mock.incr = AsyncMock(side_effect=ConnectionError("Redis down"))

        result = await check_rate_limit(redis_mock, "1.2.3.4", limit=10)

        assert result == RateLimitResult(success=True, limit=-1, remaining=-1, reset=0)


# -----------------------------------------------------------------------
# RateLimitService
# -----------------------------------------------------------------------


class TestRateLimitService:

    @pytest.mark.asyncio
    async def test_unconfigured_allows_in_development(self) -> None:
        service = RateLimitService(None, _settings())

        result = await service.check("1.2.3.4")

        assert result.success is True
        assert result.limit == 999
        assert service.configured is False

    @pytest.mark.asyncio
    async def test_unconfigured_rejects_in_production(self) -> None:
        service = RateLimitService(None, _settings(environment="production"))

        result = await service.check("1.2.3.4", LimiterKind.AI)

        assert result.success is False
        assert result.limit == 0
        assert result.reset > 0

    @pytest.mark.asyncio
    async def test_ai_limiter_uses_own_prefix_and_quota(self) -> None:
        redis_mock = _make_mock_redis(count=6)
        service = RateLimitService(redis_mock, _settings())

        result = await service.check("1.2.3.4", LimiterKind.AI)

        assert result.success is False
        assert result.limit == 5
        key = redis_mock.incr.await_args.args[0]
        assert key.startswith("ratelimit:ai:1.2.3.4:")

    @pytest.mark.asyncio
    async def test_password_reset_quota(self) -> None:
        service = RateLimitService(_make_mock_redis(count=3), _settings())

        result = await service.check("user-1", LimiterKind.PASSWORD_RESET)

        assert result.success is True
        assert result.limit == 3
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_close_releases_client(self) -> None:
        redis_mock = _make_mock_redis()
        service = RateLimitService(redis_mock, _settings())

        await service.close()

        redis_mock.aclose.assert_awaited_once()
        assert service.configured is False

    def test_from_settings_without_credentials(self) -> None:
        service = RateLimitService.from_settings(_settings())

        assert service.configured is False


# -----------------------------------------------------------------------
# HTTP dependency
# -----------------------------------------------------------------------


class TestClientIdentifier:

    def test_first_forwarded_hop_wins(self) -> None:
        request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}, ("10.0.0.2", 1))
        assert client_identifier(request) == "203.0.113.7"

    def test_real_ip_fallback(self) -> None:
        request = _request({"X-Real-IP": "198.51.100.4"}, ("10.0.0.2", 1))
        assert client_identifier(request) == "198.51.100.4"

    def test_socket_peer_fallback(self) -> None:
        assert client_identifier(_request({}, ("10.0.0.2", 1))) == "10.0.0.2"

    def test_anonymous_without_any_source(self) -> None:
        assert client_identifier(_request({})) == "anonymous"


class TestRequireRateLimit:

    def _client(self, service: RateLimitService) -> TestClient:
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/analyze", dependencies=[Depends(require_rate_limit(LimiterKind.AI))])
        async def analyze() -> dict[str, str]:
            return {"ok": "yes"}

        app.dependency_overrides[get_rate_limit_service] = lambda: service
        return TestClient(app)

    def test_allows_under_limit(self) -> None:
        service = RateLimitService(_make_mock_redis(count=1), _settings())

        response = self._client(service).get("/analyze")

        assert response.status_code == 200

    def test_rejects_with_429_over_limit(self) -> None:
        service = RateLimitService(_make_mock_redis(count=6), _settings())

        response = self._client(service).get(
            "/analyze", headers={"X-Forwarded-For": "203.0.113.7"}
        )
        data = response.json()

        assert response.status_code == 429
        assert data["error"] == "Rate limit exceeded. Please try again later."
        assert data["rateLimitInfo"]["remaining"] == 0
        assert "Retry-After" in response.headers
        assert response.headers["content-type"].startswith("application/problem+json")

    def test_exceeded_detail_reports_minutes(self) -> None:
        now = 1_000_000.0
        result = RateLimitResult(
            success=False, limit=10, remaining=0, reset=int((now + 12 * 60) * 1000)
        )

        detail = rate_limit_exceeded_detail(result, now=now)

        assert detail["rateLimitInfo"]["resetIn"] == "12 minutes"
        assert detail["rateLimitInfo"]["resetAt"].endswith("+00:00")
