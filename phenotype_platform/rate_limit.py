"""
Per-identifier hourly rate limiting via Redis atomic counters.

Uses ``INCR`` + ``EXPIRE`` on a key per (limiter, identifier, window) for
lock-free counting. Three limiters share one Redis connection:

    general         -- 10 requests/hour for ordinary API routes
    ai              --  5 requests/hour for expensive analysis routes
    password_reset  --  3 attempts/hour

Failure policy:
- Redis configured but erroring: fail open (allow, ``limit == -1``). A
  broken rate limiter must never take the API down.
- Redis not configured: allow in development with a warning, reject in
  production, where running without abuse protection is a
  misconfiguration.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import redis.asyncio as aioredis

from phenotype_platform.settings import Settings

logger = logging.getLogger(__name__)

WINDOW_SECONDS: int = 3600


class LimiterKind(str, Enum):
    GENERAL = "general"
    AI = "ai"
    PASSWORD_RESET = "password_reset"


_KEY_PREFIXES: dict[LimiterKind, str] = {
    LimiterKind.GENERAL: "ratelimit",
    LimiterKind.AI: "ratelimit:ai",
    LimiterKind.PASSWORD_RESET: "ratelimit:password-reset",
}


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one limiter check.

    ``reset`` is the window end as epoch milliseconds (0 when unknown).
    """

    success: bool
    limit: int
    remaining: int
    reset: int


async def check_rate_limit(
    redis_client: aioredis.Redis,
    identifier: str,
    limit: int,
    prefix: str = "ratelimit",
    window_seconds: int = WINDOW_SECONDS,
    now: Optional[float] = None,
) -> RateLimitResult:
    """Count one request for *identifier* in the current fixed window.

    Uses Redis key ``{prefix}:{identifier}:{window_index}``. The EXPIRE is
    set only on the first increment (count == 1) so later requests don't
    push the TTL out.

    Args:
        redis_client: Async Redis connection.
        identifier: Caller identity (IP, user id, ``upload:{ip}``...).
        limit: Maximum requests per window.
        prefix: Key namespace of the limiter.
        window_seconds: Window length.
        now: Override the clock (epoch seconds), for tests.

    Returns:
        ``RateLimitResult``; fail-open result if Redis raises.
    """
    now = time.time() if now is None else now
    window = int(now // window_seconds)
    reset_ms = (window + 1) * window_seconds * 1000
    key = f"{prefix}:{identifier}:{window}"

    try:
        count = int(await redis_client.incr(key))
        if count == 1:
            await redis_client.expire(key, window_seconds)
    except Exception as exc:
        # Fail-open: Redis down -> allow the request
        logger.warning(
            "Rate limit check failed for %s (allowing request): %s",
            identifier,
            exc,
        )
        return RateLimitResult(success=True, limit=-1, remaining=-1, reset=0)

    if count > limit:
        logger.warning(
            "Rate limit exceeded for %s on %s: %d/%d",
            identifier,
            prefix,
            count,
            limit,
        )
    return RateLimitResult(
        success=count <= limit,
        limit=limit,
        remaining=max(0, limit - count),
        reset=reset_ms,
    )


class RateLimitService:
    """Owns the Redis client and applies the configured quotas.

    Created once at startup via ``from_settings`` and stored on the
    application state; ``close()`` at shutdown.
    """

    def __init__(
        self,
        redis_client: Optional[aioredis.Redis],
        settings: Settings,
    ) -> None:
        self.redis = redis_client
        self.settings = settings
        self._limits: dict[LimiterKind, int] = {
            LimiterKind.GENERAL: settings.rate_limit_general_per_hour,
            LimiterKind.AI: settings.rate_limit_ai_per_hour,
            LimiterKind.PASSWORD_RESET: settings.rate_limit_password_reset_per_hour,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimitService":
        """Build the service; no connection is opened until first use."""
        url = settings.resolved_redis_url
        if url is None:
            logger.warning("Rate limiting not configured (no Redis credentials)")
            return cls(None, settings)

        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2.0,
        )
        logger.info("Rate limiter using Redis at %s", _redact(url))
        return cls(client, settings)

    @property
    def configured(self) -> bool:
        return self.redis is not None

    def limit_for(self, kind: LimiterKind) -> int:
        return self._limits[kind]

    async def check(
        self,
        identifier: str,
        kind: LimiterKind = LimiterKind.GENERAL,
    ) -> RateLimitResult:
        """Count one request against the *kind* limiter."""
        if self.redis is None:
            if self.settings.is_production:
                logger.error(
                    "Rate limiting (%s) not configured in production; rejecting request",
                    kind.value,
                )
                return RateLimitResult(
                    success=False,
                    limit=0,
                    remaining=0,
                    reset=int((time.time() + WINDOW_SECONDS) * 1000),
                )
            logger.warning(
                "Rate limiting (%s) not configured -- development mode only",
                kind.value,
            )
            return RateLimitResult(success=True, limit=999, remaining=999, reset=0)

        return await check_rate_limit(
            self.redis,
            identifier,
            self.limit_for(kind),
            prefix=_KEY_PREFIXES[kind],
        )

    async def ping(self) -> bool:
        """PING Redis. Raises on connection failure; False if unconfigured."""
        if self.redis is None:
            return False
        return bool(await self.redis.ping())

    async def close(self) -> None:
        """Gracefully close the Redis connection (call from app lifespan shutdown)."""
        if self.redis is not None:
            try:
                await self.redis.aclose()
            except Exception as exc:
                logger.warning("Error closing Redis: %s", exc)
            self.redis = None


def _redact(url: str) -> str:
    """Drop credentials from a Redis URL before logging it."""
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"
