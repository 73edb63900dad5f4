"""
Rate limiting as a FastAPI dependency.

``require_rate_limit(kind)`` returns a ``Depends()`` callable that counts
the request against the chosen limiter of the shared ``RateLimitService``
and rejects it with HTTP 429 once the hourly quota is spent.

The caller is identified by the first ``X-Forwarded-For`` hop (the app
runs behind a proxy), then ``X-Real-IP``, then the socket peer.

This is a FastAPI ``Depends()`` callable, NOT ASGI middleware.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Coroutine
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request

from phenotype_platform.api.deps import get_rate_limit_service
from phenotype_platform.api.schemas.common import RateLimitInfo
from phenotype_platform.rate_limit import (
    LimiterKind,
    RateLimitResult,
    RateLimitService,
)


def client_identifier(request: Request) -> str:
    """Best-effort client IP for rate-limit keys."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return "anonymous"


def rate_limit_exceeded_detail(
    result: RateLimitResult, now: Optional[float] = None
) -> dict[str, Any]:
    """Body for a 429 response: message plus when the window resets."""
    now_ms = (time.time() if now is None else now) * 1000
    reset_at = datetime.fromtimestamp(result.reset / 1000, tz=timezone.utc)
    minutes = max(0, math.ceil((result.reset - now_ms) / 1000 / 60))
    info = RateLimitInfo(
        remaining=0,
        reset_at=reset_at.isoformat(),
        reset_in=f"{minutes} minutes",
    )
    return {
        "error": "Rate limit exceeded. Please try again later.",
        "rateLimitInfo": info.model_dump(by_alias=True),
    }


def require_rate_limit(
    kind: LimiterKind = LimiterKind.GENERAL,
) -> Callable[..., Coroutine[Any, Any, RateLimitResult]]:
    """Factory that returns a FastAPI dependency for rate limiting.

    Args:
        kind: Which limiter (and quota) to count against.

    Returns:
        An async callable suitable for ``Depends()``; it resolves to the
        ``RateLimitResult`` when the request is allowed.
    """

    async def _dependency(
        request: Request,
        limiter: RateLimitService = Depends(get_rate_limit_service),
    ) -> RateLimitResult:
        identifier = client_identifier(request)
        result = await limiter.check(identifier, kind)
        if not result.success:
            retry_after = max(0, math.ceil(result.reset / 1000 - time.time()))
            raise HTTPException(
                status_code=429,
                detail=rate_limit_exceeded_detail(result),
                headers={"Retry-After": str(retry_after)},
            )
        return result

    return _dependency
