"""
Operator diagnostics for configuration problems.

Both endpoints answer 404 in production. They report which variables are
set, never their values.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from phenotype_platform.api.deps import get_app_settings, get_rate_limit_service
from phenotype_platform.api.middleware.rate_limit import (
    client_identifier,
    require_rate_limit,
)
from phenotype_platform.environment import is_set, validate_environment
from phenotype_platform.feature_flags import evaluate_feature_flags
from phenotype_platform.rate_limit import LimiterKind, RateLimitService
from phenotype_platform.settings import Settings

logger = logging.getLogger(__name__)


def _debug_enabled(settings: Settings = Depends(get_app_settings)) -> None:
    if settings.is_production:
        raise HTTPException(status_code=404, detail="Not Found")


router = APIRouter(dependencies=[Depends(_debug_enabled)])

_RATE_LIMIT_VARS = ("UPSTASH_REDIS_REST_URL", "UPSTASH_REDIS_REST_TOKEN")


@router.get("/ratelimit", summary="Rate limiter diagnostics")
async def debug_rate_limit(
    request: Request,
    limiter: RateLimitService = Depends(get_rate_limit_service),
) -> dict[str, Any]:
    """Ping Redis and run the general, AI and upload limiters once each."""
    ip = client_identifier(request)
    checks: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "ip": ip,
        "configured": limiter.configured,
        "envCheck": {
            name: "set" if is_set(name) else "missing" for name in _RATE_LIMIT_VARS
        },
    }

    try:
        checks["redisPing"] = {"success": await limiter.ping()}
    except Exception as exc:
        logger.warning("Debug: Redis ping failed: %s", exc)
        checks["redisPing"] = {
            "success": False,
            "error": str(exc)[:200],
            "name": type(exc).__name__,
        }

    general = await limiter.check(f"test:{ip}", LimiterKind.GENERAL)
    ai = await limiter.check(f"test:{ip}", LimiterKind.AI)
    upload = await limiter.check(f"upload:{ip}", LimiterKind.GENERAL)
    checks["generalRateLimit"] = asdict(general)
    checks["aiRateLimit"] = asdict(ai)
    checks["uploadRateLimit"] = asdict(upload)
    checks["status"] = "ok"
    return checks


@router.get(
    "/environment",
    summary="Environment and feature flag report",
    dependencies=[Depends(require_rate_limit(LimiterKind.GENERAL))],
)
async def debug_environment() -> dict[str, Any]:
    """Which required/optional variables are missing and which features are on."""
    report = validate_environment()
    return {
        "isValid": report.is_valid,
        "missing": list(report.missing),
        "warnings": list(report.warnings),
        "features": evaluate_feature_flags().as_dict(),
    }
