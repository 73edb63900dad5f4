"""
FastAPI dependency injection providers.

Thin wrappers that hand the process-lifetime handles created in the app
lifespan (settings, rate limiter, health checker) to route handlers. The
handles live on ``app.state``; nothing here creates module-level
singletons. Keep this module free of business logic -- it's pure plumbing.
"""

from __future__ import annotations

from fastapi import Request

from phenotype_platform.api.services.health_service import HealthChecker
from phenotype_platform.rate_limit import RateLimitService
from phenotype_platform.settings import Settings


def get_app_settings(request: Request) -> Settings:
    """Return the Settings the application was built with.

    Usage::

        @router.get("/info")
        async def info(settings: Settings = Depends(get_app_settings)):
            return {"env": settings.environment}
    """
    return request.app.state.settings


def get_rate_limit_service(request: Request) -> RateLimitService:
    return request.app.state.rate_limiter


def get_health_checker(request: Request) -> HealthChecker:
    return request.app.state.health_checker
