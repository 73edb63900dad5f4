"""
Top-level API router -- aggregates all sub-routers.

Included at the application root by ``create_app()``.
"""

from __future__ import annotations

from fastapi import APIRouter

from phenotype_platform.api.routes.debug import router as debug_router
from phenotype_platform.api.routes.health import router as health_router

api_router = APIRouter()

# Health is public -- no auth, no rate limit
api_router.include_router(health_router, tags=["health"])

# Operator diagnostics (404 in production)
api_router.include_router(debug_router, prefix="/api/debug", tags=["debug"])
