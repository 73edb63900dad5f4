"""
Aggregate health endpoint.

Public (no session, no rate limit). Load balancers and uptime monitors
treat 200 as "serve traffic" and 503 as "take out of rotation":

- 200 "healthy"   -- database up, phenotype catalog loaded, required env set
- 200 "degraded"  -- as above, but the optional embedding service failed
- 503 "unhealthy" -- any core condition failed, or the check itself raised

The body is always well-formed JSON; see ``HealthChecker``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from phenotype_platform.api.deps import get_health_checker
from phenotype_platform.api.schemas.health import HealthResponse, UnhealthyResponse
from phenotype_platform.api.services.health_service import HealthChecker

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": UnhealthyResponse}},
    summary="Aggregate dependency health",
    description=(
        "Checks PostgreSQL, the phenotype catalog, required environment "
        "variables and the optional embedding service. No authentication "
        "required."
    ),
)
async def health_check(
    checker: HealthChecker = Depends(get_health_checker),
) -> JSONResponse:
    """Run the health check and return its status code and body."""
    report = await checker.check()
    return JSONResponse(
        status_code=report.status_code,
        content=report.body.to_wire(),
        headers={"Cache-Control": "no-store"},
    )
