"""
Pydantic V2 DTO schemas for the phenotype platform API.

All public DTOs are re-exported here for convenient import:

    from phenotype_platform.api.schemas import HealthResponse, ProblemDetail

These schemas are the contract with the frontend and with uptime
monitors; changes here are breaking changes.
"""

from phenotype_platform.api.schemas.common import ProblemDetail, RateLimitInfo
from phenotype_platform.api.schemas.health import (
    DeploymentMeta,
    FeatureSummary,
    HealthErrorResponse,
    HealthIssues,
    HealthResponse,
    HealthStats,
    HealthyServices,
    UnhealthyResponse,
    UnhealthyServices,
)

__all__ = [
    # Health
    "HealthResponse",
    "UnhealthyResponse",
    "HealthErrorResponse",
    "HealthyServices",
    "UnhealthyServices",
    "HealthStats",
    "HealthIssues",
    "FeatureSummary",
    "DeploymentMeta",
    # Common
    "ProblemDetail",
    "RateLimitInfo",
]
