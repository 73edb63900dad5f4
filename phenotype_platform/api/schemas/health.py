"""
Health check DTOs for GET /health.

Wire keys are camelCase (the frontend and uptime monitors read them
directly); Python attributes stay snake_case. Three body shapes exist:

- ``HealthResponse``       -- 200, status "healthy" or "degraded"
- ``UnhealthyResponse``    -- 503, a core dependency is down
- ``HealthErrorResponse``  -- 503, the check itself blew up
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EmbeddingState = Literal["up", "down", "unknown"]
Toggle = Literal["enabled", "disabled"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys and unset optionals dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DeploymentMeta(_CamelModel):
    """Which build is answering."""

    git_commit: str = Field(..., description="Commit SHA of the deployed build")
    deployment_id: str = Field(..., description="Hosting platform deployment id")
    environment: str = Field(..., description="production / preview / development")


class HealthyServices(_CamelModel):
    """A failing optional embedding service shows as "unknown" here."""

    database: Literal["up"] = "up"
    phenotypes: Literal["loaded"] = "loaded"
    storage: Literal["up"] = "up"
    authentication: Literal["up"] = "up"
    embedding: EmbeddingState


class UnhealthyServices(_CamelModel):
    """Per-dependency state; at least one core entry is failing."""

    database: Literal["up", "down"]
    phenotypes: Literal["loaded", "empty", "unknown"]
    environment: Literal["configured", "missing_vars"]
    embedding: EmbeddingState


class HealthStats(_CamelModel):
    phenotype_count: int = Field(..., description="Rows in the phenotypes table")
    database_latency: Optional[float] = Field(
        None, description="SELECT 1 round trip in milliseconds"
    )


class FeatureSummary(_CamelModel):
    rate_limit: Toggle
    premium_reports: Toggle
    payments: Toggle


class HealthIssues(_CamelModel):
    missing_env_vars: Optional[list[str]] = Field(
        None, description="Required environment variables that are not set"
    )


class HealthResponse(_CamelModel):
    """Core dependencies are up; optional ones may not be."""

    status: Literal["healthy", "degraded"]
    timestamp: datetime
    services: HealthyServices
    stats: HealthStats
    meta: DeploymentMeta
    features: FeatureSummary


class UnhealthyResponse(_CamelModel):
    """At least one core dependency failed."""

    status: Literal["unhealthy"] = "unhealthy"
    timestamp: datetime
    services: UnhealthyServices
    meta: DeploymentMeta
    issues: HealthIssues


class HealthErrorResponse(_CamelModel):
    """The health check raised; ``details`` is only set outside production."""

    status: Literal["unhealthy"] = "unhealthy"
    timestamp: datetime
    error: str = "Health check failed"
    meta: DeploymentMeta
    details: Optional[str] = None
