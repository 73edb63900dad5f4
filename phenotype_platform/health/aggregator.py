"""
Aggregate status derivation.

A pure function of the probe results, environment report and feature
flags; it performs no I/O. Precedence:

- "unhealthy": database down, catalog empty or unreadable, or a required
  environment variable missing (any one of these)
- "degraded":  core healthy, but the optional embedding service failed
- "healthy":   everything else

Database latency is reported but never changes the status.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from phenotype_platform.environment import EnvironmentReport
from phenotype_platform.feature_flags import FeatureFlags
from phenotype_platform.health.results import (
    CatalogResult,
    EmbeddingProbeResult,
    ProbeResult,
)


class SystemStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def http_status(self) -> int:
        return 503 if self is SystemStatus.UNHEALTHY else 200


@dataclass(frozen=True)
class HealthInputs:
    """Everything one health check observed, gathered before deciding."""

    environment: EnvironmentReport
    features: FeatureFlags
    database: ProbeResult
    catalog: CatalogResult
    embedding: EmbeddingProbeResult

    @property
    def core_healthy(self) -> bool:
        return (
            self.database.healthy
            and self.catalog.has_records
            and self.environment.is_valid
        )


def derive_status(inputs: HealthInputs) -> SystemStatus:
    """Apply the precedence rule to one set of observations."""
    if not inputs.core_healthy:
        return SystemStatus.UNHEALTHY
    if not inputs.embedding.healthy:
        return SystemStatus.DEGRADED
    return SystemStatus.HEALTHY
