"""
HealthChecker -- runs the probes and renders the /health response.

Flow for one request:
    1. Validate the environment and evaluate feature flags (sync, no I/O)
    2. Run the database, catalog and embedding probes concurrently and
       wait for all of them (join, not race)
    3. Derive the aggregate status and build the matching DTO

Probes convert expected failures into result values themselves. Anything
that still escapes is caught here and rendered as a generic 503 so the
endpoint never returns an unparseable body.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

import aiohttp

from phenotype_platform.api.schemas.health import (
    DeploymentMeta,
    EmbeddingState,
    FeatureSummary,
    HealthErrorResponse,
    HealthIssues,
    HealthResponse,
    HealthStats,
    HealthyServices,
    UnhealthyResponse,
    UnhealthyServices,
)
from phenotype_platform.db.postgres import Database
from phenotype_platform.environment import validate_environment
from phenotype_platform.feature_flags import (
    embedding_service_url,
    evaluate_feature_flags,
)
from phenotype_platform.health.aggregator import (
    HealthInputs,
    SystemStatus,
    derive_status,
)
from phenotype_platform.health.probes import (
    count_catalog,
    probe_database,
    probe_embedding_service,
)
from phenotype_platform.health.results import CatalogResult, EmbeddingProbeResult
from phenotype_platform.settings import Settings

logger = logging.getLogger(__name__)

HealthBody = Union[HealthResponse, UnhealthyResponse, HealthErrorResponse]


@dataclass(frozen=True)
class HealthReport:
    """HTTP status code plus the body to send with it."""

    status_code: int
    body: HealthBody


def _embedding_state(
    result: EmbeddingProbeResult, failed: EmbeddingState
) -> EmbeddingState:
    # An unconfigured service counts as up; it cannot fail a check.
    if not result.configured or result.healthy:
        return "up"
    return failed


def _phenotypes_state(result: CatalogResult) -> str:
    if result.count is None:
        return "unknown"
    return "loaded" if result.has_records else "empty"


def _toggle(enabled: bool) -> str:
    return "enabled" if enabled else "disabled"


def build_health_report(
    inputs: HealthInputs,
    meta: DeploymentMeta,
    now: Optional[datetime] = None,
) -> HealthReport:
    """Render one set of observations as the /health response."""
    now = now or datetime.now(timezone.utc)
    status = derive_status(inputs)
    if status is SystemStatus.UNHEALTHY:
        missing = list(inputs.environment.missing)
        body: HealthBody = UnhealthyResponse(
            timestamp=now,
            services=UnhealthyServices(
                database="up" if inputs.database.healthy else "down",
                phenotypes=_phenotypes_state(inputs.catalog),
                environment="configured" if not missing else "missing_vars",
                embedding=_embedding_state(inputs.embedding, "down"),
            ),
            meta=meta,
            issues=HealthIssues(missing_env_vars=missing or None),
        )
        return HealthReport(status_code=status.http_status, body=body)

    body = HealthResponse(
        status=status.value,
        timestamp=now,
        services=HealthyServices(
            embedding=_embedding_state(inputs.embedding, "unknown")
        ),
        stats=HealthStats(
            phenotype_count=inputs.catalog.count or 0,
            database_latency=inputs.database.latency_ms,
        ),
        meta=meta,
        features=FeatureSummary(
            rate_limit=_toggle(inputs.features.rate_limit),
            premium_reports=_toggle(inputs.features.anthropic),
            payments=_toggle(inputs.features.stripe),
        ),
    )
    return HealthReport(status_code=status.http_status, body=body)


class HealthChecker:
    """Runs the full health check against injected dependencies.

    Built once at startup and shared across requests; holds no
    per-request state.
    """

    def __init__(
        self,
        database: Database,
        settings: Settings,
        http_session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.database = database
        self.settings = settings
        self.http_session = http_session

    def deployment_meta(self) -> DeploymentMeta:
        return DeploymentMeta.model_validate(self.settings.deployment_meta)

    async def gather_inputs(self) -> HealthInputs:
        """Collect environment state and all probe results."""
        environment = validate_environment()
        features = evaluate_feature_flags()

        database_result, catalog_result, embedding_result = await asyncio.gather(
            probe_database(self.database, self.settings.database_probe_timeout),
            count_catalog(self.database, self.settings.database_probe_timeout),
            probe_embedding_service(
                embedding_service_url(),
                self.settings.embedding_probe_timeout,
                session=self.http_session,
            ),
        )

        return HealthInputs(
            environment=environment,
            features=features,
            database=database_result,
            catalog=catalog_result,
            embedding=embedding_result,
        )

    async def check(self) -> HealthReport:
        """Run the check; never raises."""
        meta = self.deployment_meta()
        try:
            inputs = await self.gather_inputs()
            report = build_health_report(inputs, meta)
        except Exception as exc:
            logger.exception("Health check failed")
            return HealthReport(
                status_code=503,
                body=HealthErrorResponse(
                    timestamp=datetime.now(timezone.utc),
                    meta=meta,
                    details=None if self.settings.is_production else str(exc),
                ),
            )

        if report.status_code != 200 or report.body.status != "healthy":
            logger.warning("Health check: status=%s", report.body.status)
        return report
