"""
Dependency health probes.

Each probe performs one live round trip against an external dependency,
bounded by its own timeout, and returns a result value from
``phenotype_platform.health.results``. Probes never raise for a failing
dependency: the health endpoint must always be able to answer, so the
failure is logged and folded into the result.

Probes:
    1. database        -- async SELECT 1 on PostgreSQL, with latency
    2. catalog         -- row count of the ``phenotypes`` table
    3. embedding       -- GET {EMBEDDING_SERVICE_URL}/health (optional service)

Each probe opens its own session/connection so they can run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import aiohttp
from sqlalchemy import func, select, text

from phenotype_platform.db.models import Phenotype
from phenotype_platform.db.postgres import Database
from phenotype_platform.health.results import (
    CatalogResult,
    EmbeddingProbeResult,
    ProbeErrorKind,
    ProbeResult,
)
from phenotype_platform.timeouts import ProbeTimeoutError, with_timeout

logger = logging.getLogger(__name__)

_DETAIL_MAX = 200


async def probe_database(database: Database, timeout: float) -> ProbeResult:
    """Round-trip ``SELECT 1`` and measure wall-clock latency in ms."""

    async def _round_trip() -> None:
        async with database.session() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()

    start = time.perf_counter()
    try:
        await with_timeout(_round_trip(), timeout, "database health check")
    except ProbeTimeoutError as exc:
        logger.warning("Health check: database timed out: %s", exc)
        return ProbeResult.failed(ProbeErrorKind.TIMEOUT, str(exc))
    except Exception as exc:
        logger.warning("Health check: database unhealthy: %s", exc)
        return ProbeResult.failed(ProbeErrorKind.UNREACHABLE, str(exc)[:_DETAIL_MAX])

    latency_ms = round((time.perf_counter() - start) * 1000, 2)
    return ProbeResult.ok(latency_ms)


async def count_catalog(database: Database, timeout: float) -> CatalogResult:
    """Count rows in the phenotype catalog."""

    async def _count() -> int:
        async with database.session() as session:
            result = await session.execute(
                select(func.count()).select_from(Phenotype)
            )
            return int(result.scalar_one())

    try:
        count = await with_timeout(_count(), timeout, "phenotype count")
    except ProbeTimeoutError as exc:
        logger.warning("Health check: phenotype count timed out: %s", exc)
        return CatalogResult(count=None, error=ProbeErrorKind.TIMEOUT, detail=str(exc))
    except Exception as exc:
        logger.warning("Health check: phenotype count failed: %s", exc)
        return CatalogResult(
            count=None,
            error=ProbeErrorKind.UNREACHABLE,
            detail=str(exc)[:_DETAIL_MAX],
        )

    if count == 0:
        logger.warning("Health check: phenotypes table is empty")
    return CatalogResult(count=count)


async def _ping_embedding(
    session: aiohttp.ClientSession, endpoint: str, timeout: float
) -> EmbeddingProbeResult:
    async with session.get(
        endpoint, timeout=aiohttp.ClientTimeout(total=timeout)
    ) as resp:
        if not 200 <= resp.status < 300:
            return EmbeddingProbeResult(
                configured=True,
                healthy=False,
                error=ProbeErrorKind.BAD_RESPONSE,
                detail=f"HTTP {resp.status}",
            )
        try:
            data = await resp.json(content_type=None)
        except ValueError as exc:
            return EmbeddingProbeResult(
                configured=True,
                healthy=False,
                error=ProbeErrorKind.BAD_RESPONSE,
                detail=f"Invalid JSON: {exc}"[:_DETAIL_MAX],
            )

    # The service is only usable once its matcher model has loaded.
    if (
        isinstance(data, dict)
        and data.get("status") == "healthy"
        and data.get("matcher_loaded") is True
    ):
        return EmbeddingProbeResult(configured=True, healthy=True)
    return EmbeddingProbeResult(
        configured=True,
        healthy=False,
        error=ProbeErrorKind.BAD_RESPONSE,
        detail="Embedding service not ready",
    )


async def probe_embedding_service(
    url: Optional[str],
    timeout: float,
    session: Optional[aiohttp.ClientSession] = None,
) -> EmbeddingProbeResult:
    """Ping the embedding service if one is configured.

    Args:
        url: Base URL of the service; falsy means "not deployed".
        timeout: Total request budget in seconds.
        session: Reuse an existing aiohttp session (tests, connection reuse).

    Returns:
        Healthy only on a 2xx response whose JSON reports
        ``status == "healthy"`` and ``matcher_loaded is True``.
    """
    if not url:
        return EmbeddingProbeResult.not_configured()

    endpoint = url.rstrip("/") + "/health"
    try:
        if session is not None:
            result = await asyncio.wait_for(
                _ping_embedding(session, endpoint, timeout), timeout
            )
        else:
            async with aiohttp.ClientSession() as own_session:
                result = await asyncio.wait_for(
                    _ping_embedding(own_session, endpoint, timeout), timeout
                )
    except asyncio.TimeoutError:
        logger.warning("Health check: embedding service timed out after %.1fs", timeout)
        return EmbeddingProbeResult(
            configured=True,
            healthy=False,
            error=ProbeErrorKind.TIMEOUT,
            detail=f"No response within {timeout:.1f}s",
        )
    except Exception as exc:
        logger.warning("Health check: embedding service unreachable: %s", exc)
        return EmbeddingProbeResult(
            configured=True,
            healthy=False,
            error=ProbeErrorKind.UNREACHABLE,
            detail=str(exc)[:_DETAIL_MAX],
        )

    if not result.healthy:
        logger.warning("Health check: embedding service unhealthy: %s", result.detail)
    return result
