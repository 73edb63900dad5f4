"""
Probe result values.

Every probe returns one of these instead of raising: a failed dependency is
an ordinary outcome of a health check, so it travels as data with a
classified ``ProbeErrorKind``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ProbeErrorKind(str, Enum):
    """Why a probe came back unhealthy."""

    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    BAD_RESPONSE = "bad_response"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a round-trip liveness check (database)."""

    healthy: bool
    latency_ms: Optional[float] = None
    error: Optional[ProbeErrorKind] = None
    detail: Optional[str] = None

    @classmethod
    def ok(cls, latency_ms: float) -> "ProbeResult":
        return cls(healthy=True, latency_ms=latency_ms)

    @classmethod
    def failed(cls, error: ProbeErrorKind, detail: str | None = None) -> "ProbeResult":
        return cls(healthy=False, error=error, detail=detail)


@dataclass(frozen=True)
class CatalogResult:
    """Row count of the phenotype catalog, or None if it couldn't be read."""

    count: Optional[int]
    error: Optional[ProbeErrorKind] = None
    detail: Optional[str] = None

    @property
    def has_records(self) -> bool:
        return bool(self.count)


@dataclass(frozen=True)
class EmbeddingProbeResult:
    """Outcome of the optional embedding-service ping.

    An unconfigured service is not expected to answer, so it counts as
    healthy.
    """

    configured: bool
    healthy: bool
    error: Optional[ProbeErrorKind] = None
    detail: Optional[str] = None

    @classmethod
    def not_configured(cls) -> "EmbeddingProbeResult":
        return cls(configured=False, healthy=True)
