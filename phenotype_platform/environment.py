"""
Environment variable validation.

Classifies the variables the platform depends on as required (the app
cannot serve its primary function without them) or optional (a feature
degrades or switches off). Absence is reported as data, never raised,
except by the explicit startup helpers at the bottom of the module.

The live process environment is read on every call, so the result always
reflects the current state (including changes made by test fixtures).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

REQUIRED_ENV_VARS: tuple[str, ...] = (
    "DATABASE_URL",
    "BLOB_READ_WRITE_TOKEN",
    "NOVITA_API_KEY",
)

OPTIONAL_ENV_VARS: tuple[str, ...] = (
    "BETTER_AUTH_SECRET",
    "ANTHROPIC_API_KEY",
    "REPLICATE_API_TOKEN",
    "AI_GATEWAY_API_KEY",
    "NEXT_PUBLIC_MAPBOX_TOKEN",
    "STRIPE_SECRET_KEY",
    "NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "STRIPE_SUBSCRIPTION_PRICE_ID",
    "STRIPE_SUBSCRIPTION_COUPON_ID",
    "UPSTASH_REDIS_REST_URL",
    "UPSTASH_REDIS_REST_TOKEN",
    "VISION_LLM_API_URL",
    "VISION_LLM_PROVIDER",
    "OPENAI_API_KEY",
    "EMBEDDING_SERVICE_URL",
)


class EnvironmentConfigurationError(RuntimeError):
    """Raised at startup when required environment variables are missing."""

    def __init__(self, missing: tuple[str, ...]) -> None:
        self.missing = missing
        super().__init__(
            "Missing required environment variables: " + ", ".join(missing)
        )


@dataclass(frozen=True)
class EnvironmentReport:
    """Result of a single validation pass.

    ``missing`` holds absent required names, ``warnings`` absent optional
    names, each in declaration order.
    """

    is_valid: bool
    missing: tuple[str, ...]
    warnings: tuple[str, ...]


def is_set(name: str, environ: Mapping[str, str] | None = None) -> bool:
    """True if *name* is present and non-empty in the environment."""
    env = os.environ if environ is None else environ
    return bool(env.get(name))


def validate_environment(
    environ: Mapping[str, str] | None = None,
) -> EnvironmentReport:
    """Check required and optional variables against the environment.

    Args:
        environ: Mapping to inspect. Defaults to ``os.environ`` at call time.

    Returns:
        A fresh ``EnvironmentReport``; ``is_valid`` is True iff no required
        variable is missing.
    """
    env = os.environ if environ is None else environ
    missing = tuple(name for name in REQUIRED_ENV_VARS if not is_set(name, env))
    warnings = tuple(name for name in OPTIONAL_ENV_VARS if not is_set(name, env))
    return EnvironmentReport(
        is_valid=not missing,
        missing=missing,
        warnings=warnings,
    )


def _bullets(names: tuple[str, ...]) -> str:
    return "\n".join(f"  - {name}" for name in names)


def validate_environment_or_raise(
    environ: Mapping[str, str] | None = None,
    *,
    warn_optional: bool = True,
) -> EnvironmentReport:
    """Validate and raise if anything required is missing.

    Missing optional variables are logged as a single warning when
    *warn_optional* is set.

    Raises:
        EnvironmentConfigurationError: If any required variable is absent.
    """
    report = validate_environment(environ)

    if not report.is_valid:
        logger.error(
            "Environment configuration error. Missing required variables:\n%s\n"
            "Add them to .env or to the deployment environment settings.",
            _bullets(report.missing),
        )
        raise EnvironmentConfigurationError(report.missing)

    if warn_optional and report.warnings:
        logger.warning(
            "Optional environment variables not set; some features are "
            "disabled:\n%s",
            _bullets(report.warnings),
        )

    return report


def check_environment_on_startup(
    is_production: bool,
    environ: Mapping[str, str] | None = None,
) -> EnvironmentReport:
    """Startup policy: fail fast in development, log and continue in production.

    In production a misconfigured deployment keeps serving so that
    ``/health`` can report exactly what is missing.
    """
    try:
        return validate_environment_or_raise(
            environ, warn_optional=not is_production
        )
    except EnvironmentConfigurationError:
        if not is_production:
            raise
        logger.error("Environment validation failed; continuing in production")
        return validate_environment(environ)
