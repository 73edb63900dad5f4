"""
Capability flags derived from environment variable presence.

Optional integrations (billing, rate limiting, LLM providers, maps) check
these before touching their SDKs so that a missing key switches a feature
off instead of failing a request. Nothing is cached: every call re-reads
the environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from phenotype_platform.environment import is_set

Environ = Mapping[str, str] | None


def has_stripe(environ: Environ = None) -> bool:
    """Billing needs both the secret and the publishable key."""
    return is_set("STRIPE_SECRET_KEY", environ) and is_set(
        "NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY", environ
    )


def has_rate_limit(environ: Environ = None) -> bool:
    return is_set("UPSTASH_REDIS_REST_URL", environ) and is_set(
        "UPSTASH_REDIS_REST_TOKEN", environ
    )


def has_anthropic(environ: Environ = None) -> bool:
    return is_set("ANTHROPIC_API_KEY", environ)


def has_openai(environ: Environ = None) -> bool:
    return is_set("OPENAI_API_KEY", environ)


def embedding_service_url(environ: Environ = None) -> str | None:
    """Base URL of the embedding service, or None when it is not configured.

    The health probe and ``has_embeddings`` both read it here, so the flag
    and the probe never disagree.
    """
    env = os.environ if environ is None else environ
    return env.get("EMBEDDING_SERVICE_URL") or None


def has_embeddings(environ: Environ = None) -> bool:
    return embedding_service_url(environ) is not None


def has_mapbox(environ: Environ = None) -> bool:
    return is_set("NEXT_PUBLIC_MAPBOX_TOKEN", environ)


def has_replicate(environ: Environ = None) -> bool:
    return is_set("REPLICATE_API_TOKEN", environ)


def has_novita(environ: Environ = None) -> bool:
    return is_set("NOVITA_API_KEY", environ)


@dataclass(frozen=True)
class FeatureFlags:
    """Point-in-time snapshot of every capability flag."""

    rate_limit: bool
    stripe: bool
    anthropic: bool
    openai: bool
    embeddings: bool
    mapbox: bool
    replicate: bool
    novita: bool

    def as_dict(self) -> dict[str, bool]:
        """Flags keyed by their wire names."""
        return {
            "rateLimit": self.rate_limit,
            "stripe": self.stripe,
            "anthropic": self.anthropic,
            "openAI": self.openai,
            "embeddings": self.embeddings,
            "mapbox": self.mapbox,
            "replicate": self.replicate,
            "novita": self.novita,
        }


def evaluate_feature_flags(environ: Environ = None) -> FeatureFlags:
    """Evaluate every flag against the same environment."""
    return FeatureFlags(
        rate_limit=has_rate_limit(environ),
        stripe=has_stripe(environ),
        anthropic=has_anthropic(environ),
        openai=has_openai(environ),
        embeddings=has_embeddings(environ),
        mapbox=has_mapbox(environ),
        replicate=has_replicate(environ),
        novita=has_novita(environ),
    )
