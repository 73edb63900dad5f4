"""
Tests for environment validation and feature flags.

Every test starts from a scrubbed environment (``clean_env``) so results
don't depend on the machine running them.
"""

from __future__ import annotations

import logging

import pytest

from phenotype_platform import feature_flags
from phenotype_platform.environment import (
    OPTIONAL_ENV_VARS,
    REQUIRED_ENV_VARS,
    EnvironmentConfigurationError,
    check_environment_on_startup,
    validate_environment,
    validate_environment_or_raise,
)


class TestValidateEnvironment:
    """validate_environment() against the live process environment."""

    def test_valid_when_all_required_set(self, required_env) -> None:
        report = validate_environment()

        assert report.is_valid is True
        assert report.missing == ()

    @pytest.mark.parametrize("name", REQUIRED_ENV_VARS)
    def test_each_missing_required_var_is_reported(self, required_env, name) -> None:
        required_env.delenv(name)

        report = validate_environment()

        assert report.is_valid is False
        assert name in report.missing

    def test_empty_string_counts_as_missing(self, required_env) -> None:
        required_env.setenv("DATABASE_URL", "")

        report = validate_environment()

        assert report.missing == ("DATABASE_URL",)

    def test_missing_optional_vars_are_warnings_only(self, required_env) -> None:
        report = validate_environment()

        assert report.is_valid is True
        assert "STRIPE_SECRET_KEY" in report.warnings
        assert report.warnings == OPTIONAL_ENV_VARS

    def test_missing_preserves_declaration_order(self, clean_env) -> None:
        report = validate_environment()

        assert report.missing == REQUIRED_ENV_VARS

    def test_reflects_changes_between_calls(self, required_env) -> None:
        assert validate_environment().is_valid is True
        required_env.delenv("NOVITA_API_KEY")
        assert validate_environment().is_valid is False

    def test_explicit_mapping_overrides_process_env(self, clean_env) -> None:
        report = validate_environment({name: "x" for name in REQUIRED_ENV_VARS})

        assert report.is_valid is True

    def test_required_and_optional_sets_are_disjoint(self) -> None:
        assert not set(REQUIRED_ENV_VARS) & set(OPTIONAL_ENV_VARS)


class TestStartupValidation:
    """validate_environment_or_raise() and the startup policy."""

    def test_raises_with_missing_names(self, clean_env) -> None:
        with pytest.raises(EnvironmentConfigurationError) as exc_info:
            validate_environment_or_raise()

        assert exc_info.value.missing == REQUIRED_ENV_VARS
        assert "DATABASE_URL" in str(exc_info.value)

    def test_warns_about_optional_vars(self, required_env, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            report = validate_environment_or_raise()

        assert report.is_valid
        assert "ANTHROPIC_API_KEY" in caplog.text

    def test_startup_raises_outside_production(self, clean_env) -> None:
        with pytest.raises(EnvironmentConfigurationError):
            check_environment_on_startup(is_production=False)

    def test_startup_continues_in_production(self, clean_env, caplog) -> None:
        with caplog.at_level(logging.ERROR):
            report = check_environment_on_startup(is_production=True)

        assert report.is_valid is False
        assert "continuing in production" in caplog.text


class TestFeatureFlags:
    """Capability flags derived from variable presence."""

    def test_stripe_requires_both_keys(self, clean_env) -> None:
        clean_env.setenv("STRIPE_SECRET_KEY", "sk_test_xxx")
        clean_env.setenv("NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY", "pk_test_xxx")

        assert feature_flags.has_stripe() is True

    def test_stripe_false_without_secret_key(self, clean_env) -> None:
        clean_env.setenv("NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY", "pk_test_xxx")

        assert feature_flags.has_stripe() is False

    def test_stripe_false_without_publishable_key(self, clean_env) -> None:
        clean_env.setenv("STRIPE_SECRET_KEY", "sk_test_xxx")

        assert feature_flags.has_stripe() is False

    def test_rate_limit_requires_url_and_token(self, clean_env) -> None:
        clean_env.setenv("UPSTASH_REDIS_REST_URL", "https://redis.upstash.io")
        assert feature_flags.has_rate_limit() is False

        clean_env.setenv("UPSTASH_REDIS_REST_TOKEN", "token")
        assert feature_flags.has_rate_limit() is True

    @pytest.mark.parametrize(
        ("func", "var"),
        [
            (feature_flags.has_anthropic, "ANTHROPIC_API_KEY"),
            (feature_flags.has_openai, "OPENAI_API_KEY"),
            (feature_flags.has_embeddings, "EMBEDDING_SERVICE_URL"),
            (feature_flags.has_mapbox, "NEXT_PUBLIC_MAPBOX_TOKEN"),
            (feature_flags.has_replicate, "REPLICATE_API_TOKEN"),
            (feature_flags.has_novita, "NOVITA_API_KEY"),
        ],
    )
    def test_single_variable_flags(self, clean_env, func, var) -> None:
        assert func() is False
        clean_env.setenv(var, "value")
        assert func() is True

    def test_flags_are_not_cached(self, clean_env) -> None:
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant-xxx")
        assert feature_flags.has_anthropic() is True

        clean_env.delenv("ANTHROPIC_API_KEY")
        assert feature_flags.has_anthropic() is False

    def test_embedding_url_treats_empty_as_unset(self) -> None:
        assert feature_flags.embedding_service_url({"EMBEDDING_SERVICE_URL": ""}) is None
        assert (
            feature_flags.embedding_service_url(
                {"EMBEDDING_SERVICE_URL": "http://embeddings:8000"}
            )
            == "http://embeddings:8000"
        )

    def test_snapshot_wire_names(self, clean_env) -> None:
        clean_env.setenv("OPENAI_API_KEY", "sk-xxx")

        flags = feature_flags.evaluate_feature_flags().as_dict()

        assert set(flags) == {
            "rateLimit",
            "stripe",
            "anthropic",
            "openAI",
            "embeddings",
            "mapbox",
            "replicate",
            "novita",
        }
        assert flags["openAI"] is True
        assert flags["stripe"] is False
