"""Tests for Settings configuration class."""

from pathlib import Path

import pytest
from pydantic import ValidationError


class TestSettingsDefaults:
    """Test that Settings loads sensible defaults."""

    def test_settings_loads_with_defaults(self, isolated_env):
        """Settings should load with default values when no env vars are set."""
        from src.config.settings import Environment, Settings

        settings = Settings(_env_file=None)

        assert settings.environment == Environment.DEVELOPMENT
        assert settings.generator_db_path == Path("./data/generator.db")
        assert settings.secret_backend == "env"
        assert settings.gcp_project_id is None
        assert settings.secret_cache_ttl_seconds == 300.0
        assert settings.storage_backend == "local"
        assert settings.storage_bucket is None
        assert settings.local_storage_dir == Path("./artifacts/storage")
        assert settings.max_stage_seconds == 540
        assert settings.concurrent_generation is False
        assert settings.log_level == "INFO"


class TestSettingsFromEnvironment:
    """Test that Settings reads from environment variables."""

    def test_reads_backends_from_env(self, isolated_env, monkeypatch):
        monkeypatch.setenv("SECRET_BACKEND", "GCP")
        monkeypatch.setenv("STORAGE_BACKEND", "gcs")
        monkeypatch.setenv("GCP_PROJECT_ID", "job-finder")

        from src.config.settings import Settings

        settings = Settings(_env_file=None)

        assert settings.secret_backend == "gcp"
        assert settings.storage_backend == "gcs"
        assert settings.gcp_project_id == "job-finder"

    def test_reads_pipeline_options_from_env(self, isolated_env, monkeypatch):
        monkeypatch.setenv("MAX_STAGE_SECONDS", "60")
        monkeypatch.setenv("CONCURRENT_GENERATION", "true")

        from src.config.settings import Settings

        settings = Settings(_env_file=None)

        assert settings.max_stage_seconds == 60
        assert settings.concurrent_generation is True

    def test_environment_is_case_insensitive(self, isolated_env, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "Staging")

        from src.config.settings import Environment, Settings

        assert Settings(_env_file=None).environment == Environment.STAGING


class TestSettingsValidation:
    """Invalid values are rejected at load time."""

    @pytest.mark.parametrize(
        "field, value",
        [
            ("environment", "moon"),
            ("secret_backend", "vault"),
            ("storage_backend", "s3"),
            ("log_level", "LOUD"),
            ("max_stage_seconds", 0),
            ("secret_cache_ttl_seconds", -1),
        ],
    )
    def test_rejects_invalid_value(self, isolated_env, field, value):
        from src.config.settings import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_log_level_is_uppercased(self, isolated_env):
        from src.config.settings import Settings

        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"


class TestBucketName:
    """Bucket resolution by environment."""

    @pytest.mark.parametrize(
        "overrides, expected",
        [
            ({}, "job-finder-documents"),
            ({"environment": "staging"}, "job-finder-documents-staging"),
            ({"environment": "production"}, "job-finder-documents"),
            ({"storage_emulator_host": "localhost:9199"}, "demo-job-finder-documents"),
            ({"storage_bucket": "custom", "environment": "staging"}, "custom"),
        ],
    )
    def test_resolve_bucket_name(self, isolated_env, overrides, expected):
        from src.config.settings import Settings

        assert Settings(_env_file=None, **overrides).resolve_bucket_name() == expected


class TestSettingsSingleton:
    def test_get_settings_returns_same_instance(self, isolated_env):
        from src.config.settings import get_settings

        assert get_settings() is get_settings()

    def test_reset_settings_clears_instance(self, isolated_env):
        from src.config.settings import get_settings, reset_settings

        first = get_settings()
        reset_settings()
        assert get_settings() is not first
