"""Configuration settings for the document generator."""

from enum import Enum
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"
    TEST = "test"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults for local development and can be
    overridden via environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment: production, staging, development or test",
    )

    # Persistence
    generator_db_path: Path = Field(
        default=Path("./data/generator.db"),
        description="Path to the SQLite database holding generation requests/responses",
    )

    # Secrets
    secret_backend: str = Field(
        default="env",
        description="Where provider credentials come from: 'gcp' (Secret Manager) or 'env'",
    )
    gcp_project_id: str | None = Field(
        default=None,
        description="Google Cloud project that owns secrets and the storage bucket",
    )
    secret_cache_ttl_seconds: Annotated[float, Field(gt=0)] = Field(
        default=300.0,
        description="How long a fetched secret is served from cache",
    )

    # Artifact storage
    storage_backend: str = Field(
        default="local",
        description="Artifact store backend: 'gcs' or 'local'",
    )
    storage_bucket: str | None = Field(
        default=None,
        description="Bucket for rendered documents (derived from environment when unset)",
    )
    storage_emulator_host: str | None = Field(
        default=None,
        description="Storage emulator endpoint, e.g. http://127.0.0.1:9199",
    )
    local_storage_dir: Path = Field(
        default=Path("./artifacts/storage"),
        description="Root directory for the local artifact store",
    )

    # Pipeline
    max_stage_seconds: Annotated[int, Field(gt=0)] = Field(
        default=540,
        description="Lease length for a running stage before the request may be reaped",
    )
    concurrent_generation: bool = Field(
        default=False,
        description="Issue the resume and cover letter AI calls concurrently",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str | Environment) -> Environment:
        """Convert string environment to Environment enum."""
        if isinstance(v, Environment):
            return v
        if isinstance(v, str):
            try:
                return Environment(v.strip().lower())
            except ValueError:
                raise ValueError(
                    f"Invalid environment: {v}. Must be one of "
                    f"{[e.value for e in Environment]}"
                ) from None
        raise ValueError(f"Invalid environment type: {type(v)}")

    @field_validator("secret_backend", mode="before")
    @classmethod
    def validate_secret_backend(cls, v: str) -> str:
        """Validate secret_backend."""
        if not isinstance(v, str):
            raise ValueError("secret_backend must be a string")
        value = v.lower().strip()
        if value not in {"gcp", "env"}:
            raise ValueError("secret_backend must be one of: gcp, env")
        return value

    @field_validator("storage_backend", mode="before")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        """Validate storage_backend."""
        if not isinstance(v, str):
            raise ValueError("storage_backend must be a string")
        value = v.lower().strip()
        if value not in {"gcs", "local"}:
            raise ValueError("storage_backend must be one of: gcs, local")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    def resolve_bucket_name(self) -> str:
        """Return the configured bucket, or the environment's default bucket."""
        if self.storage_bucket:
            return self.storage_bucket
        if self.storage_emulator_host:
            return "demo-job-finder-documents"
        if self.environment == Environment.STAGING:
            return "job-finder-documents-staging"
        return "job-finder-documents"


# Singleton instance for easy import
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton (useful for testing)."""
    global _settings
    _settings = None
