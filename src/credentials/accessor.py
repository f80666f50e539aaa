"""Secret accessor with a short-lived in-process cache.

Secrets are fetched from Google Cloud Secret Manager in deployed
environments and from process environment variables during local
development. Fetched values are cached for a few minutes so repeated
pipeline runs in one process do not hit the vault on every call.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


class SecretAccessError(Exception):
    """Exception raised when a secret cannot be retrieved."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class SecretBackend(ABC):
    """Blocking source of secret values."""

    @abstractmethod
    def access(self, name: str) -> str:
        """Return the current value of a secret, raising if it is absent."""


class GoogleSecretManagerBackend(SecretBackend):
    """Reads the latest version of a secret from Google Cloud Secret Manager."""

    def __init__(self, project_id: str, client=None):
        self.project_id = project_id
        if client is None:
            from google.cloud import secretmanager

            client = secretmanager.SecretManagerServiceClient()
        self._client = client

    def access(self, name: str) -> str:
        resource = f"projects/{self.project_id}/secrets/{name}/versions/latest"
        version = self._client.access_secret_version(request={"name": resource})
        payload = getattr(version, "payload", None)
        data = getattr(payload, "data", None)
        if not data:
            raise SecretAccessError(f"Secret {name} has no data")
        return data.decode("utf-8")


class EnvironmentSecretBackend(SecretBackend):
    """Reads secrets from environment variables (local development)."""

    def __init__(self, environ: dict[str, str] | None = None):
        self._environ = environ if environ is not None else os.environ

    def access(self, name: str) -> str:
        value = self._environ.get(name)
        if not value:
            raise SecretAccessError(f"Environment variable {name} is not set")
        return value


@dataclass
class _CachedSecret:
    value: str
    fetched_at: float


class SecretAccessor:
    """Cached accessor for provider credentials.

    The cache is plain process-lifetime state: it is read-mostly and only
    ever holds whole values, so no locking is used.
    """

    def __init__(
        self,
        backend: SecretBackend,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock=time.monotonic,
    ):
        """Initialize the accessor.

        Args:
            backend: Where secret values are read from.
            ttl_seconds: How long a fetched value is served from cache.
            clock: Monotonic clock, injectable for tests.
        """
        self.backend = backend
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: dict[str, _CachedSecret] = {}

    async def get_secret(self, name: str, use_cache: bool = True) -> str:
        """Get a secret value, serving it from cache when fresh.

        Args:
            name: Secret name (e.g. OPENAI_API_KEY).
            use_cache: Set to False to force a fetch from the backend.

        Returns:
            The secret value.

        Raises:
            SecretAccessError: If the secret is missing or the backend fails.
        """
        if use_cache:
            cached = self._cache.get(name)
            if cached and self._clock() - cached.fetched_at < self.ttl_seconds:
                return cached.value

        try:
            value = await asyncio.to_thread(self.backend.access, name)
        except Exception as e:
            logger.error(f"Failed to get secret {name}: {e}")
            raise SecretAccessError(f"Failed to retrieve secret: {name}", e) from e

        self._cache[name] = _CachedSecret(value=value, fetched_at=self._clock())
        return value

    async def get_secrets(self, names: list[str]) -> dict[str, str]:
        """Fetch several secrets, skipping any that cannot be retrieved."""

        async def fetch(name: str) -> tuple[str, str | None]:
            try:
                return name, await self.get_secret(name)
            except SecretAccessError as e:
                logger.warning(f"Failed to get secret: {name} ({e})")
                return name, None

        results = await asyncio.gather(*(fetch(name) for name in names))
        return {name: value for name, value in results if value is not None}

    def clear_cache(self) -> None:
        """Drop every cached value (e.g. after a secret rotation)."""
        self._cache.clear()
        logger.info("Secret cache cleared")


def build_secret_accessor(settings: Settings) -> SecretAccessor:
    """Create a secret accessor for the configured backend."""
    if settings.secret_backend == "gcp":
        if not settings.gcp_project_id:
            raise ValueError("GCP_PROJECT_ID is required when SECRET_BACKEND=gcp")
        backend: SecretBackend = GoogleSecretManagerBackend(settings.gcp_project_id)
    else:
        backend = EnvironmentSecretBackend()
    return SecretAccessor(backend, ttl_seconds=settings.secret_cache_ttl_seconds)
