"""Provider credential access.

Public API:
- SecretAccessor: cached access to named secrets
- SecretBackend: backend interface (Secret Manager or environment)
- SecretAccessError: raised when a secret cannot be retrieved
- build_secret_accessor: construct an accessor from application settings
"""

from src.credentials.accessor import (
    EnvironmentSecretBackend,
    GoogleSecretManagerBackend,
    SecretAccessError,
    SecretAccessor,
    SecretBackend,
    build_secret_accessor,
)

__all__ = [
    "SecretAccessor",
    "SecretBackend",
    "EnvironmentSecretBackend",
    "GoogleSecretManagerBackend",
    "SecretAccessError",
    "build_secret_accessor",
]
