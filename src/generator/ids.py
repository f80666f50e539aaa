"""Identifier helpers for generation requests and responses."""

from __future__ import annotations

import hashlib
import secrets
import string
import time

REQUEST_PREFIX = "job-finder-generator-request"
RESPONSE_PREFIX = "generator-response"

_ALPHABET = string.ascii_lowercase + string.digits


def new_request_id(timestamp_ms: int | None = None) -> str:
    """Return `job-finder-generator-request-<ms>-<9 random base36 chars>`."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"{REQUEST_PREFIX}-{timestamp_ms}-{suffix}"


def response_id_for(request_id: str) -> str:
    """Derive the response id for a request.

    A pure function of the request id, so the response can always be
    located from the request without a secondary index.
    """
    digest = hashlib.sha256(request_id.encode("utf-8")).hexdigest()
    return f"{RESPONSE_PREFIX}-{digest[:32]}"
