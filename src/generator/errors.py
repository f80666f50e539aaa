"""Error codes and exceptions for the generation pipeline."""

from __future__ import annotations

from enum import Enum

from src.content.generator import ContentGenerationError
from src.content.llm import LLMError
from src.credentials import SecretAccessError
from src.rendering.renderer import RenderError
from src.storage.store import StorageError


class ErrorCode(str, Enum):
    """Coarse, caller-visible failure codes."""

    VALIDATION_FAILED = "GEN_VAL_001"
    FORBIDDEN = "GEN_AUTH_002"
    NOT_FOUND = "GEN_REQ_001"
    IN_PROGRESS = "GEN_REQ_003"
    AI_FAILED = "GEN_AI_002"
    PDF_FAILED = "GEN_PDF_001"
    STORAGE_FAILED = "GEN_STOR_001"
    DATABASE_ERROR = "GEN_DB_001"
    INTERNAL_ERROR = "GEN_SYS_001"
    LEASE_EXPIRED = "GEN_SYS_002"


class RepositoryError(Exception):
    """Exception raised when a persistence operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class GenerationError(Exception):
    """Base class for orchestrator errors that carry their own code."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class PreconditionError(GenerationError):
    """Options were rejected before any request record was created."""

    code = ErrorCode.VALIDATION_FAILED


class InvalidTransitionError(GenerationError):
    """A stage or status change that the lifecycle does not allow."""


class GenerationInProgressError(GenerationError):
    """An attempt for the same idempotency key is still running."""

    code = ErrorCode.IN_PROGRESS

    def __init__(self, request_id: str):
        super().__init__(f"Generation already in progress: {request_id}")
        self.request_id = request_id


class NotFoundError(GenerationError):
    code = ErrorCode.NOT_FOUND


class AccessDeniedError(GenerationError):
    code = ErrorCode.FORBIDDEN


def classify_error(error: BaseException) -> ErrorCode:
    """Map a caught failure to the code reported in a failure response."""
    if isinstance(error, GenerationError):
        return error.code
    if isinstance(error, (ContentGenerationError, LLMError, SecretAccessError)):
        return ErrorCode.AI_FAILED
    if isinstance(error, RenderError):
        return ErrorCode.PDF_FAILED
    if isinstance(error, StorageError):
        return ErrorCode.STORAGE_FAILED
    if isinstance(error, RepositoryError):
        return ErrorCode.DATABASE_ERROR
    return ErrorCode.INTERNAL_ERROR
