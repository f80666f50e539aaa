"""Tests for error classification."""

import pytest

from src.content.generator import ContentGenerationError
from src.content.llm import LLMError
from src.credentials import SecretAccessError
from src.generator.errors import (
    AccessDeniedError,
    ErrorCode,
    GenerationInProgressError,
    NotFoundError,
    PreconditionError,
    RepositoryError,
    classify_error,
)
from src.rendering.renderer import RenderError
from src.storage.store import StorageError


class TestClassifyError:
    """Each failure family maps to one caller-visible code."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (ContentGenerationError("boom"), ErrorCode.AI_FAILED),
            (LLMError("timeout"), ErrorCode.AI_FAILED),
            (SecretAccessError("no key"), ErrorCode.AI_FAILED),
            (RenderError("bad template"), ErrorCode.PDF_FAILED),
            (StorageError("bucket gone"), ErrorCode.STORAGE_FAILED),
            (RepositoryError("locked"), ErrorCode.DATABASE_ERROR),
            (PreconditionError("missing role"), ErrorCode.VALIDATION_FAILED),
            (RuntimeError("unexpected"), ErrorCode.INTERNAL_ERROR),
        ],
    )
    def test_maps_error_to_code(self, error, expected):
        assert classify_error(error) == expected

    def test_code_values(self):
        assert ErrorCode.AI_FAILED.value == "GEN_AI_002"
        assert ErrorCode.PDF_FAILED.value == "GEN_PDF_001"
        assert ErrorCode.STORAGE_FAILED.value == "GEN_STOR_001"
        assert ErrorCode.INTERNAL_ERROR.value == "GEN_SYS_001"


class TestGenerationErrors:
    def test_in_progress_error_carries_request_id(self):
        error = GenerationInProgressError("req-1")
        assert error.request_id == "req-1"
        assert error.code == ErrorCode.IN_PROGRESS
        assert "req-1" in str(error)

    def test_access_errors_have_distinct_codes(self):
        assert NotFoundError("x").code == ErrorCode.NOT_FOUND
        assert AccessDeniedError("x").code == ErrorCode.FORBIDDEN

    def test_original_error_is_kept(self):
        cause = ValueError("bad")
        assert PreconditionError("invalid", cause).original_error is cause
