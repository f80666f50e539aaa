"""Resumable document generation pipeline.

Public API:
- GeneratorService: generate, get_request, get_response, reap_stalled, ...
- create_generator_service: wire a service from settings
- GenerationRepository: aiosqlite persistence for requests and responses
- StagePipeline: stage state machine
- Models and error codes
"""

from src.generator.errors import (
    AccessDeniedError,
    ErrorCode,
    GenerationError,
    GenerationInProgressError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionError,
    RepositoryError,
    classify_error,
)
from src.generator.ids import new_request_id, response_id_for
from src.generator.models import (
    GenerateOptions,
    GenerateResult,
    GenerationRequest,
    GenerationResponse,
    GenerationType,
    Preferences,
    RequestStatus,
    StageId,
    StepStatus,
)
from src.generator.pipeline import StageEvent, StagePipeline
from src.generator.repository import GenerationRepository
from src.generator.service import GeneratorService, create_generator_service

__all__ = [
    "GeneratorService",
    "create_generator_service",
    "GenerationRepository",
    "StagePipeline",
    "StageEvent",
    "GenerateOptions",
    "GenerateResult",
    "GenerationRequest",
    "GenerationResponse",
    "GenerationType",
    "Preferences",
    "RequestStatus",
    "StageId",
    "StepStatus",
    "ErrorCode",
    "GenerationError",
    "PreconditionError",
    "InvalidTransitionError",
    "GenerationInProgressError",
    "NotFoundError",
    "AccessDeniedError",
    "RepositoryError",
    "classify_error",
    "new_request_id",
    "response_id_for",
]
