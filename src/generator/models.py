"""Data models for the generation pipeline.

Contains Pydantic models for:
- GenerationRequest: the unit of work and its persisted progress
- GenerationResponse: the single outcome record of a request
- GenerateOptions / GenerateResult: the orchestrator's call contract
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.content.models import (
    CoverLetterContent,
    CustomPrompts,
    ExperienceEntry,
    JobInfo,
    JobMatchData,
    PersonalInfo,
    ResumeContent,
    TokenUsage,
)


class GenerationType(str, Enum):
    """Which documents a request produces."""

    RESUME = "resume"
    COVER_LETTER = "coverLetter"
    BOTH = "both"

    @property
    def wants_resume(self) -> bool:
        return self in (GenerationType.RESUME, GenerationType.BOTH)

    @property
    def wants_cover_letter(self) -> bool:
        return self in (GenerationType.COVER_LETTER, GenerationType.BOTH)


class RequestStatus(str, Enum):
    """Request lifecycle status. Moves forward only."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.COMPLETED, RequestStatus.FAILED)

    def can_transition_to(self, target: RequestStatus) -> bool:
        return target in _STATUS_TRANSITIONS[self]


_STATUS_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.PROCESSING, RequestStatus.FAILED}),
    RequestStatus.PROCESSING: frozenset({RequestStatus.COMPLETED, RequestStatus.FAILED}),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.FAILED: frozenset(),
}


class StageId(str, Enum):
    """The four pipeline stages, in execution order."""

    CREATE_REQUEST = "create-request"
    GENERATE_CONTENT = "generate-content"
    CREATE_PDFS = "create-pdfs"
    UPLOAD_STORAGE = "upload-storage"


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED)


class GenerationStep(BaseModel):
    """Persisted record of one stage."""

    id: StageId
    name: str
    description: str
    status: StepStatus = StepStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None


class IntermediateResults(BaseModel):
    """Partial outputs accumulated as stages complete."""

    resume_content: ResumeContent | None = None
    cover_letter_content: CoverLetterContent | None = None
    resume_token_usage: TokenUsage | None = None
    cover_letter_token_usage: TokenUsage | None = None
    model: str | None = None

    def total_usage(self) -> TokenUsage:
        total = TokenUsage()
        for usage in (self.resume_token_usage, self.cover_letter_token_usage):
            if usage is not None:
                total = total + usage
        return total


class Preferences(BaseModel):
    """Caller preferences that steer generation and rendering."""

    emphasize: list[str] = Field(default_factory=list)
    style: str | None = Field(default=None, description="Resume template style override")


class GenerationRequest(BaseModel):
    """A generation request and its persisted progress.

    Personal info and experience are captured by value so later profile
    edits do not alter an in-flight or completed generation.
    """

    id: str
    generate_type: GenerationType
    job: JobInfo
    personal_info: PersonalInfo
    experience_entries: list[ExperienceEntry] = Field(default_factory=list)
    owner_id: str
    is_public: bool = False
    status: RequestStatus = RequestStatus.PENDING
    steps: list[GenerationStep] = Field(default_factory=list)
    intermediate_results: IntermediateResults = Field(default_factory=IntermediateResults)
    job_match_id: str | None = None
    job_match: JobMatchData | None = None
    preferences: Preferences = Field(default_factory=Preferences)
    custom_prompts: CustomPrompts | None = None
    idempotency_key: str | None = None
    attempt: int = Field(default=1, ge=1)
    resumed_from: str | None = Field(
        default=None, description="Failed attempt this one continues from"
    )
    lease_expires_at: datetime | None = None
    response_id: str | None = None
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationRequest:
        """Deserialize from a dictionary."""
        return cls.model_validate(data)


class ArtifactRef(BaseModel):
    """Where a stored document lives."""

    path: str
    filename: str | None = None
    size_bytes: int = Field(ge=0)
    storage_class: str = "STANDARD"
    public_url: str | None = None


class ResponseError(BaseModel):
    message: str
    code: str


class GenerationResult(BaseModel):
    success: bool
    resume: ResumeContent | None = None
    cover_letter: CoverLetterContent | None = None
    error: ResponseError | None = None


class TokenUsageMetrics(BaseModel):
    resume_prompt: int = 0
    resume_completion: int = 0
    cover_letter_prompt: int = 0
    cover_letter_completion: int = 0
    total: int = 0

    @classmethod
    def from_intermediate(cls, results: IntermediateResults) -> TokenUsageMetrics:
        resume = results.resume_token_usage or TokenUsage()
        letter = results.cover_letter_token_usage or TokenUsage()
        return cls(
            resume_prompt=resume.prompt_tokens,
            resume_completion=resume.completion_tokens,
            cover_letter_prompt=letter.prompt_tokens,
            cover_letter_completion=letter.completion_tokens,
            total=resume.total_tokens + letter.total_tokens,
        )


class ResponseMetrics(BaseModel):
    duration_ms: int = Field(ge=0)
    token_usage: TokenUsageMetrics = Field(default_factory=TokenUsageMetrics)
    cost_usd: float = Field(default=0.0, ge=0)
    model: str | None = None


class ResponseFiles(BaseModel):
    resume: ArtifactRef | None = None
    cover_letter: ArtifactRef | None = None


class GenerationResponse(BaseModel):
    """The single, immutable outcome record of a request."""

    id: str
    request_id: str
    result: GenerationResult
    metrics: ResponseMetrics
    files: ResponseFiles = Field(default_factory=ResponseFiles)
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationResponse:
        """Deserialize from a dictionary."""
        return cls.model_validate(data)


class GenerateOptions(BaseModel):
    """Inputs to GeneratorService.generate."""

    generate_type: GenerationType
    job: JobInfo
    personal_info: PersonalInfo
    experience_entries: list[ExperienceEntry] = Field(default_factory=list)
    owner_id: str
    job_match_id: str | None = None
    job_match: JobMatchData | None = None
    preferences: Preferences = Field(default_factory=Preferences)
    custom_prompts: CustomPrompts | None = None
    idempotency_key: str | None = None


class GenerateResult(BaseModel):
    """What generate() hands back to the caller."""

    request_id: str
    response_id: str
    success: bool
    resume_url: str | None = None
    cover_letter_url: str | None = None
    error_code: str | None = None
