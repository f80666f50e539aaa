"""Generator Service.

Orchestrates the document generation pipeline: create the request record,
generate content with the AI content generator, render PDFs, upload them
to the artifact store and record exactly one response per request.

Progress is persisted before each stage begins, so a poller always sees a
prefix of completed stages. A failed run can be continued by calling
generate() again with the same idempotency key; the new attempt reuses the
content the failed attempt already produced.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from src.config.settings import Settings, get_settings
from src.content.generator import ContentGenerationError, ContentGenerator
from src.content.models import ContentResult, CoverLetterContent, ResumeContent
from src.credentials import build_secret_accessor
from src.generator.errors import (
    AccessDeniedError,
    ErrorCode,
    GenerationInProgressError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionError,
    classify_error,
)
from src.generator.ids import new_request_id, response_id_for
from src.generator.models import (
    ArtifactRef,
    GenerateOptions,
    GenerateResult,
    GenerationRequest,
    GenerationResponse,
    GenerationResult,
    IntermediateResults,
    RequestStatus,
    ResponseError,
    ResponseFiles,
    ResponseMetrics,
    StageId,
    TokenUsageMetrics,
)
from src.generator.pipeline import StagePipeline, initial_steps
from src.generator.repository import GenerationRepository
from src.rendering.config import HEX_COLOR
from src.rendering.renderer import PDFRenderer, build_filename, format_letter_date
from src.storage.store import ArtifactStore, DocumentType, build_artifact_store

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Run:
    """Mutable state of one generate() invocation."""

    request: GenerationRequest
    pipeline: StagePipeline
    started: float
    status: RequestStatus = RequestStatus.PENDING
    content: IntermediateResults = field(default_factory=IntermediateResults)
    resume_pdf: bytes | None = None
    cover_letter_pdf: bytes | None = None
    files: ResponseFiles = field(default_factory=ResponseFiles)

    @property
    def request_id(self) -> str:
        return self.request.id

    def duration_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)


class GeneratorService:
    """Pipeline orchestrator for resume and cover letter generation."""

    def __init__(
        self,
        repository: GenerationRepository,
        content_generator: ContentGenerator,
        renderer: PDFRenderer,
        store: ArtifactStore,
        settings: Settings | None = None,
        clock=_utcnow,
    ):
        """Initialize the generator service.

        Args:
            repository: Persistence for request and response records.
            content_generator: AI content generator.
            renderer: PDF renderer.
            store: Artifact store for rendered PDFs.
            settings: Optional Settings. Uses global settings if not provided.
            clock: Returns the current UTC time; injectable for tests.
        """
        self.repository = repository
        self.content_generator = content_generator
        self.renderer = renderer
        self.store = store
        self.settings = settings or get_settings()
        self._clock = clock

    async def initialize(self) -> None:
        await self.repository.initialize()

    async def close(self) -> None:
        await self.repository.close()

    # Preconditions

    @staticmethod
    def parse_options(data: dict[str, Any]) -> GenerateOptions:
        """Build GenerateOptions from a raw payload.

        Raises:
            PreconditionError: If the payload does not describe a valid request.
        """
        try:
            return GenerateOptions.model_validate(data)
        except ValidationError as e:
            raise PreconditionError(f"Invalid generation options: {e}", e) from e

    def validate_options(self, options: GenerateOptions) -> None:
        """Reject options that cannot produce a document.

        Raises:
            PreconditionError: Describing the first problem found.
        """
        if not options.job.role.strip() or not options.job.company.strip():
            raise PreconditionError("Job role and company are required")
        if not options.personal_info.name.strip() or not options.personal_info.email.strip():
            raise PreconditionError("Personal info must include name and email")
        accent = options.personal_info.accent_color
        if not accent:
            raise PreconditionError("Personal info must include an accent color")
        if not HEX_COLOR.match(accent):
            raise PreconditionError(f"Invalid accent color: {accent}")
        if not options.owner_id.strip():
            raise PreconditionError("Owner id is required")
        if options.idempotency_key is not None and not options.idempotency_key.strip():
            raise PreconditionError("Idempotency key must not be empty")

    # Generation

    async def generate(self, options: GenerateOptions) -> GenerateResult:
        """Run the full pipeline for one request.

        Returns:
            GenerateResult with the request and response ids; public URLs are
            present only on success.

        Raises:
            PreconditionError: If the options are invalid (nothing is persisted).
            GenerationInProgressError: If an attempt with the same idempotency
                key is still running.
            RepositoryError: If the request record cannot be created, or the
                failure response itself cannot be written.
        """
        self.validate_options(options)

        previous: GenerationRequest | None = None
        if options.idempotency_key:
            previous = await self.repository.find_latest_by_idempotency_key(
                options.idempotency_key, options.owner_id
            )
            if previous is not None:
                if previous.status == RequestStatus.COMPLETED:
                    logger.info(
                        f"Idempotency key {options.idempotency_key} already completed "
                        f"by {previous.id}"
                    )
                    return await self._result_for_existing(previous)
                if not previous.status.is_terminal:
                    raise GenerationInProgressError(previous.id)

        started = time.monotonic()
        request = self._new_request(options, previous)
        await self.repository.insert_request(request)
        logger.info(
            f"Created generation request {request.id} "
            f"({request.generate_type.value}, attempt {request.attempt})"
        )

        run = _Run(
            request=request,
            pipeline=StagePipeline(request.steps),
            started=started,
            content=request.intermediate_results.model_copy(),
        )

        try:
            now = self._clock()
            run.pipeline.start(StageId.CREATE_REQUEST, now)
            run.pipeline.complete(StageId.CREATE_REQUEST, now)
            await self._start_stage(run, StageId.GENERATE_CONTENT, RequestStatus.PROCESSING)
            await self._generate_content(run)

            await self._finish_stage(run, StageId.GENERATE_CONTENT)
            await self._start_stage(run, StageId.CREATE_PDFS)
            await self._render(run)

            await self._finish_stage(run, StageId.CREATE_PDFS)
            await self._start_stage(run, StageId.UPLOAD_STORAGE)
            await self._upload(run)

            run.pipeline.complete(StageId.UPLOAD_STORAGE, self._clock())
            await self._save(run, status=RequestStatus.COMPLETED, lease_expires_at=None)
        except Exception as e:
            return await self._fail(run, e)

        return await self._succeed(run)

    def _new_request(
        self, options: GenerateOptions, previous: GenerationRequest | None
    ) -> GenerationRequest:
        now = self._clock()
        if previous is None:
            return GenerationRequest(
                id=new_request_id(),
                generate_type=options.generate_type,
                job=options.job,
                personal_info=options.personal_info,
                experience_entries=options.experience_entries,
                owner_id=options.owner_id,
                steps=initial_steps(),
                job_match_id=options.job_match_id,
                job_match=options.job_match,
                preferences=options.preferences,
                custom_prompts=options.custom_prompts,
                idempotency_key=options.idempotency_key,
                created_at=now,
                updated_at=now,
            )

        # Continue a failed attempt from its own input snapshot. Content is
        # carried over; token usage is not, so each response bills only the
        # calls its own attempt made.
        carried = IntermediateResults(
            resume_content=previous.intermediate_results.resume_content,
            cover_letter_content=previous.intermediate_results.cover_letter_content,
            model=previous.intermediate_results.model,
        )
        logger.info(
            f"Resuming {previous.id} (failed at "
            f"{StagePipeline(previous.steps).first_incomplete}) as attempt {previous.attempt + 1}"
        )
        return previous.model_copy(
            update={
                "id": new_request_id(),
                "status": RequestStatus.PENDING,
                "steps": initial_steps(),
                "intermediate_results": carried,
                "attempt": previous.attempt + 1,
                "resumed_from": previous.id,
                "lease_expires_at": None,
                "response_id": None,
                "created_at": now,
                "updated_at": now,
            }
        )

    async def _save(
        self, run: _Run, status: RequestStatus | None = None, **fields: Any
    ) -> None:
        """Persist steps (plus extra fields), guarding against concurrent finalization."""
        update: dict[str, Any] = {
            "steps": [step.model_dump(mode="json") for step in run.pipeline.steps]
        }
        if status is not None:
            if not run.status.can_transition_to(status):
                raise InvalidTransitionError(
                    f"Request {run.request_id} cannot move from {run.status.value} to {status.value}"
                )
            update["status"] = status.value
        for key, value in fields.items():
            update[key] = value.isoformat() if isinstance(value, datetime) else value

        updated = await self.repository.update_request_fields(
            run.request_id, update, expected_status=run.status
        )
        if updated is None:
            raise InvalidTransitionError(
                f"Request {run.request_id} is no longer {run.status.value}"
            )
        if status is not None:
            run.status = status

    async def _start_stage(
        self, run: _Run, stage: StageId, status: RequestStatus | None = None
    ) -> None:
        now = self._clock()
        run.pipeline.start(stage, now)
        lease = now + timedelta(seconds=self.settings.max_stage_seconds)
        await self._save(run, status=status, lease_expires_at=lease)
        logger.info(f"[{run.request_id}] Stage {stage.value} started")

    async def _finish_stage(self, run: _Run, stage: StageId) -> None:
        run.pipeline.complete(stage, self._clock())
        logger.info(f"[{run.request_id}] Stage {stage.value} completed")

    async def _generate_content(self, run: _Run) -> None:
        request = run.request
        jobs = []
        if request.generate_type.wants_resume:
            if run.content.resume_content is None:
                jobs.append(self._generate_resume)
            else:
                logger.info(f"[{run.request_id}] Reusing resume content from {request.resumed_from}")
        if request.generate_type.wants_cover_letter:
            if run.content.cover_letter_content is None:
                jobs.append(self._generate_cover_letter)
            else:
                logger.info(
                    f"[{run.request_id}] Reusing cover letter content from {request.resumed_from}"
                )

        if self.settings.concurrent_generation and len(jobs) > 1:
            # Every call settles before the first error is raised
            outcomes = await asyncio.gather(
                *(job(run) for job in jobs), return_exceptions=True
            )
            errors = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
            for extra in errors[1:]:
                logger.error(f"[{run.request_id}] Concurrent content call also failed: {extra}")
            if errors:
                raise errors[0]
        else:
            for job in jobs:
                await job(run)

    async def _generate_resume(self, run: _Run) -> None:
        request = run.request
        try:
            result: ContentResult[ResumeContent] = await self.content_generator.generate_resume(
                request.personal_info,
                request.job,
                request.experience_entries,
                emphasize=request.preferences.emphasize or None,
                job_match=request.job_match,
                custom_prompts=request.custom_prompts,
            )
        except ContentGenerationError as e:
            if e.usage is not None:
                await self._record_usage(
                    run, IntermediateResults(resume_token_usage=e.usage, model=e.model)
                )
            raise
        partial = IntermediateResults(
            resume_content=result.content,
            resume_token_usage=result.token_usage,
            model=result.model,
        )
        await self.repository.merge_intermediate_results(run.request_id, partial)
        run.content.resume_content = result.content
        run.content.resume_token_usage = result.token_usage
        run.content.model = result.model

    async def _generate_cover_letter(self, run: _Run) -> None:
        request = run.request
        try:
            result: ContentResult[
                CoverLetterContent
            ] = await self.content_generator.generate_cover_letter(
                request.personal_info,
                request.job,
                request.experience_entries,
                job_match=request.job_match,
                custom_prompts=request.custom_prompts,
            )
        except ContentGenerationError as e:
            if e.usage is not None:
                await self._record_usage(
                    run, IntermediateResults(cover_letter_token_usage=e.usage, model=e.model)
                )
            raise
        partial = IntermediateResults(
            cover_letter_content=result.content,
            cover_letter_token_usage=result.token_usage,
            model=result.model,
        )
        await self.repository.merge_intermediate_results(run.request_id, partial)
        run.content.cover_letter_content = result.content
        run.content.cover_letter_token_usage = result.token_usage
        run.content.model = result.model

    async def _record_usage(self, run: _Run, partial: IntermediateResults) -> None:
        """Persist token usage of a call that was charged but produced no content."""
        await self.repository.merge_intermediate_results(run.request_id, partial)
        if partial.resume_token_usage is not None:
            run.content.resume_token_usage = partial.resume_token_usage
        if partial.cover_letter_token_usage is not None:
            run.content.cover_letter_token_usage = partial.cover_letter_token_usage
        if partial.model is not None:
            run.content.model = partial.model

    async def _render(self, run: _Run) -> None:
        info = run.request.personal_info
        if run.content.resume_content is not None and run.request.generate_type.wants_resume:
            run.resume_pdf = await asyncio.to_thread(
                self.renderer.render_resume,
                run.content.resume_content,
                run.request.preferences.style or info.default_style,
                info.accent_color,
            )
        if (
            run.content.cover_letter_content is not None
            and run.request.generate_type.wants_cover_letter
        ):
            run.cover_letter_pdf = await asyncio.to_thread(
                self.renderer.render_cover_letter,
                run.content.cover_letter_content,
                info.name,
                info.email,
                info.accent_color,
                format_letter_date(self._clock().date()),
            )

    async def _upload(self, run: _Run) -> None:
        info = run.request.personal_info
        company = run.request.job.company
        if run.resume_pdf is not None:
            run.files.resume = await self._upload_one(
                run.resume_pdf,
                build_filename(info.name, company, "resume", run.request_id),
                DocumentType.RESUME,
            )
        if run.cover_letter_pdf is not None:
            run.files.cover_letter = await self._upload_one(
                run.cover_letter_pdf,
                build_filename(info.name, company, "cover-letter", run.request_id),
                DocumentType.COVER_LETTER,
            )

    async def _upload_one(
        self, buffer: bytes, filename: str, document_type: DocumentType
    ) -> ArtifactRef:
        upload = await self.store.upload_pdf(buffer, filename, document_type)
        return ArtifactRef(
            path=upload.path,
            filename=upload.filename,
            size_bytes=upload.size_bytes,
            storage_class=upload.storage_class,
            public_url=self.store.public_url(upload.path),
        )

    def _metrics(self, content: IntermediateResults, duration_ms: int) -> ResponseMetrics:
        total = content.total_usage()
        return ResponseMetrics(
            duration_ms=max(duration_ms, 0),
            token_usage=TokenUsageMetrics.from_intermediate(content),
            cost_usd=self.content_generator.calculate_cost(total, content.model),
            model=content.model,
        )

    async def _record_response(self, request_id: str, response: GenerationResponse) -> None:
        await self.repository.insert_response(response)
        await self.repository.update_request_fields(request_id, {"response_id": response.id})

    async def _succeed(self, run: _Run) -> GenerateResult:
        wants = run.request.generate_type
        response = GenerationResponse(
            id=response_id_for(run.request_id),
            request_id=run.request_id,
            result=GenerationResult(
                success=True,
                resume=run.content.resume_content if wants.wants_resume else None,
                cover_letter=(
                    run.content.cover_letter_content if wants.wants_cover_letter else None
                ),
            ),
            metrics=self._metrics(run.content, run.duration_ms()),
            files=run.files,
            created_at=self._clock(),
        )
        await self._record_response(run.request_id, response)
        logger.info(
            f"Generation {run.request_id} completed in {response.metrics.duration_ms}ms "
            f"(${response.metrics.cost_usd:.4f})"
        )
        return GenerateResult(
            request_id=run.request_id,
            response_id=response.id,
            success=True,
            resume_url=run.files.resume.public_url if run.files.resume else None,
            cover_letter_url=(
                run.files.cover_letter.public_url if run.files.cover_letter else None
            ),
        )

    async def _fail(self, run: _Run, error: Exception) -> GenerateResult:
        """Record the failure once: status failed plus a failure response.

        Errors raised while recording propagate to the caller.
        """
        code = classify_error(error)
        failed_stage = run.pipeline.fail_running(self._clock())
        logger.error(
            f"Generation {run.request_id} failed"
            f"{f' in stage {failed_stage.value}' if failed_stage else ''} [{code.value}]: {error}"
        )

        await self._save(run, status=RequestStatus.FAILED, lease_expires_at=None)
        response = GenerationResponse(
            id=response_id_for(run.request_id),
            request_id=run.request_id,
            result=GenerationResult(
                success=False,
                error=ResponseError(message=str(error), code=code.value),
            ),
            metrics=self._metrics(run.content, run.duration_ms()),
            created_at=self._clock(),
        )
        await self._record_response(run.request_id, response)
        return GenerateResult(
            request_id=run.request_id,
            response_id=response.id,
            success=False,
            error_code=code.value,
        )

    async def _result_for_existing(self, request: GenerationRequest) -> GenerateResult:
        response_id = request.response_id or response_id_for(request.id)
        response = await self.repository.get_response(response_id)
        files = response.files if response else ResponseFiles()
        return GenerateResult(
            request_id=request.id,
            response_id=response_id,
            success=bool(response and response.result.success),
            resume_url=files.resume.public_url if files.resume else None,
            cover_letter_url=files.cover_letter.public_url if files.cover_letter else None,
        )

    # Watchdog

    async def reap_stalled(self, now: datetime | None = None) -> list[str]:
        """Fail processing requests whose stage lease has expired.

        Returns:
            Ids of the requests that were reaped.
        """
        now = now or self._clock()
        reaped: list[str] = []
        for request in await self.repository.list_stalled(now):
            pipeline = StagePipeline(request.steps)
            stage = pipeline.fail_running(now)
            updated = await self.repository.update_request_fields(
                request.id,
                {
                    "steps": [step.model_dump(mode="json") for step in pipeline.steps],
                    "status": RequestStatus.FAILED.value,
                    "lease_expires_at": None,
                },
                expected_status=RequestStatus.PROCESSING,
            )
            if updated is None:
                # Finished between the scan and the update
                continue

            duration_ms = int((now - request.created_at).total_seconds() * 1000)
            response = GenerationResponse(
                id=response_id_for(request.id),
                request_id=request.id,
                result=GenerationResult(
                    success=False,
                    error=ResponseError(
                        message=(
                            f"Stage {stage.value if stage else 'unknown'} exceeded "
                            f"{self.settings.max_stage_seconds}s lease"
                        ),
                        code=ErrorCode.LEASE_EXPIRED.value,
                    ),
                ),
                metrics=self._metrics(request.intermediate_results, duration_ms),
                created_at=now,
            )
            await self._record_response(request.id, response)
            logger.warning(f"Reaped stalled generation request {request.id}")
            reaped.append(request.id)
        return reaped

    # Reads

    async def get_request(self, request_id: str) -> GenerationRequest | None:
        return await self.repository.get_request(request_id)

    async def get_response(self, response_id: str) -> GenerationResponse | None:
        return await self.repository.get_response(response_id)

    async def get_request_with_response(
        self, request_id: str
    ) -> tuple[GenerationRequest | None, GenerationResponse | None]:
        """Fetch a request and, once it has finished, its response."""
        request, response = await asyncio.gather(
            self.repository.get_request(request_id),
            self.repository.get_response(response_id_for(request_id)),
        )
        return request, response

    async def list_requests(
        self, owner_id: str, limit: int | None = None
    ) -> list[GenerationRequest]:
        return await self.repository.list_requests(owner_id, limit=limit)

    async def get_request_for_owner(self, request_id: str, owner_id: str) -> GenerationRequest:
        """Fetch a request on behalf of a user.

        Raises:
            NotFoundError: If the request does not exist.
            AccessDeniedError: If the user does not own it.
        """
        request = await self.repository.get_request(request_id)
        if request is None:
            raise NotFoundError(f"Generation request not found: {request_id}")
        if request.owner_id != owner_id:
            raise AccessDeniedError("Access denied")
        return request

    async def get_response_for_owner(
        self, response_id: str, owner_id: str
    ) -> GenerationResponse:
        """Fetch a response, checking ownership through its request.

        Raises:
            NotFoundError: If the response does not exist.
            AccessDeniedError: If the user does not own the request behind it.
        """
        response = await self.repository.get_response(response_id)
        if response is None:
            raise NotFoundError(f"Generation response not found: {response_id}")
        request = await self.repository.get_request(response.request_id)
        if request is None or request.owner_id != owner_id:
            raise AccessDeniedError("Access denied")
        return response


def create_generator_service(settings: Settings | None = None) -> GeneratorService:
    """Wire a GeneratorService from application settings.

    Call `await service.initialize()` before use.
    """
    settings = settings or get_settings()
    accessor = build_secret_accessor(settings)
    return GeneratorService(
        repository=GenerationRepository(settings.generator_db_path),
        content_generator=ContentGenerator(secret_accessor=accessor),
        renderer=PDFRenderer(),
        store=build_artifact_store(settings),
        settings=settings,
    )
