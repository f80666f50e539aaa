"""Stage state machine for the generation pipeline.

The four stages run strictly in order. Each stage moves
pending -> in_progress -> completed, or in_progress -> failed; any other
move raises InvalidTransitionError. After a failure no further stage may
start.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from src.generator.errors import InvalidTransitionError
from src.generator.models import GenerationStep, StageId, StepStatus


class StageEvent(str, Enum):
    START = "start"
    COMPLETE = "complete"
    FAIL = "fail"


STAGE_ORDER: tuple[StageId, ...] = (
    StageId.CREATE_REQUEST,
    StageId.GENERATE_CONTENT,
    StageId.CREATE_PDFS,
    StageId.UPLOAD_STORAGE,
)

STAGE_LABELS: dict[StageId, tuple[str, str]] = {
    StageId.CREATE_REQUEST: ("Create Request", "Request created successfully"),
    StageId.GENERATE_CONTENT: (
        "Generate AI Content",
        "Generating resume and cover letter content",
    ),
    StageId.CREATE_PDFS: ("Create PDFs", "Rendering PDF documents from generated content"),
    StageId.UPLOAD_STORAGE: ("Upload to Storage", "Uploading PDFs to artifact storage"),
}

# (current status, event) -> next status. Missing pairs are illegal.
TRANSITIONS: dict[tuple[StepStatus, StageEvent], StepStatus] = {
    (StepStatus.PENDING, StageEvent.START): StepStatus.IN_PROGRESS,
    (StepStatus.IN_PROGRESS, StageEvent.COMPLETE): StepStatus.COMPLETED,
    (StepStatus.IN_PROGRESS, StageEvent.FAIL): StepStatus.FAILED,
}


def initial_steps() -> list[GenerationStep]:
    """Return the four stage records, all pending."""
    return [
        GenerationStep(id=stage, name=STAGE_LABELS[stage][0], description=STAGE_LABELS[stage][1])
        for stage in STAGE_ORDER
    ]


class StagePipeline:
    """Explicit state machine over the ordered stage records."""

    def __init__(self, steps: list[GenerationStep] | None = None):
        steps = [step.model_copy() for step in steps] if steps else initial_steps()
        if [step.id for step in steps] != list(STAGE_ORDER):
            raise InvalidTransitionError("Steps do not match the stage sequence")
        self._steps = steps

    @property
    def steps(self) -> list[GenerationStep]:
        return [step.model_copy() for step in self._steps]

    def step(self, stage: StageId) -> GenerationStep:
        return self._steps[STAGE_ORDER.index(stage)]

    @property
    def active_stage(self) -> StageId | None:
        """First stage not in a terminal state, or None when all are."""
        for step in self._steps:
            if not step.status.is_terminal:
                return step.id
        return None

    @property
    def running_stage(self) -> StageId | None:
        for step in self._steps:
            if step.status == StepStatus.IN_PROGRESS:
                return step.id
        return None

    @property
    def first_incomplete(self) -> StageId | None:
        """First stage not completed; where a retry re-enters the work."""
        for step in self._steps:
            if step.status != StepStatus.COMPLETED:
                return step.id
        return None

    @property
    def has_failed(self) -> bool:
        return any(step.status == StepStatus.FAILED for step in self._steps)

    @property
    def is_complete(self) -> bool:
        return all(step.status == StepStatus.COMPLETED for step in self._steps)

    def apply(
        self, event: StageEvent, stage: StageId, at: datetime | None = None
    ) -> GenerationStep:
        """Apply an event to a stage and return the updated record.

        Raises:
            InvalidTransitionError: If the event is illegal for the stage's
                status or would break stage ordering.
        """
        at = at or datetime.now(timezone.utc)
        step = self.step(stage)
        target = TRANSITIONS.get((step.status, event))
        if target is None:
            raise InvalidTransitionError(
                f"Cannot {event.value} stage {stage.value} from {step.status.value}"
            )
        if event == StageEvent.START:
            if self.has_failed:
                raise InvalidTransitionError(
                    f"Cannot start stage {stage.value} after a failed stage"
                )
            if self.running_stage is not None:
                raise InvalidTransitionError(
                    f"Cannot start stage {stage.value} while "
                    f"{self.running_stage.value} is in progress"
                )
            if self.first_incomplete != stage:
                raise InvalidTransitionError(
                    f"Cannot start stage {stage.value} before "
                    f"{self.first_incomplete.value if self.first_incomplete else 'none'} completes"
                )
            step.started_at = at
        else:
            step.completed_at = at
        step.status = target
        return step.model_copy()

    def start(self, stage: StageId, at: datetime | None = None) -> GenerationStep:
        return self.apply(StageEvent.START, stage, at)

    def complete(self, stage: StageId, at: datetime | None = None) -> GenerationStep:
        return self.apply(StageEvent.COMPLETE, stage, at)

    def fail_running(self, at: datetime | None = None) -> StageId | None:
        """Fail the in-progress stage, if any, and return it."""
        stage = self.running_stage
        if stage is not None:
            self.apply(StageEvent.FAIL, stage, at)
        return stage
