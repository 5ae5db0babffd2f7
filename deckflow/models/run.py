"""Analysis run tracking."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from deckflow.models.enums import STAGE_COUNT, PipelineErrorKind, PipelineStage, RunState
from deckflow.models.queue import InvalidTransitionError, generate_id


class AnalysisRun(BaseModel):
    """One document moving through Convert -> Extract -> Analyze -> Score.

    ``current_stage`` only moves forward, one stage at a time. Not persisted
    by the pipeline; callers may keep a copy.
    """

    run_id: str = Field(default_factory=generate_id)
    document_name: str
    current_stage: PipelineStage = PipelineStage.CONVERT
    terminal_state: RunState = RunState.RUNNING
    failure_stage: Optional[PipelineStage] = None
    error_kind: Optional[PipelineErrorKind] = None
    error_message: Optional[str] = None
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    stage_durations: dict[str, float] = Field(default_factory=dict)

    @property
    def stage_index(self) -> int:
        """0-based index of the current stage."""
        return self.current_stage.index

    @property
    def is_running(self) -> bool:
        return self.terminal_state == RunState.RUNNING

    @property
    def step_label(self) -> str:
        """Progress text for "step N of 4" rendering."""
        return f"Step {self.stage_index + 1} of {STAGE_COUNT}: {self.current_stage.label}"

    def _require_running(self) -> None:
        if self.terminal_state != RunState.RUNNING:
            raise InvalidTransitionError(
                f"Run {self.run_id} already {self.terminal_state.value}"
            )

    def advance(self, stage: PipelineStage) -> None:
        """Move the stage pointer to the next stage."""
        self._require_running()
        if stage.index != self.current_stage.index + 1:
            raise InvalidTransitionError(
                f"Run {self.run_id} cannot move from {self.current_stage.value} to {stage.value}"
            )
        self.current_stage = stage

    def succeed(self) -> None:
        self._require_running()
        self.terminal_state = RunState.SUCCEEDED
        self.completed_at = datetime.utcnow()

    def fail(self, kind: PipelineErrorKind, message: str) -> None:
        """Freeze the stage pointer and record the aborting stage."""
        self._require_running()
        self.terminal_state = RunState.FAILED
        self.failure_stage = self.current_stage
        self.error_kind = kind
        self.error_message = message
        self.completed_at = datetime.utcnow()
