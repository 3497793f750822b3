"""Stage status produced by a file-completeness check."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StatusState(str, Enum):
    """Coarse completion state of a stage."""

    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETE = "Complete"


class RunProgress(BaseModel):
    """Files found for a single run number."""

    model_config = ConfigDict(frozen=True)

    run_number: str
    found: int = Field(ge=0)
    expected: int = Field(ge=0)

    @property
    def complete(self) -> bool:
        return self.found >= self.expected


class Status(BaseModel):
    """Outcome of checking one stage for a list of run numbers."""

    model_config = ConfigDict(frozen=True)

    label: str
    state: StatusState
    progress: float = Field(ge=0.0, le=1.0)
    runs: list[RunProgress] = Field(default_factory=list)
    host: str | None = Field(
        default=None, description="Machine that performed the check"
    )

    @classmethod
    def from_runs(
        cls, label: str, runs: list[RunProgress], host: str | None = None
    ) -> Status:
        """Aggregate per-run progress into a stage status."""
        expected = sum(run.expected for run in runs)
        found = sum(min(run.found, run.expected) for run in runs)
        progress = found / expected if expected else 1.0

        if progress >= 1.0:
            state = StatusState.COMPLETE
        elif found == 0:
            state = StatusState.NOT_STARTED
        else:
            state = StatusState.IN_PROGRESS

        return cls(label=label, state=state, progress=progress, runs=runs, host=host)
