"""Workflow state persisted per conversation."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


class WorkflowStep(str, Enum):
    """Build phases in execution order."""

    PLANNING = "planning"
    DOCS = "docs"
    FRONTEND = "frontend"
    BACKEND = "backend"
    TESTING = "testing"


WORKFLOW_STEPS: tuple[WorkflowStep, ...] = tuple(WorkflowStep)


class WorkflowStatus(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class WorkflowState(BaseModel):
    """Status plus current step. ``current_step`` is set iff status is ACTIVE."""

    model_config = ConfigDict(frozen=True)

    status: WorkflowStatus = WorkflowStatus.IDLE
    current_step: WorkflowStep | None = None

    @model_validator(mode="after")
    def _check_step_matches_status(self) -> "WorkflowState":
        if (self.status is WorkflowStatus.ACTIVE) != (self.current_step is not None):
            raise ValueError(
                f"current_step must be set iff status is active "
                f"(status={self.status.value}, current_step={self.current_step})"
            )
        return self

    @classmethod
    def idle(cls) -> "WorkflowState":
        return cls()

    @classmethod
    def active(cls, step: WorkflowStep) -> "WorkflowState":
        return cls(status=WorkflowStatus.ACTIVE, current_step=step)

    @property
    def is_active(self) -> bool:
        return self.status is WorkflowStatus.ACTIVE


def next_step(step: WorkflowStep) -> WorkflowStep | None:
    """Step after ``step``, or None when ``step`` is the last one."""
    index = WORKFLOW_STEPS.index(step)
    if index + 1 < len(WORKFLOW_STEPS):
        return WORKFLOW_STEPS[index + 1]
    return None
