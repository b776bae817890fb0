"""Tests for workflow state entities."""

import pytest
from pydantic import ValidationError

from src.domain.entities.workflow_state import (
    WORKFLOW_STEPS,
    WorkflowState,
    WorkflowStatus,
    WorkflowStep,
    next_step,
)


class TestWorkflowState:
    """Tests for WorkflowState."""

    def test_step_set_iff_active(self):
        """Active needs a step; idle must not have one."""
        with pytest.raises(ValidationError):
            WorkflowState(status=WorkflowStatus.ACTIVE)
        with pytest.raises(ValidationError):
            WorkflowState(status=WorkflowStatus.IDLE, current_step=WorkflowStep.DOCS)

    def test_round_trip_json(self):
        """The persisted form validates back to the same state."""
        state = WorkflowState.active(WorkflowStep.BACKEND)
        assert WorkflowState.model_validate(state.model_dump(mode="json")) == state
        assert state.model_dump(mode="json") == {"status": "active", "current_step": "backend"}

    def test_order_and_next(self):
        """Steps run in order and the last has no successor."""
        assert [s.value for s in WORKFLOW_STEPS] == ["planning", "docs", "frontend", "backend", "testing"]
        assert next_step(WorkflowStep.PLANNING) is WorkflowStep.DOCS
        assert next_step(WorkflowStep.TESTING) is None
