"""Tests for WorkflowManager and per-step prompts."""

import pytest

from src.application.workflow.manager import WorkflowManager
from src.application.workflow.steps import system_prompt_for_step, task_type_for_step
from src.domain.entities.model_selection import TaskType
from src.domain.entities.workflow_state import WorkflowState, WorkflowStatus, WorkflowStep
from src.infrastructure.persistence.workflow_store import InMemoryWorkflowStateStore


@pytest.fixture
def store():
    return InMemoryWorkflowStateStore()


@pytest.fixture
def manager(store):
    return WorkflowManager(store)


class TestWorkflowManager:
    """Tests for start / advance / force / stop."""

    def test_missing_state_is_idle(self, manager):
        """Unknown conversations are idle."""
        state = manager.get_state("c1")
        assert state.status is WorkflowStatus.IDLE
        assert state.current_step is None

    def test_start_then_advance_through_all_steps(self, manager):
        """Planning, then five advances end the workflow."""
        assert manager.start("c1") is WorkflowStep.PLANNING
        steps = [manager.advance("c1") for _ in range(5)]
        assert steps == [
            WorkflowStep.DOCS,
            WorkflowStep.FRONTEND,
            WorkflowStep.BACKEND,
            WorkflowStep.TESTING,
            None,
        ]
        assert manager.get_state("c1") == WorkflowState.idle()

    def test_advance_when_idle(self, manager):
        """Advancing an idle workflow changes nothing."""
        assert manager.advance("c1") is None
        assert manager.get_state("c1").is_active is False

    def test_invalid_step_resets_to_planning(self, manager, store):
        """An unknown persisted step resets to planning."""
        store.put_raw("c1", {"status": "active", "current_step": "deploy"})
        assert manager.advance("c1") is WorkflowStep.PLANNING
        assert manager.get_state("c1") == WorkflowState.active(WorkflowStep.PLANNING)

    def test_invalid_record_reads_idle(self, manager, store):
        """A record breaking the status/step rule reads as idle."""
        store.put_raw("c1", {"status": "active", "current_step": None})
        assert manager.get_state("c1").is_active is False

    def test_force_and_stop(self, manager):
        """force jumps to a step; stop returns to idle."""
        assert manager.force("c1", WorkflowStep.BACKEND) is WorkflowStep.BACKEND
        assert manager.get_state("c1").current_step is WorkflowStep.BACKEND
        manager.stop("c1")
        assert manager.get_state("c1").is_active is False

    def test_restart_from_any_step(self, manager):
        """start always returns to planning."""
        manager.force("c1", WorkflowStep.TESTING)
        assert manager.start("c1") is WorkflowStep.PLANNING

    def test_conversations_are_independent(self, manager):
        """State is per conversation."""
        manager.start("a")
        assert manager.get_state("b").is_active is False


class TestSteps:
    """Tests for step prompts and task hints."""

    @pytest.mark.parametrize("step", list(WorkflowStep))
    def test_every_step_has_prompt(self, step):
        """Each step has a role prompt with the checklist requirement."""
        prompt = system_prompt_for_step(step)
        assert "CHECKLIST REQUIREMENT" in prompt

    def test_task_hints(self):
        """Frontend and backend steps route to their task types."""
        assert task_type_for_step(WorkflowStep.FRONTEND) is TaskType.FRONTEND
        assert task_type_for_step(WorkflowStep.BACKEND) is TaskType.BACKEND
        assert task_type_for_step(WorkflowStep.PLANNING) is TaskType.GENERAL
