"""Tests for TurnPlanner: workflow commands and model selection."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.application.chat.turn_planner import TurnPlanner, strip_ultrathink
from src.application.workflow.manager import WorkflowManager
from src.domain.entities.model_selection import RouterCategory, TaskType
from src.domain.entities.workflow_state import WorkflowStep
from src.domain.ports.config import ModelConfig, RoutingConfig, TaskModelsConfig
from src.domain.ports.llm import LLMResponse
from src.domain.services.model_router import ModelRouter
from src.infrastructure.persistence.workflow_store import InMemoryWorkflowStateStore

MODELS = ModelConfig(default="coder", router="router", ultrathink="thinker")
TASKS = TaskModelsConfig(use_task_based_switching=True, frontend="fe", backend="be", debugging="dbg")


@pytest.fixture
def mock_llm():
    llm = MagicMock()
    llm.generate = AsyncMock(return_value=LLMResponse(content="general", model="router"))
    return llm


@pytest.fixture
def workflow():
    return WorkflowManager(InMemoryWorkflowStateStore())


def _planner(llm, workflow, ai_router=False, tasks=TASKS, **routing) -> TurnPlanner:
    return TurnPlanner(
        llm,
        workflow,
        ModelRouter(MODELS, tasks),
        RoutingConfig(enable_ai_router=ai_router, **routing),
    )


class TestWorkflowCommands:
    """Tests for /workflow and /next handling."""

    def test_workflow_starts_planning(self, mock_llm, workflow):
        """/workflow starts at planning and keeps the request text."""
        planner = _planner(mock_llm, workflow)
        assert planner.apply_workflow_command("c1", "/workflow build a todo app") == "build a todo app"
        assert workflow.get_state("c1").current_step is WorkflowStep.PLANNING

    def test_bare_workflow(self, mock_llm, workflow):
        """A bare /workflow asks to start planning."""
        assert _planner(mock_llm, workflow).apply_workflow_command("c1", "/workflow") == "Start planning."

    def test_workflow_stop(self, mock_llm, workflow):
        """/workflow stop goes idle."""
        planner = _planner(mock_llm, workflow)
        planner.apply_workflow_command("c1", "/workflow")
        assert planner.apply_workflow_command("c1", "/workflow stop") == "Workflow stopped."
        assert workflow.get_state("c1").is_active is False

    def test_next(self, mock_llm, workflow):
        """/next advances and reports completion at the end."""
        planner = _planner(mock_llm, workflow)
        workflow.force("c1", WorkflowStep.BACKEND)
        assert planner.apply_workflow_command("c1", "/next") == "Proceed to the next step: testing."
        assert planner.apply_workflow_command("c1", "/next") == "Workflow completed."

    def test_plain_prompt_untouched(self, mock_llm, workflow):
        """Other prompts pass through unchanged."""
        assert _planner(mock_llm, workflow).apply_workflow_command("c1", "  hello ") == "  hello "


class TestPlan:
    """Tests for model selection order."""

    @pytest.mark.asyncio
    async def test_keyword_fallback(self, mock_llm, workflow):
        """Without a router, keywords pick the task model."""
        plan = await _planner(mock_llm, workflow).plan("c1", "add a button component")
        assert plan.task_type is TaskType.FRONTEND
        assert plan.model == "fe"
        mock_llm.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ultrathink_keyword(self, mock_llm, workflow):
        """The keyword selects the ultrathink model and is stripped."""
        plan = await _planner(mock_llm, workflow).plan("c1", "ultrathink about caching")
        assert plan.model == "thinker"
        assert plan.prompt == "about caching"
        assert plan.system_prompt_suffix

    @pytest.mark.asyncio
    async def test_router_category(self, mock_llm, workflow):
        """Router classification drives the model."""
        mock_llm.generate.return_value = LLMResponse(content="Backend.", model="router")
        plan = await _planner(mock_llm, workflow, ai_router=True).plan("c1", "something vague")
        assert plan.router_category is RouterCategory.BACKEND
        assert plan.model == "be"

    @pytest.mark.asyncio
    async def test_router_failure_falls_back(self, mock_llm, workflow):
        """Router errors fall back to keywords."""
        mock_llm.generate.side_effect = ValueError("boom")
        plan = await _planner(mock_llm, workflow, ai_router=True).plan("c1", "fix this crash")
        assert plan.router_category is None
        assert plan.task_type is TaskType.DEBUGGING
        assert plan.model == "dbg"

    @pytest.mark.asyncio
    async def test_workflow_step_drives_selection(self, mock_llm, workflow):
        """An active step sets task type, model and step prompt."""
        workflow.force("c1", WorkflowStep.FRONTEND)
        plan = await _planner(mock_llm, workflow).plan("c1", "continue")
        assert plan.workflow_step is WorkflowStep.FRONTEND
        assert plan.model == "fe"
        assert "Workflow Step: FRONTEND" in plan.system_prompt_suffix

    @pytest.mark.asyncio
    async def test_debugging_overrides_workflow(self, mock_llm, workflow):
        """A debugging classification beats the active step."""
        workflow.force("c1", WorkflowStep.FRONTEND)
        mock_llm.generate.return_value = LLMResponse(content="debugging", model="router")
        plan = await _planner(mock_llm, workflow, ai_router=True).plan("c1", "it broke")
        assert plan.model == "dbg"
        assert plan.workflow_step is WorkflowStep.FRONTEND
        assert plan.task_type is TaskType.DEBUGGING

    @pytest.mark.asyncio
    async def test_planning_step_kept_under_debugging_override(self, mock_llm, workflow):
        """The debugging model is used but planning rules still apply."""
        mock_llm.generate.return_value = LLMResponse(content="debugging", model="router")
        planner = _planner(mock_llm, workflow, ai_router=True)
        planner.apply_workflow_command("c1", "/workflow")
        plan = await planner.plan("c1", "fix the crash")
        assert plan.model == "dbg"
        assert plan.workflow_step is WorkflowStep.PLANNING
        assert "Workflow Step" not in plan.system_prompt_suffix

    @pytest.mark.asyncio
    async def test_override_can_be_disabled(self, mock_llm, workflow):
        """With the override off the step wins."""
        workflow.force("c1", WorkflowStep.FRONTEND)
        mock_llm.generate.return_value = LLMResponse(content="debugging", model="router")
        planner = _planner(mock_llm, workflow, ai_router=True, debugging_overrides_workflow=False)
        plan = await planner.plan("c1", "it broke")
        assert plan.workflow_step is WorkflowStep.FRONTEND

    @pytest.mark.asyncio
    async def test_explicit_model_wins(self, mock_llm, workflow):
        """A requested model overrides routing."""
        plan = await _planner(mock_llm, workflow).plan("c1", "add a button", model=" custom ")
        assert plan.model == "custom"

    @pytest.mark.asyncio
    async def test_switching_disabled_keeps_default(self, mock_llm, workflow):
        """With task switching off the default model is used."""
        planner = _planner(mock_llm, workflow, tasks=TaskModelsConfig())
        plan = await planner.plan("c1", "add a button component")
        assert plan.model == "coder"
        assert plan.task_type is None


def test_strip_ultrathink():
    """Keyword removal is case-insensitive."""
    assert strip_ultrathink("UltraThink please") == "please"
