"""Turn planner - workflow prompt commands and target model selection.

Runs before every chat turn. Selection order:

1. an explicit model in the request;
2. active workflow: its step drives the task type, unless the router says
   ``debugging`` and a debugging model may override the workflow;
3. router model classification;
4. keyword fallback (``ultrathink`` keyword, then ``detect_task_type``).
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from src.application.chat.prompts import ROUTER_SYSTEM_PROMPT, TASK_INSTRUCTIONS, ULTRATHINK_INSTRUCTIONS
from src.application.shared import ask_model
from src.application.workflow import WorkflowManager, system_prompt_for_step, task_type_for_step
from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.model_selection import RouterCategory, TaskType
from src.domain.entities.workflow_state import WorkflowStep
from src.domain.ports.config import RoutingConfig
from src.domain.ports.llm import LLMPort
from src.domain.services.model_router import ModelRouter
from src.domain.services.task_detector import detect_task_type

logger = logging.getLogger(__name__)

_ULTRATHINK_RE = re.compile(r"\bultrathink\b", re.IGNORECASE)
_TASK_CATEGORIES = {
    RouterCategory.FRONTEND: TaskType.FRONTEND,
    RouterCategory.BACKEND: TaskType.BACKEND,
    RouterCategory.DEBUGGING: TaskType.DEBUGGING,
}


@dataclass
class TurnPlan:
    """What the next model call should look like."""

    prompt: str
    model: str
    mode: ChatMode = ChatMode.BUILD
    task_type: TaskType | None = None
    system_prompt_suffix: str = ""
    workflow_step: WorkflowStep | None = None
    router_category: RouterCategory | None = None


def strip_ultrathink(prompt: str) -> str:
    return _ULTRATHINK_RE.sub("", prompt).strip()


class TurnPlanner:
    def __init__(
        self,
        llm: LLMPort,
        workflow: WorkflowManager,
        router: ModelRouter,
        routing: RoutingConfig | None = None,
        codebase_paths: Callable[[], Iterable[str]] | None = None,
    ) -> None:
        self._llm = llm
        self._workflow = workflow
        self._router = router
        self._routing = routing or RoutingConfig()
        self._codebase_paths = codebase_paths

    def apply_workflow_command(self, chat_id: str, prompt: str) -> str:
        """Handle ``/workflow``, ``/workflow stop`` and ``/next``; returns the prompt the model sees."""
        text = prompt.strip()
        if text.startswith("/workflow stop"):
            self._workflow.stop(chat_id)
            return "Workflow stopped."
        if text.startswith("/workflow"):
            step = self._workflow.start(chat_id)
            logger.info("Starting workflow: %s", step.value)
            return text.removeprefix("/workflow").strip() or "Start planning."
        if text.startswith("/next"):
            step = self._workflow.advance(chat_id)
            if step is None:
                return "Workflow completed."
            return f"Proceed to the next step: {step.value}."
        return prompt

    async def classify(self, prompt: str) -> RouterCategory | None:
        """Router model classification; None when disabled, failed or unrecognized."""
        router_model = self._router.router_model
        if not self._routing.enable_ai_router or not router_model:
            return None
        try:
            reply = await ask_model(
                self._llm,
                prompt,
                router_model,
                system=ROUTER_SYSTEM_PROMPT,
                timeout=self._routing.router_timeout_seconds,
                temperature=0.0,
            )
        except Exception as e:
            logger.error("Router failed, falling back to keyword detection: %s", e, exc_info=True)
            return None
        category = RouterCategory.parse(reply)
        if category is None:
            logger.warning("Router returned unknown category: %r", reply[:50])
        else:
            logger.info("Router classified prompt as %s", category.value)
        return category

    async def plan(
        self,
        chat_id: str,
        prompt: str,
        mode: ChatMode = ChatMode.BUILD,
        model: str | None = None,
        selected_path: str | None = None,
    ) -> TurnPlan:
        cleaned = self.apply_workflow_command(chat_id, prompt)
        state = self._workflow.get_state(chat_id)
        category = await self.classify(prompt)
        plan = TurnPlan(prompt=cleaned, model=self._router.default_model, mode=mode, router_category=category)

        if state.is_active and state.current_step is not None:
            self._plan_workflow(plan, state.current_step)
        elif category is not None:
            self._plan_from_category(plan, category)
        else:
            self._plan_from_keywords(plan, selected_path)

        if model and model.strip():
            plan.model = model.strip()

        logger.info(
            "Final model selection: %s, task type: %s",
            plan.model,
            plan.task_type.value if plan.task_type else "none",
        )
        return plan

    def _plan_workflow(self, plan: TurnPlan, step: WorkflowStep) -> None:
        # Mode checks use the step even when debugging overrides the model.
        plan.workflow_step = step
        debugging_model = self._router.debugging_model
        if (
            plan.router_category is RouterCategory.DEBUGGING
            and debugging_model
            and self._routing.debugging_overrides_workflow
        ):
            logger.info("Workflow active but router detected debugging: overriding model")
            plan.model = debugging_model
            plan.task_type = TaskType.DEBUGGING
            plan.system_prompt_suffix += TASK_INSTRUCTIONS[TaskType.DEBUGGING]
            return

        task_type = task_type_for_step(step)
        plan.task_type = task_type
        plan.model = self._router.model_for_task(task_type) or plan.model
        plan.system_prompt_suffix += system_prompt_for_step(step)
        logger.info("Workflow active: step=%s, task type=%s", step.value, task_type.value)

    def _plan_from_category(self, plan: TurnPlan, category: RouterCategory) -> None:
        if category is RouterCategory.ULTRATHINK:
            ultrathink = self._router.ultrathink_model
            if ultrathink:
                plan.model = ultrathink
                plan.prompt = strip_ultrathink(plan.prompt) or plan.prompt
                plan.system_prompt_suffix += ULTRATHINK_INSTRUCTIONS
            return
        task_type = _TASK_CATEGORIES.get(category)
        if task_type is None:
            return
        plan.task_type = task_type
        plan.model = self._router.model_for_category(category) or plan.model
        plan.system_prompt_suffix += TASK_INSTRUCTIONS[task_type]

    def _plan_from_keywords(self, plan: TurnPlan, selected_path: str | None) -> None:
        if "ultrathink" in plan.prompt.lower():
            plan.prompt = strip_ultrathink(plan.prompt) or plan.prompt
            ultrathink = self._router.ultrathink_model
            if ultrathink:
                logger.info("Keyword detection: ultrathink")
                plan.model = ultrathink
                plan.system_prompt_suffix += ULTRATHINK_INSTRUCTIONS
            return
        if not self._router.task_switching_enabled:
            return
        paths = list(self._codebase_paths()) if self._codebase_paths else None
        task_type = detect_task_type(plan.prompt, selected_path, paths)
        plan.task_type = task_type
        plan.model = self._router.model_for_task(task_type) or plan.model
        plan.system_prompt_suffix += TASK_INSTRUCTIONS[task_type]
