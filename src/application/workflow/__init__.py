"""Workflow application layer."""

from src.application.workflow.manager import WorkflowManager
from src.application.workflow.steps import system_prompt_for_step, task_type_for_step

__all__ = [
    "WorkflowManager",
    "system_prompt_for_step",
    "task_type_for_step",
]
