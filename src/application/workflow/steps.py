"""Per-step task-type hints and system-prompt fragments."""

from typing import assert_never

from src.domain.entities.model_selection import TaskType
from src.domain.entities.workflow_state import WorkflowStep

CHECKLIST_INSTRUCTION = (
    "\n\n## CHECKLIST REQUIREMENT\n"
    "You must output a checklist of what you have done at the end of your response "
    "using markdown checkboxes (e.g., - [x] Task)."
)


def task_type_for_step(step: WorkflowStep) -> TaskType:
    """Task hint used for model routing while ``step`` is active."""
    match step:
        case WorkflowStep.FRONTEND:
            return TaskType.FRONTEND
        case WorkflowStep.BACKEND:
            return TaskType.BACKEND
        case WorkflowStep.TESTING:
            return TaskType.DEBUGGING
        case WorkflowStep.PLANNING | WorkflowStep.DOCS:
            return TaskType.GENERAL
        case _:
            assert_never(step)


def _role_text(step: WorkflowStep) -> str:
    match step:
        case WorkflowStep.PLANNING:
            return (
                "You are a Software Architect. Analyze the request and create a detailed implementation "
                "plan. Break down the task into logical components. Do not write code yet. Output the plan "
                "in Markdown. Be concise but thorough."
            )
        case WorkflowStep.DOCS:
            return (
                "You are a Technical Writer. Create or update documentation based on the architecture plan. "
                "Ensure 'README.md' and 'docs/architecture.md' (if applicable) are up to date. "
                "Only write markdown files under docs/ or README.md."
            )
        case WorkflowStep.FRONTEND:
            return (
                "You are a Frontend Developer. Implement the UI components and pages based on the plan. "
                "Focus on a polished, responsive and functional UI. Batch your file edits to avoid "
                "partial states."
            )
        case WorkflowStep.BACKEND:
            return (
                "You are a Backend Developer. Implement the API routes, database schema and server logic. "
                "Ensure data integrity and error handling. Follow the project's architectural patterns."
            )
        case WorkflowStep.TESTING:
            return (
                "You are a QA Engineer. Write tests to verify the implementation. Fix any bugs found. "
                "Ensure the application runs smoothly."
            )
        case _:
            assert_never(step)


def system_prompt_for_step(step: WorkflowStep) -> str:
    """Fragment appended to the system prompt while ``step`` is active."""
    return f"\n\n# Workflow Step: {step.value.upper()}\n{_role_text(step)}{CHECKLIST_INSTRUCTION}"
