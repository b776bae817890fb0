"""Workflow manager - per-conversation step state machine.

States are ``idle`` and ``active:<step>``. All mutations go through this
class and are persisted immediately.
"""

import logging

from pydantic import ValidationError

from src.domain.entities.workflow_state import (
    WorkflowState,
    WorkflowStatus,
    WorkflowStep,
    next_step,
)
from src.domain.ports.persistence import WorkflowStateStore

logger = logging.getLogger(__name__)


class WorkflowManager:
    """start / advance / force / stop over a WorkflowStateStore."""

    def __init__(self, store: WorkflowStateStore) -> None:
        self._store = store

    def get_state(self, conversation_id: str) -> WorkflowState:
        """Persisted state; missing or invalid records read as idle."""
        raw = self._store.read(conversation_id)
        if raw is None:
            return WorkflowState.idle()
        try:
            return WorkflowState.model_validate(raw)
        except ValidationError:
            logger.warning("Invalid workflow record for %s: %r, treating as idle", conversation_id, raw)
            return WorkflowState.idle()

    def start(self, conversation_id: str) -> WorkflowStep:
        """Begin at the first step, whatever the current state."""
        logger.info("Starting workflow for chat %s", conversation_id)
        self._store.write(conversation_id, WorkflowState.active(WorkflowStep.PLANNING))
        return WorkflowStep.PLANNING

    def stop(self, conversation_id: str) -> None:
        logger.info("Stopping workflow for chat %s", conversation_id)
        self._store.write(conversation_id, WorkflowState.idle())

    def force(self, conversation_id: str, step: WorkflowStep) -> WorkflowStep:
        logger.info("Forcing workflow step for chat %s to %s", conversation_id, step.value)
        self._store.write(conversation_id, WorkflowState.active(step))
        return step

    def advance(self, conversation_id: str) -> WorkflowStep | None:
        """Move to the next step; None when finishing or when not active.

        An unknown persisted step resets the workflow to planning.
        """
        raw = self._store.read(conversation_id) or {}
        if raw.get("status") != WorkflowStatus.ACTIVE.value:
            logger.warning("Cannot advance step: workflow not active for chat %s", conversation_id)
            return None

        try:
            current = WorkflowStep(raw.get("current_step"))
        except ValueError:
            logger.warning("Invalid step %r for chat %s, resetting to planning", raw.get("current_step"), conversation_id)
            return self.force(conversation_id, WorkflowStep.PLANNING)

        following = next_step(current)
        if following is None:
            logger.info("Workflow finished for chat %s", conversation_id)
            self._store.write(conversation_id, WorkflowState.idle())
            return None

        logger.info("Advancing workflow for chat %s from %s to %s", conversation_id, current.value, following.value)
        self._store.write(conversation_id, WorkflowState.active(following))
        return following
