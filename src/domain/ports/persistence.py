"""Persistence ports used by the stream core."""

from datetime import datetime
from typing import Protocol

from pydantic import BaseModel

from src.domain.entities.workflow_state import WorkflowState


class SnapshotStore(Protocol):
    """Durable storage for in-progress assistant responses."""

    def save_snapshot(self, conversation_id: str, text: str) -> None: ...

    def load_snapshot(self, conversation_id: str) -> str | None: ...


class WorkflowStateStore(Protocol):
    """Durable per-conversation workflow state."""

    def read(self, conversation_id: str) -> dict | None:
        """Raw persisted record, or None if the conversation has none."""
        ...

    def write(self, conversation_id: str, state: WorkflowState) -> None: ...


class ViolationLogEntry(BaseModel):
    """One monitor intervention, as stored in the guardrail log."""

    timestamp: datetime
    chat_id: str
    violation_type: str
    mode: str
    workflow_step: str | None = None
    model: str = ""
    provider: str = ""
    context: str = ""


class GuardrailLogPort(Protocol):
    def log_violation(self, entry: ViolationLogEntry) -> None: ...
