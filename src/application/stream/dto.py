"""Stream orchestrator inputs and outputs."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.directives import ParsedDirectives
from src.domain.entities.violations import Problem
from src.domain.entities.workflow_state import WorkflowStep
from src.domain.ports.config import GuardrailsConfig
from src.domain.ports.llm import LLMMessage


@dataclass
class TurnRequest:
    """One model turn. ``messages`` already holds system prompt, history and the user message."""

    chat_id: str
    messages: list[LLMMessage]
    model: str
    mode: ChatMode = ChatMode.BUILD
    workflow_step: WorkflowStep | None = None
    tools: list[dict[str, Any]] | None = None
    provider_options: dict[str, Any] | None = None


class TurnStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class TurnOutcome:
    status: TurnStatus
    response: str
    error: str | None = None
    directives: ParsedDirectives = field(default_factory=ParsedDirectives)
    problems: list[Problem] = field(default_factory=list)
    correction_attempts: int = 0
    continuation_attempts: int = 0
    autofix_attempts: int = 0


@dataclass(frozen=True)
class OrchestratorSettings:
    max_correction_attempts: int = 2
    max_continuation_attempts: int = 2
    max_autofix_attempts: int = 2
    enable_auto_fix_problems: bool = False
    snapshot_interval_ms: int = 150
    split_dependency_commas: bool = False

    @classmethod
    def from_config(cls, config: GuardrailsConfig) -> "OrchestratorSettings":
        return cls(
            max_correction_attempts=config.max_correction_attempts,
            max_continuation_attempts=config.max_continuation_attempts,
            max_autofix_attempts=config.max_autofix_attempts,
            enable_auto_fix_problems=config.enable_auto_fix_problems,
            snapshot_interval_ms=config.snapshot_interval_ms,
            split_dependency_commas=config.split_dependency_commas,
        )
