"""Per-response monitor state and verdicts."""

from dataclasses import dataclass, field
from typing import Protocol

from src.application.guardrails.violation_detector import DetectionContext, detect_violations
from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.violations import Violation, ViolationKind
from src.domain.entities.workflow_state import WorkflowStep


@dataclass
class MonitorVerdict:
    """Result of inspecting the buffer once."""

    has_violation: bool = False
    violation: Violation | None = None
    correction: str | None = None
    should_abort: bool = False

    @property
    def violation_type(self) -> ViolationKind | None:
        return self.violation.kind if self.violation else None


NO_VIOLATION = MonitorVerdict()


@dataclass
class MonitorState:
    """Mutable state of one in-flight response. Never shared between conversations."""

    mode: ChatMode = ChatMode.BUILD
    active_workflow_step: WorkflowStep | None = None
    seen_violation_kinds: set[ViolationKind] = field(default_factory=set)
    accumulated_text: str = ""

    @property
    def context(self) -> DetectionContext:
        return DetectionContext(mode=self.mode, workflow_step=self.active_workflow_step)

    def first_new_critical(self, full_text: str) -> Violation | None:
        """Record ``full_text`` and mark the first unseen critical kind as seen."""
        self.accumulated_text = full_text
        for violation in detect_violations(full_text, self.context, streaming=True):
            if violation.is_critical and violation.kind not in self.seen_violation_kinds:
                self.seen_violation_kinds.add(violation.kind)
                return violation
        return None

    def reset(self) -> None:
        self.seen_violation_kinds.clear()
        self.accumulated_text = ""


class Monitor(Protocol):
    """Watches a growing buffer; implemented by FastMonitor and StreamingMonitor."""

    async def inspect(self, full_text: str) -> MonitorVerdict: ...

    def reset(self) -> None: ...
