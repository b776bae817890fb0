"""Fast monitor - canned corrections, no model calls."""

import logging

from src.application.guardrails.corrections import canned_correction
from src.application.guardrails.monitor_state import NO_VIOLATION, MonitorState, MonitorVerdict
from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.workflow_state import WorkflowStep

logger = logging.getLogger(__name__)


class FastMonitor:
    """Reports each critical violation kind once per response, instantly."""

    def __init__(self, mode: ChatMode = ChatMode.BUILD, workflow_step: WorkflowStep | None = None) -> None:
        self.state = MonitorState(mode=mode, active_workflow_step=workflow_step)

    def check_chunk(self, full_text: str) -> MonitorVerdict:
        """Inspect the whole buffer so far. First new critical kind wins."""
        violation = self.state.first_new_critical(full_text)
        if violation is None:
            return NO_VIOLATION
        logger.warning("Fast monitor detected %s", violation.kind.value)
        return MonitorVerdict(
            has_violation=True,
            violation=violation,
            correction=canned_correction(violation),
            should_abort=True,
        )

    async def inspect(self, full_text: str) -> MonitorVerdict:
        return self.check_chunk(full_text)

    def reset(self) -> None:
        self.state.reset()
