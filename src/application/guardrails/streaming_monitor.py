"""Streaming monitor - corrections written by the router model."""

import logging
from collections.abc import Callable

from src.application.guardrails.corrections import router_instruction_prompt
from src.application.guardrails.monitor_state import NO_VIOLATION, MonitorState, MonitorVerdict
from src.application.shared.llm_helpers import ask_model
from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.violations import Violation
from src.domain.entities.workflow_state import WorkflowStep
from src.domain.ports.llm import LLMPort

logger = logging.getLogger(__name__)


class StreamingMonitor:
    """Same once-per-kind policy as FastMonitor, but the correction text is
    generated by the router model. Router failures never propagate: the
    verdict then carries no correction and does not request an abort.
    """

    def __init__(
        self,
        llm: LLMPort,
        router_model: str,
        mode: ChatMode = ChatMode.BUILD,
        workflow_step: WorkflowStep | None = None,
        on_correction: Callable[[str], None] | None = None,
        timeout_seconds: float = 15.0,
    ) -> None:
        self._llm = llm
        self._router_model = router_model
        self._on_correction = on_correction
        self._timeout = timeout_seconds
        self.state = MonitorState(mode=mode, active_workflow_step=workflow_step)

    async def analyze_chunk(self, full_text: str) -> MonitorVerdict:
        violation = self.state.first_new_critical(full_text)
        if violation is None:
            return NO_VIOLATION
        logger.warning("Streaming monitor detected %s", violation.kind.value)

        correction = await self._generate_correction(violation)
        if correction is None:
            return MonitorVerdict(has_violation=True, violation=violation)
        if self._on_correction:
            self._on_correction(correction)
        return MonitorVerdict(
            has_violation=True,
            violation=violation,
            correction=correction,
            should_abort=True,
        )

    async def inspect(self, full_text: str) -> MonitorVerdict:
        return await self.analyze_chunk(full_text)

    async def _generate_correction(self, violation: Violation) -> str | None:
        try:
            text = await ask_model(
                self._llm,
                router_instruction_prompt(violation),
                self._router_model,
                timeout=self._timeout,
            )
        except Exception as e:
            logger.error("Failed to generate correction for %s: %s", violation.kind.value, e, exc_info=True)
            return None
        if not text:
            logger.warning("Router returned an empty correction for %s", violation.kind.value)
            return None
        logger.info("Generated correction for %s", violation.kind.value)
        return text

    def reset(self) -> None:
        self.state.reset()
