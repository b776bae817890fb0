"""Choose the monitor for a model pass from guardrail settings."""

from collections.abc import Callable

from src.application.guardrails.fast_monitor import FastMonitor
from src.application.guardrails.monitor_state import Monitor
from src.application.guardrails.streaming_monitor import StreamingMonitor
from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.workflow_state import WorkflowStep
from src.domain.ports.config import GuardrailsConfig
from src.domain.ports.llm import LLMPort

MonitorFactory = Callable[[ChatMode, WorkflowStep | None], Monitor | None]


def build_monitor_factory(
    config: GuardrailsConfig,
    llm: LLMPort,
    router_model: str | None,
) -> MonitorFactory:
    """Fast monitor wins when enabled; the streaming one needs a router model."""

    def create(mode: ChatMode, step: WorkflowStep | None) -> Monitor | None:
        if config.enable_fast_correction:
            return FastMonitor(mode=mode, workflow_step=step)
        if config.enable_realtime_monitoring and router_model:
            return StreamingMonitor(
                llm,
                router_model,
                mode=mode,
                workflow_step=step,
                timeout_seconds=config.correction_timeout_seconds,
            )
        return None

    return create
