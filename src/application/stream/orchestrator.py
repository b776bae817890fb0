"""Stream orchestrator - runs model passes and executes state-machine effects.

One turn may involve several model calls: the first pass, restarts after
a monitor-requested correction, continuations of an unclosed write and
auto-fix rounds. Which call comes next is decided by
``state_machine.transition``; this module only performs the I/O.
"""

import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import assert_never

from src.application.guardrails.monitor_factory import MonitorFactory
from src.application.guardrails.monitor_state import Monitor, MonitorVerdict
from src.application.guardrails.tag_parser import (
    has_unclosed_write,
    parse_add_dependency_directives,
    parse_directives,
    strip_problem_reports,
    strip_think_blocks,
)
from src.application.stream.cancellation import CancellationSignal, CancelReason
from src.application.stream.dto import OrchestratorSettings, TurnOutcome, TurnRequest, TurnStatus
from src.application.stream.rendering import (
    CANCELLED_ANNOTATION,
    THINK_CLOSE,
    problem_fix_prompt,
    render_problem_report,
    render_reasoning,
    render_tool_call,
    render_tool_result,
)
from src.application.stream.session_registry import SessionRegistry
from src.application.stream.state_machine import (
    AppendProblemReport,
    AutoFixFinished,
    CheckProblems,
    ContinuationFinished,
    Finish,
    LoopEvent,
    LoopPolicy,
    LoopState,
    ModelFailed,
    PassFinished,
    ProblemsReported,
    ReportError,
    RequestAutoFix,
    RequestContinuation,
    RestartWithCorrection,
    SavePartial,
    UserCancelled,
    transition,
)
from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.stream_events import Finish as FinishEvent
from src.domain.entities.stream_events import ReasoningDelta, TextDelta, ToolCall, ToolResult
from src.domain.entities.violations import Problem
from src.domain.ports.llm import LLMMessage, LLMPort, ModelInvocationError
from src.domain.ports.persistence import GuardrailLogPort, SnapshotStore, ViolationLogEntry
from src.domain.ports.virtual_fs import VirtualFileTreePort

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], Awaitable[None] | None]


@dataclass
class _TurnRun:
    """Mutable bookkeeping for one turn."""

    turn: TurnRequest
    signal: CancellationSignal
    context: list[LLMMessage]
    response: str = ""
    problems: list[Problem] = field(default_factory=list)
    pre_fix_response: str | None = None
    fix_history: list[LLMMessage] = field(default_factory=list)
    last_snapshot: float = float("-inf")


def remove_non_essential_tags(text: str) -> str:
    """Response as replayed to the model: no reasoning, no problem reports."""
    return strip_problem_reports(strip_think_blocks(text)).strip()


class StreamOrchestrator:
    """Executes one turn against the primary model."""

    def __init__(
        self,
        llm: LLMPort,
        registry: SessionRegistry,
        snapshots: SnapshotStore,
        settings: OrchestratorSettings | None = None,
        monitor_factory: MonitorFactory | None = None,
        virtual_fs: VirtualFileTreePort | None = None,
        guardrail_log: GuardrailLogPort | None = None,
        provider: str = "",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._llm = llm
        self._registry = registry
        self._snapshots = snapshots
        self._settings = settings or OrchestratorSettings()
        self._monitor_factory = monitor_factory
        self._virtual_fs = virtual_fs
        self._guardrail_log = guardrail_log
        self._provider = provider
        self._clock = clock

    def policy_for(self, turn: TurnRequest) -> LoopPolicy:
        s = self._settings
        return LoopPolicy(
            max_correction_attempts=s.max_correction_attempts,
            max_continuation_attempts=s.max_continuation_attempts,
            max_autofix_attempts=s.max_autofix_attempts,
            continuation_enabled=turn.mode is not ChatMode.ASK,
            auto_fix_enabled=(
                s.enable_auto_fix_problems
                and turn.mode.allows_file_mutation
                and self._virtual_fs is not None
            ),
        )

    async def run_turn(self, turn: TurnRequest, on_chunk: ChunkCallback | None = None) -> TurnOutcome:
        """Run the turn to a terminal state.

        Raises StreamAlreadyActiveError when the conversation already has a
        stream in flight. Model failures do not raise; they produce a FAILED
        outcome.
        """
        signal = self._registry.begin_stream(turn.chat_id)
        run = _TurnRun(turn=turn, signal=signal, context=list(turn.messages))
        try:
            return await self._drive(run, on_chunk)
        finally:
            # A newer turn may already own the conversation; leave its partial alone.
            if self._registry.end_stream(turn.chat_id, run.signal):
                self._registry.partials.delete(turn.chat_id)

    async def _drive(self, run: _TurnRun, on_chunk: ChunkCallback | None) -> TurnOutcome:
        policy = self.policy_for(run.turn)
        state = LoopState()
        event: LoopEvent | None = await self._primary_pass(run, on_chunk, state, policy)

        while True:
            state, effects = transition(state, event, policy)
            event = None
            for effect in effects:
                match effect:
                    case RestartWithCorrection():
                        event = await self._restart(run, effect, on_chunk, state, policy)
                    case RequestContinuation(attempt=attempt):
                        event = await self._continuation_pass(run, on_chunk, attempt)
                    case CheckProblems():
                        event = self._check_problems(run)
                    case AppendProblemReport():
                        run.response += render_problem_report(run.problems)
                        await self._publish(run, on_chunk)
                    case RequestAutoFix(attempt=attempt):
                        event = await self._autofix_pass(run, on_chunk, attempt)
                    case Finish():
                        return self._completed(run, state)
                    case SavePartial():
                        return self._cancelled(run, state)
                    case ReportError(message=message):
                        return self._failed(run, state, message)
                    case _:
                        assert_never(effect)
            if event is None:
                raise RuntimeError(f"No follow-up event in phase {state.phase.value}")

    # Passes

    async def _primary_pass(
        self,
        run: _TurnRun,
        on_chunk: ChunkCallback | None,
        state: LoopState,
        policy: LoopPolicy,
    ) -> LoopEvent:
        monitor: Monitor | None = None
        if self._monitor_factory is not None and not state.corrections_exhausted(policy):
            monitor = self._monitor_factory(run.turn.mode, run.turn.workflow_step)
        try:
            await self._consume(run, on_chunk, run.context, monitor=monitor)
        except ModelInvocationError as e:
            return self._model_failed(run, e)

        if run.signal.cancelled_by_user:
            return UserCancelled()
        if run.signal.reason is CancelReason.CORRECTION:
            return PassFinished(
                correction=run.signal.correction,
                violation=run.signal.violation,
                has_unclosed_write=has_unclosed_write(run.response),
                has_dependencies=self._has_dependencies(run.response),
            )
        return PassFinished(
            has_unclosed_write=has_unclosed_write(run.response),
            has_dependencies=self._has_dependencies(run.response),
        )

    async def _restart(
        self,
        run: _TurnRun,
        effect: RestartWithCorrection,
        on_chunk: ChunkCallback | None,
        state: LoopState,
        policy: LoopPolicy,
    ) -> LoopEvent:
        if run.signal.cancelled_by_user:
            return UserCancelled()
        kind = effect.violation.kind.value if effect.violation else "unknown"
        logger.info(
            "Resuming stream with correction: %s (attempt %d/%d)",
            kind,
            state.correction_attempts,
            policy.max_correction_attempts,
        )
        run.context.append(LLMMessage(role="assistant", content=run.response))
        run.context.append(LLMMessage(role="system", content=effect.correction))
        run.signal = self._registry.renew_signal(run.turn.chat_id)
        run.response = ""
        return await self._primary_pass(run, on_chunk, state, policy)

    async def _continuation_pass(self, run: _TurnRun, on_chunk: ChunkCallback | None, attempt: int) -> LoopEvent:
        if run.signal.cancelled_by_user:
            return UserCancelled()
        logger.warning("Received unclosed write tag, attempting to continue, attempt #%d", attempt)
        messages = [*run.context, LLMMessage(role="assistant", content=run.response)]
        try:
            await self._consume(run, on_chunk, messages, text_only=True)
        except ModelInvocationError as e:
            return self._model_failed(run, e)
        if run.signal.cancelled_by_user:
            return UserCancelled()
        return ContinuationFinished(
            has_unclosed_write=has_unclosed_write(run.response),
            has_dependencies=self._has_dependencies(run.response),
        )

    def _check_problems(self, run: _TurnRun) -> LoopEvent:
        if self._virtual_fs is None:
            return ProblemsReported(count=0)
        if run.pre_fix_response is None:
            run.pre_fix_response = run.response
        directives = parse_directives(run.response, self._settings.split_dependency_commas)
        try:
            tree = self._virtual_fs.apply_directives(directives)
            problems = self._virtual_fs.compute_problems(tree)
        except Exception as e:
            logger.error("Problem check failed for chat %s, keeping response: %s", run.turn.chat_id, e, exc_info=True)
            run.problems = []
            return ProblemsReported(count=0)
        run.problems = problems
        if run.problems:
            logger.info("Virtual tree has %d problems", len(run.problems))
        return ProblemsReported(count=len(run.problems))

    async def _autofix_pass(self, run: _TurnRun, on_chunk: ChunkCallback | None, attempt: int) -> LoopEvent:
        if run.signal.cancelled_by_user:
            return UserCancelled()
        logger.info("Attempting to auto-fix problems, attempt #%d", attempt)
        prompt = LLMMessage(role="user", content=problem_fix_prompt(run.problems))
        messages = [
            *run.context,
            LLMMessage(role="assistant", content=remove_non_essential_tags(run.pre_fix_response or "")),
            *run.fix_history,
            prompt,
        ]
        start = len(run.response)
        try:
            await self._consume(run, on_chunk, messages)
        except ModelInvocationError as e:
            return self._model_failed(run, e)
        run.fix_history.append(prompt)
        run.fix_history.append(
            LLMMessage(role="assistant", content=remove_non_essential_tags(run.response[start:]))
        )
        if run.signal.cancelled_by_user:
            return UserCancelled()
        return AutoFixFinished()

    async def _consume(
        self,
        run: _TurnRun,
        on_chunk: ChunkCallback | None,
        messages: list[LLMMessage],
        monitor: Monitor | None = None,
        text_only: bool = False,
    ) -> None:
        """Stream one model call into ``run.response``.

        Reasoning is wrapped in <think> with directive tags escaped; tool
        events are rendered inline. Only plain text is shown to the
        monitor. With ``text_only`` every non-text event is ignored.
        """
        base = run.response
        committed = ""
        reasoning: str | None = None
        visible = ""
        turn = run.turn

        stream = self._llm.stream_events(
            messages,
            model=turn.model,
            tools=None if text_only else turn.tools,
            provider_options=turn.provider_options,
            signal=run.signal,
        )
        async with aclosing(stream) as events:
            async for event in events:
                if run.signal.cancelled:
                    break
                if text_only and not isinstance(event, TextDelta):
                    continue
                if reasoning is not None and not isinstance(event, ReasoningDelta):
                    committed += render_reasoning(reasoning) + THINK_CLOSE
                    reasoning = None
                match event:
                    case TextDelta(text=text):
                        committed += text
                        visible += text
                    case ReasoningDelta(text=text):
                        reasoning = (reasoning or "") + text
                    case ToolCall():
                        committed += render_tool_call(event)
                    case ToolResult():
                        committed += render_tool_result(event)
                    case FinishEvent():
                        pass
                    case _:
                        assert_never(event)

                run.response = base + committed + (render_reasoning(reasoning) if reasoning is not None else "")
                await self._publish(run, on_chunk)

                if monitor is not None and isinstance(event, TextDelta):
                    verdict = await monitor.inspect(visible)
                    if verdict.has_violation:
                        self._record_violation(run, verdict)
                    if verdict.should_abort and verdict.correction:
                        logger.warning("Aborting stream for correction: %s", verdict.violation_type)
                        run.signal.cancel(CancelReason.CORRECTION, verdict.correction, verdict.violation)

                if run.signal.cancelled:
                    break

        if reasoning is not None:
            committed += render_reasoning(reasoning) + THINK_CLOSE
        run.response = base + committed

    # Side effects

    async def _publish(self, run: _TurnRun, on_chunk: ChunkCallback | None) -> None:
        chat_id = run.turn.chat_id
        self._registry.partials.set(chat_id, run.response)
        now = self._clock()
        if (now - run.last_snapshot) * 1000 >= self._settings.snapshot_interval_ms:
            run.last_snapshot = now
            self._snapshots.save_snapshot(chat_id, run.response)
        if on_chunk is not None:
            result = on_chunk(run.response)
            if inspect.isawaitable(result):
                await result

    def _record_violation(self, run: _TurnRun, verdict: MonitorVerdict) -> None:
        if self._guardrail_log is None or verdict.violation is None:
            return
        turn = run.turn
        self._guardrail_log.log_violation(
            ViolationLogEntry(
                timestamp=datetime.now(timezone.utc),
                chat_id=turn.chat_id,
                violation_type=verdict.violation.kind.value,
                mode=turn.mode.value,
                workflow_step=turn.workflow_step.value if turn.workflow_step else None,
                model=turn.model,
                provider=self._provider,
                context=verdict.violation.context,
            )
        )

    def _has_dependencies(self, text: str) -> bool:
        return bool(parse_add_dependency_directives(text, self._settings.split_dependency_commas))

    def _model_failed(self, run: _TurnRun, error: ModelInvocationError) -> LoopEvent:
        logger.error("Model call failed for chat %s: %s", run.turn.chat_id, error.message)
        return ModelFailed(message=error.user_message())

    # Outcomes

    def _outcome(self, run: _TurnRun, state: LoopState, status: TurnStatus, error: str | None = None) -> TurnOutcome:
        return TurnOutcome(
            status=status,
            response=run.response,
            error=error,
            directives=parse_directives(run.response, self._settings.split_dependency_commas),
            problems=list(run.problems),
            correction_attempts=state.correction_attempts,
            continuation_attempts=state.continuation_attempts,
            autofix_attempts=state.autofix_attempts,
        )

    def _completed(self, run: _TurnRun, state: LoopState) -> TurnOutcome:
        self._snapshots.save_snapshot(run.turn.chat_id, run.response)
        return self._outcome(run, state, TurnStatus.COMPLETED)

    def _cancelled(self, run: _TurnRun, state: LoopState) -> TurnOutcome:
        logger.info("Stream for chat %s cancelled by user", run.turn.chat_id)
        run.response += CANCELLED_ANNOTATION
        self._snapshots.save_snapshot(run.turn.chat_id, run.response)
        return self._outcome(run, state, TurnStatus.CANCELLED)

    def _failed(self, run: _TurnRun, state: LoopState, message: str) -> TurnOutcome:
        return self._outcome(run, state, TurnStatus.FAILED, error=message)
