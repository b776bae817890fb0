"""Chat turn service - plans a turn, runs the orchestrator and emits turn events."""

import asyncio
import logging
from collections.abc import AsyncIterator

from src.application.chat.dto import ChatTurnRequest
from src.application.chat.prompts import get_mode
from src.application.chat.turn_planner import TurnPlan, TurnPlanner
from src.application.guardrails.corrective_agent import attempt_correction
from src.application.guardrails.response_validator import format_validation_errors, validate_response
from src.application.guardrails.violation_detector import DetectionContext
from src.application.stream import (
    SessionRegistry,
    StreamAlreadyActiveError,
    StreamOrchestrator,
    TurnOutcome,
    TurnRequest,
    TurnStatus,
)
from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.stream_events import ChatMessage, ChunkEvent, EndEvent, ErrorEvent, TurnEvent
from src.domain.ports.llm import LLMMessage, LLMPort
from src.domain.ports.virtual_fs import ChangeApplierPort
from src.infrastructure.persistence.conversation_memory import ConversationMemory
from src.shared.logging import bind_turn_context

logger = logging.getLogger(__name__)


class ChatTurnService:
    """One user turn end to end.

    Chunk events are produced by the orchestrator callback and handed to the
    caller through a queue, so the HTTP layer only iterates.
    """

    def __init__(
        self,
        orchestrator: StreamOrchestrator,
        planner: TurnPlanner,
        registry: SessionRegistry,
        memory: ConversationMemory,
        llm: LLMPort,
        router_model: str | None = None,
        change_applier: ChangeApplierPort | None = None,
        auto_approve_changes: bool = False,
        max_context_messages: int = 20,
        correction_timeout: float | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._planner = planner
        self._registry = registry
        self._memory = memory
        self._llm = llm
        self._router_model = router_model
        self._change_applier = change_applier
        self._auto_approve = auto_approve_changes
        self._max_context = max_context_messages
        self._correction_timeout = correction_timeout

    def cancel(self, chat_id: str) -> bool:
        """Cancel the active stream for ``chat_id``. False when nothing is streaming."""
        return self._registry.cancel(chat_id)

    async def execute_stream(self, request: ChatTurnRequest) -> AsyncIterator[TurnEvent]:
        """Yield chunk events, then exactly one EndEvent or ErrorEvent."""
        chat_id = request.chat_id or self._memory.create_id()
        queue: asyncio.Queue[TurnEvent | None] = asyncio.Queue()
        task = asyncio.create_task(self._run(chat_id, request, queue))
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
        finally:
            if not task.done():
                # Consumer went away mid-turn
                self._registry.cancel(chat_id)
            await task

    async def _run(self, chat_id: str, request: ChatTurnRequest, queue: asyncio.Queue[TurnEvent | None]) -> None:
        bind_turn_context(chat_id, mode=request.mode.value)
        try:
            await self._turn(chat_id, request, queue)
        except StreamAlreadyActiveError as e:
            logger.warning("Rejected turn: %s", e)
            queue.put_nowait(ErrorEvent(chat_id=chat_id, error=str(e)))
        except Exception:
            logger.exception("Chat turn failed")
            queue.put_nowait(ErrorEvent(chat_id=chat_id, error="Internal error while processing the chat turn"))
        finally:
            queue.put_nowait(None)

    async def _turn(self, chat_id: str, request: ChatTurnRequest, queue: asyncio.Queue[TurnEvent | None]) -> None:
        if self._registry.is_active(chat_id):
            raise StreamAlreadyActiveError(chat_id)

        history = self._memory.load(chat_id)[-self._max_context :]
        plan = await self._planner.plan(
            chat_id,
            request.message,
            mode=request.mode,
            model=request.model,
            selected_path=request.selected_path,
        )
        shown = [ChatMessage(role=m.role, content=m.content) for m in history]
        shown.append(ChatMessage(role="user", content=request.message))

        def on_chunk(response: str) -> None:
            messages = [*shown, ChatMessage(role="assistant", content=response)]
            queue.put_nowait(ChunkEvent(chat_id=chat_id, messages=messages))

        turn = TurnRequest(
            chat_id=chat_id,
            messages=self._build_messages(plan, history),
            model=plan.model,
            mode=plan.mode,
            workflow_step=plan.workflow_step,
            provider_options={"temperature": get_mode(plan.mode).temperature},
        )
        outcome = await self._orchestrator.run_turn(turn, on_chunk)

        conversation = [*history, LLMMessage(role="user", content=plan.prompt)]
        match outcome.status:
            case TurnStatus.FAILED:
                queue.put_nowait(ErrorEvent(chat_id=chat_id, error=outcome.error or "Unknown error"))
            case TurnStatus.CANCELLED:
                conversation.append(LLMMessage(role="assistant", content=outcome.response))
                self._memory.save(chat_id, conversation)
                queue.put_nowait(EndEvent(chat_id=chat_id, cancelled=True))
            case TurnStatus.COMPLETED:
                conversation.append(LLMMessage(role="assistant", content=outcome.response))
                summary = outcome.directives.chat_summary
                self._memory.save(chat_id, conversation, summary)
                await self._gate(chat_id, plan, outcome)
                queue.put_nowait(self._end_event(chat_id, plan, outcome))

    def _build_messages(self, plan: TurnPlan, history: list[LLMMessage]) -> list[LLMMessage]:
        system = get_mode(plan.mode).system_prompt + plan.system_prompt_suffix
        return [
            LLMMessage(role="system", content=system),
            *history,
            LLMMessage(role="user", content=plan.prompt),
        ]

    async def _gate(self, chat_id: str, plan: TurnPlan, outcome: TurnOutcome) -> None:
        """Final validation; critical violations get a corrective follow-up when a router model exists."""
        result = validate_response(outcome.response, DetectionContext(plan.mode, plan.workflow_step))
        if result.warnings:
            logger.info("Response warnings:\n%s", format_validation_errors(result.warnings))
        if result.is_valid:
            return
        logger.warning("Final response has violations:\n%s", format_validation_errors(result.violations))
        if not self._router_model:
            return
        correction = await attempt_correction(
            self._llm,
            plan.prompt,
            outcome.response,
            result.violations,
            self._router_model,
            timeout=self._correction_timeout,
        )
        if correction.should_retry and correction.prompt:
            logger.info("Stored corrective instruction as follow-up message")
            self._memory.append(chat_id, LLMMessage(role="user", content=correction.prompt))
        else:
            logger.info("No corrective follow-up: %s", correction.reason)

    def _end_event(self, chat_id: str, plan: TurnPlan, outcome: TurnOutcome) -> EndEvent:
        directives = outcome.directives
        event = EndEvent(chat_id=chat_id, chat_summary=directives.chat_summary)
        if (
            self._change_applier is None
            or not self._auto_approve
            or plan.mode is ChatMode.ASK
            or not (directives.has_mutations or directives.has_dependencies)
        ):
            return event
        applied = self._change_applier.apply(directives)
        event.updated_files = applied.updated_files
        event.extra_files = applied.extra_files or None
        event.error = "; ".join(applied.errors) or None
        return event
