"""Tests for ChatTurnService with a real orchestrator and a scripted model."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.application.chat.dto import ChatTurnRequest
from src.application.chat.turn_planner import TurnPlanner
from src.application.chat.use_case import ChatTurnService
from src.application.stream import SessionRegistry, StreamOrchestrator
from src.application.workflow.manager import WorkflowManager
from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.stream_events import ChunkEvent, EndEvent, ErrorEvent, TextDelta
from src.domain.ports.config import ModelConfig, TaskModelsConfig
from src.domain.ports.llm import LLMResponse, ModelInvocationError
from src.domain.ports.virtual_fs import ChangeResult
from src.domain.services.model_router import ModelRouter
from src.infrastructure.persistence.conversation_memory import ConversationMemory
from src.infrastructure.persistence.workflow_store import InMemoryWorkflowStateStore

FENCE = "```"


class FakeLLM:
    """Streams scripted text deltas and answers generate() with a fixed reply."""

    def __init__(self, *chunks, error=None, reply="", gate=None):
        self.chunks = chunks
        self.error = error
        self.gate = gate
        self.generate = AsyncMock(return_value=LLMResponse(content=reply, model="router"))
        self.calls = []

    async def stream_events(self, messages, model=None, tools=None, provider_options=None, signal=None):
        self.calls.append({"messages": list(messages), "model": model, "provider_options": provider_options})
        if self.error:
            raise self.error
        for index, chunk in enumerate(self.chunks):
            if index and self.gate is not None:
                await self.gate.wait()
            yield TextDelta(chunk)


def _service(llm, tmp_path, router_model=None, applier=None, auto_approve=False):
    registry = SessionRegistry()
    workflow = WorkflowManager(InMemoryWorkflowStateStore())
    planner = TurnPlanner(llm, workflow, ModelRouter(ModelConfig(default="coder"), TaskModelsConfig()))
    memory = ConversationMemory(str(tmp_path))
    orchestrator = StreamOrchestrator(llm, registry, MagicMock())
    service = ChatTurnService(
        orchestrator,
        planner,
        registry,
        memory,
        llm,
        router_model=router_model,
        change_applier=applier,
        auto_approve_changes=auto_approve,
    )
    return service, memory, registry


async def _collect(service, request):
    return [event async for event in service.execute_stream(request)]


class TestChatTurnService:
    """Tests for execute_stream."""

    @pytest.mark.asyncio
    async def test_chunks_then_end(self, tmp_path):
        """Chunks carry the growing reply; the last event is EndEvent."""
        llm = FakeLLM("Hello", " world<chat-summary>Greeting</chat-summary>")
        service, memory, _ = _service(llm, tmp_path)
        events = await _collect(service, ChatTurnRequest(message="hi", chat_id="c1"))

        chunks = [e for e in events if isinstance(e, ChunkEvent)]
        assert chunks[0].messages[-1].content == "Hello"
        assert chunks[-1].messages[0].content == "hi"
        end = events[-1]
        assert isinstance(end, EndEvent)
        assert end.chat_summary == "Greeting"
        assert end.cancelled is False
        assert [m.role for m in memory.load("c1")] == ["user", "assistant"]
        assert memory.summary("c1") == "Greeting"

    @pytest.mark.asyncio
    async def test_history_and_system_prompt(self, tmp_path):
        """The model sees the mode prompt, history and the new message."""
        llm = FakeLLM("ok")
        service, _, _ = _service(llm, tmp_path)
        await _collect(service, ChatTurnRequest(message="first", chat_id="c1"))
        await _collect(service, ChatTurnRequest(message="second", chat_id="c1", mode=ChatMode.ASK))
        messages = llm.calls[1]["messages"]
        assert messages[0].role == "system"
        assert [m.content for m in messages[1:]] == ["first", "ok", "second"]
        assert "temperature" in llm.calls[1]["provider_options"]

    @pytest.mark.asyncio
    async def test_new_conversation_gets_id(self, tmp_path):
        """A missing chat id creates a conversation."""
        service, memory, _ = _service(FakeLLM("ok"), tmp_path)
        events = await _collect(service, ChatTurnRequest(message="hi"))
        assert memory.list_ids() == [events[-1].chat_id]

    @pytest.mark.asyncio
    async def test_model_failure_is_single_error_event(self, tmp_path):
        """A failed turn ends with one ErrorEvent and nothing saved."""
        llm = FakeLLM(error=ModelInvocationError("down"))
        service, memory, _ = _service(llm, tmp_path)
        events = await _collect(service, ChatTurnRequest(message="hi", chat_id="c1"))
        assert len(events) == 1
        assert isinstance(events[0], ErrorEvent)
        assert events[0].error == "Sorry, there was an error from the AI: down"
        assert memory.load("c1") == []

    @pytest.mark.asyncio
    async def test_active_stream_rejected(self, tmp_path):
        """A second turn for a streaming conversation gets an error event."""
        service, _, registry = _service(FakeLLM("ok"), tmp_path)
        registry.begin_stream("c1")
        events = await _collect(service, ChatTurnRequest(message="hi", chat_id="c1"))
        assert [type(e) for e in events] == [ErrorEvent]

    @pytest.mark.asyncio
    async def test_cancel_saves_partial(self, tmp_path):
        """Cancelling mid-stream saves the partial reply and ends as cancelled."""
        gate = asyncio.Event()
        llm = FakeLLM("part", "never", gate=gate)
        service, memory, _ = _service(llm, tmp_path)
        events = []
        async for event in service.execute_stream(ChatTurnRequest(message="hi", chat_id="c1")):
            events.append(event)
            if isinstance(event, ChunkEvent):
                assert service.cancel("c1") is True
                gate.set()
        assert isinstance(events[-1], EndEvent)
        assert events[-1].cancelled is True
        saved = memory.load("c1")[-1].content
        assert saved.startswith("part")
        assert "never" not in saved

    @pytest.mark.asyncio
    async def test_invalid_response_stores_corrective_follow_up(self, tmp_path):
        """Critical violations in the final response add a corrective user message."""
        llm = FakeLLM(
            f"{FENCE}\nx\n{FENCE}",
            reply="<corrective-instruction>Use write tags.</corrective-instruction>",
        )
        service, memory, _ = _service(llm, tmp_path, router_model="router")
        await _collect(service, ChatTurnRequest(message="hi", chat_id="c1"))
        assert memory.load("c1")[-1].content == "Use write tags."
        assert memory.load("c1")[-1].role == "user"

    @pytest.mark.asyncio
    async def test_changes_applied_when_approved(self, tmp_path):
        """Auto-approved directives are applied and reported."""
        applier = MagicMock()
        applier.apply.return_value = ChangeResult(updated_files=True, written=["a.ts"], extra_files=["zod"])
        llm = FakeLLM('<write path="a.ts">x</write><add-dependency packages="zod" />')
        service, _, _ = _service(llm, tmp_path, applier=applier, auto_approve=True)
        events = await _collect(service, ChatTurnRequest(message="hi", chat_id="c1"))
        assert events[-1].updated_files is True
        assert events[-1].extra_files == ["zod"]

    @pytest.mark.asyncio
    async def test_changes_not_applied_without_approval(self, tmp_path):
        """Without auto-approve nothing touches disk."""
        applier = MagicMock()
        llm = FakeLLM('<write path="a.ts">x</write>')
        service, _, _ = _service(llm, tmp_path, applier=applier)
        events = await _collect(service, ChatTurnRequest(message="hi", chat_id="c1"))
        applier.apply.assert_not_called()
        assert events[-1].updated_files is False
