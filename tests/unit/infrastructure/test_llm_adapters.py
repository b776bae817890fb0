"""Tests for the Ollama adapter."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from ollama import ResponseError

from src.domain.entities.stream_events import Finish, ReasoningDelta, TextDelta, ToolCall
from src.domain.ports.config import OllamaConfig
from src.domain.ports.llm import LLMMessage, ModelInvocationError
from src.infrastructure.llm.ollama import OllamaAdapter


def _chunk(content="", thinking=None, tool_calls=None, done=False, done_reason=None):
    chunk = MagicMock()
    chunk.message = MagicMock(content=content, thinking=thinking, tool_calls=tool_calls)
    chunk.done = done
    chunk.done_reason = done_reason
    return chunk


def _stream(*chunks):
    async def gen():
        for chunk in chunks:
            yield chunk

    return gen()


async def _events(adapter, **kwargs):
    messages = [LLMMessage(role="user", content="Hi")]
    return [event async for event in adapter.stream_events(messages, **kwargs)]


class TestOllamaAdapter:
    """Tests for OllamaAdapter."""

    @pytest.fixture
    def config(self):
        return OllamaConfig(host="http://localhost:11434", timeout=30, num_ctx=8192)

    @pytest.fixture
    def adapter(self, config):
        return OllamaAdapter(config, client=MagicMock())

    @pytest.mark.asyncio
    async def test_generate_calls_client(self, adapter):
        """Generate calls ollama client with correct params."""
        mock_response = MagicMock()
        mock_response.message = MagicMock(content="Hello!")
        mock_response.model = "llama2"
        adapter._client.chat = AsyncMock(return_value=mock_response)

        result = await adapter.generate([LLMMessage(role="user", content="Hi")], model="llama2", temperature=0.1)

        assert result.content == "Hello!"
        assert result.model == "llama2"
        options = adapter._client.chat.call_args.kwargs["options"]
        assert options == {"temperature": 0.1, "num_ctx": 8192}

    @pytest.mark.asyncio
    async def test_generate_timeout_is_retryable(self, adapter):
        """httpx timeouts surface as TimeoutError."""
        adapter._client.chat = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(TimeoutError):
            await adapter.generate([LLMMessage(role="user", content="Hi")])

    @pytest.mark.asyncio
    async def test_generate_response_error(self, adapter):
        """Provider errors become ModelInvocationError."""
        adapter._client.chat = AsyncMock(side_effect=ResponseError("model not found", 404))
        with pytest.raises(ModelInvocationError) as exc:
            await adapter.generate([LLMMessage(role="user", content="Hi")])
        assert exc.value.message == "model not found"

    @pytest.mark.asyncio
    async def test_stream_text_and_finish(self, adapter):
        """Content chunks become text deltas followed by Finish."""
        adapter._client.chat = AsyncMock(
            return_value=_stream(_chunk("Hello"), _chunk(" world"), _chunk(done=True, done_reason="stop"))
        )
        events = await _events(adapter, model="llama2")
        assert events == [TextDelta("Hello"), TextDelta(" world"), Finish("stop")]

    @pytest.mark.asyncio
    async def test_stream_reasoning(self, adapter):
        """Native thinking and inline think tags become reasoning deltas."""
        adapter._client.chat = AsyncMock(
            return_value=_stream(
                _chunk(thinking="plan"),
                _chunk("<think>more</think>answer"),
                _chunk(done=True, done_reason="stop"),
            )
        )
        events = await _events(adapter)
        assert [e for e in events if isinstance(e, ReasoningDelta)] == [ReasoningDelta("plan"), ReasoningDelta("more")]
        assert [e.text for e in events if isinstance(e, TextDelta)] == ["answer"]

    @pytest.mark.asyncio
    async def test_stream_tool_calls_get_ids(self, adapter):
        """Tool calls get sequential synthetic ids."""
        call = MagicMock()
        call.function.name = "read_file"
        call.function.arguments = {"path": "a.ts"}
        adapter._client.chat = AsyncMock(return_value=_stream(_chunk(tool_calls=[call, call]), _chunk(done=True)))
        events = await _events(adapter, tools=[{"type": "function"}])
        calls = [e for e in events if isinstance(e, ToolCall)]
        assert [c.tool_call_id for c in calls] == ["call_1", "call_2"]
        assert calls[0].input == {"path": "a.ts"}
        assert adapter._client.chat.call_args.kwargs["tools"] == [{"type": "function"}]

    @pytest.mark.asyncio
    async def test_provider_options_split(self, adapter):
        """think goes to chat(); temperature and the rest go into options."""
        adapter._client.chat = AsyncMock(return_value=_stream(_chunk(done=True)))
        await _events(adapter, provider_options={"temperature": 0.2, "think": True, "top_p": 0.9})
        kwargs = adapter._client.chat.call_args.kwargs
        assert kwargs["think"] is True
        assert kwargs["options"]["temperature"] == 0.2
        assert kwargs["options"]["top_p"] == 0.9
        assert "think" not in kwargs["options"]

    @pytest.mark.asyncio
    async def test_stream_stops_on_signal(self, adapter):
        """A cancelled signal stops the stream before the next chunk."""
        signal = MagicMock(cancelled=True)
        adapter._client.chat = AsyncMock(return_value=_stream(_chunk("x"), _chunk(done=True)))
        assert await _events(adapter, signal=signal) == []

    @pytest.mark.asyncio
    async def test_stream_error(self, adapter):
        """Provider errors while streaming become ModelInvocationError."""
        adapter._client.chat = AsyncMock(side_effect=ResponseError("overloaded", 503))
        with pytest.raises(ModelInvocationError):
            await _events(adapter)

    @pytest.mark.asyncio
    async def test_is_available_true(self, adapter):
        """is_available returns True when server responds."""
        mock_response = MagicMock()
        mock_response.status_code = 200

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(return_value=mock_response)
            result = await adapter.is_available()

        assert result is True

    @pytest.mark.asyncio
    async def test_is_available_false_on_error(self, adapter):
        """is_available returns False on connection error."""
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=httpx.ConnectError("Connection refused")
            )
            result = await adapter.is_available()

        assert result is False
