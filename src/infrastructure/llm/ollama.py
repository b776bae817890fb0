"""Ollama adapter - implements LLMPort with typed stream events."""

import itertools
import logging
from typing import Any, AsyncIterator

import httpx
from ollama import AsyncClient, RequestError, ResponseError

from src.domain.entities.stream_events import (
    Finish,
    ReasoningDelta,
    StreamEvent,
    TextDelta,
    ToolCall,
)
from src.domain.ports.config import OllamaConfig
from src.domain.ports.llm import AbortSignal, LLMMessage, LLMResponse, ModelInvocationError
from src.infrastructure.llm.reasoning_parser import ReasoningParser

logger = logging.getLogger(__name__)

# Fast fail when the host is down, so startup is not blocked for long
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_MODEL = "qwen2.5-coder:7b"

# provider_options keys passed to chat() itself rather than inside ``options``
_TOP_LEVEL_OPTIONS = ("think", "keep_alive", "format")


def _request_id(error: ResponseError) -> str | None:
    headers = getattr(error, "headers", None) or {}
    return headers.get("x-request-id") if isinstance(headers, dict) else None


class OllamaAdapter:
    """Ollama implementation of LLMPort."""

    def __init__(self, config: OllamaConfig, client: AsyncClient | None = None) -> None:
        self._config = config
        # connect: fail fast; read/write: full response timeout (httpx needs all four set).
        read_timeout = float(config.timeout) if config.timeout else 120.0
        timeout = httpx.Timeout(
            connect=DEFAULT_CONNECT_TIMEOUT,
            read=read_timeout,
            write=read_timeout,
            pool=30.0,
        )
        self._client = client or AsyncClient(host=config.host, timeout=timeout)
        self._call_ids = itertools.count(1)

    def _ollama_options(self, temperature: float, extra: dict[str, Any] | None = None) -> dict:
        """Build options dict: temperature + optional num_ctx, num_predict from config."""
        opts: dict = {"temperature": temperature}
        if self._config.num_ctx is not None:
            opts["num_ctx"] = self._config.num_ctx
        if self._config.num_predict is not None:
            opts["num_predict"] = self._config.num_predict
        for key, value in (extra or {}).items():
            if key not in _TOP_LEVEL_OPTIONS:
                opts[key] = value
        return opts

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response.

        Timeouts and transport failures surface as TimeoutError / ConnectionError
        so callers can retry them; anything else is a ModelInvocationError.
        """
        model = model or DEFAULT_MODEL
        msg_dicts = [{"role": m.role, "content": m.content} for m in messages]
        try:
            response = await self._client.chat(
                model=model,
                messages=msg_dicts,
                options=self._ollama_options(temperature),
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Ollama request timed out: {e}") from e
        except (httpx.TransportError, ConnectionError) as e:
            raise ConnectionError(f"Ollama unreachable at {self._config.host}: {e}") from e
        except ResponseError as e:
            raise ModelInvocationError(e.error, request_id=_request_id(e)) from e
        except RequestError as e:
            raise ModelInvocationError(e.error) from e
        content = response.message.content if response.message else ""
        return LLMResponse(content=content or "", model=response.model or model, done=True)

    def _tool_call_event(self, call: Any) -> ToolCall:
        fn = getattr(call, "function", None)
        name = getattr(fn, "name", "") or ""
        arguments = getattr(fn, "arguments", None) or {}
        return ToolCall(
            tool_call_id=f"call_{next(self._call_ids)}",
            tool_name=name,
            input=dict(arguments),
        )

    async def stream_events(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        provider_options: dict[str, Any] | None = None,
        signal: AbortSignal | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream typed events; inline <think> blocks become ReasoningDelta."""
        model = model or DEFAULT_MODEL
        provider_options = dict(provider_options or {})
        temperature = float(provider_options.pop("temperature", 0.7))
        kwargs: dict[str, Any] = {
            key: provider_options[key] for key in _TOP_LEVEL_OPTIONS if key in provider_options
        }
        if tools:
            kwargs["tools"] = tools
        msg_dicts = [{"role": m.role, "content": m.content} for m in messages]
        parser = ReasoningParser()

        try:
            stream = await self._client.chat(
                model=model,
                messages=msg_dicts,
                options=self._ollama_options(temperature, provider_options),
                stream=True,
                **kwargs,
            )
            async for chunk in stream:
                if signal is not None and signal.cancelled:
                    logger.debug("Ollama stream stopped: signal cancelled")
                    return
                message = chunk.message
                if message is not None:
                    thinking = getattr(message, "thinking", None)
                    if thinking:
                        yield ReasoningDelta(text=thinking)
                    if message.content:
                        for kind, text in parser.feed(message.content):
                            yield ReasoningDelta(text=text) if kind == "thinking" else TextDelta(text=text)
                    for call in message.tool_calls or ():
                        yield self._tool_call_event(call)
                if chunk.done:
                    for kind, text in parser.flush():
                        yield ReasoningDelta(text=text) if kind == "thinking" else TextDelta(text=text)
                    yield Finish(finish_reason=chunk.done_reason or "stop")
                    return
        except ResponseError as e:
            logger.warning("Ollama stream failed (%s): %s", e.status_code, e.error)
            raise ModelInvocationError(e.error, request_id=_request_id(e)) from e
        except RequestError as e:
            raise ModelInvocationError(e.error) from e
        except httpx.HTTPError as e:
            logger.warning("Ollama stream transport error: %s", e)
            raise ModelInvocationError(str(e) or type(e).__name__) from e

        for kind, text in parser.flush():
            yield ReasoningDelta(text=text) if kind == "thinking" else TextDelta(text=text)
        yield Finish()

    async def is_available(self) -> bool:
        """Check if Ollama server is available. Fail-fast, no stale cache."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self._config.host.rstrip('/')}/api/tags")
                return resp.status_code == 200
        except httpx.HTTPError as e:
            logger.debug("Ollama availability check failed: %s", e)
        return False
