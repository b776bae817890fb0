"""LLM Port - interface for language model providers."""

from typing import Any, AsyncIterator, Protocol

from pydantic import BaseModel

from src.domain.entities.stream_events import StreamEvent


class LLMMessage(BaseModel):
    """Single message in a conversation."""

    role: str  # "system" | "user" | "assistant"
    content: str


class LLMResponse(BaseModel):
    """Response from LLM (non-streaming)."""

    content: str
    model: str
    done: bool = True


class ModelInvocationError(Exception):
    """Provider or network failure while calling a model.

    ``request_id`` is the provider's correlation id when it sent one.
    """

    def __init__(self, message: str, request_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.request_id = request_id

    def user_message(self) -> str:
        """Message shown to the user, prefixed with the request id when known."""
        prefix = f"[Request ID: {self.request_id}] " if self.request_id else ""
        return f"Sorry, there was an error from the AI: {prefix}{self.message}"


class AbortSignal(Protocol):
    """Cooperative cancellation flag shared with an in-flight stream."""

    @property
    def cancelled(self) -> bool: ...


class LLMPort(Protocol):
    """Interface for LLM providers (Ollama, etc.)."""

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response (non-streaming)."""
        ...

    def stream_events(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        provider_options: dict[str, Any] | None = None,
        signal: AbortSignal | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream typed events. Stops promptly once ``signal`` is cancelled.

        Raises ModelInvocationError on provider failure.
        """
        ...

    async def is_available(self) -> bool:
        """Check if the LLM provider is available."""
        ...
