"""Model stream events and turn events emitted to clients.

Model events form a closed union discriminated by ``type``; consumers
match on it exhaustively.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel


@dataclass(frozen=True)
class TextDelta:
    text: str
    type: Literal["text-delta"] = "text-delta"


@dataclass(frozen=True)
class ReasoningDelta:
    text: str
    type: Literal["reasoning-delta"] = "reasoning-delta"


@dataclass(frozen=True)
class ToolCall:
    tool_call_id: str
    tool_name: str
    input: dict[str, Any] = field(default_factory=dict)
    type: Literal["tool-call"] = "tool-call"


@dataclass(frozen=True)
class ToolResult:
    tool_call_id: str
    tool_name: str
    output: Any = None
    type: Literal["tool-result"] = "tool-result"


@dataclass(frozen=True)
class Finish:
    finish_reason: str = "stop"
    type: Literal["finish"] = "finish"


StreamEvent = TextDelta | ReasoningDelta | ToolCall | ToolResult | Finish


class ChatMessage(BaseModel):
    """Message as rendered to the client."""

    role: str
    content: str


class ChunkEvent(BaseModel):
    """Live snapshot of the conversation for rendering."""

    type: Literal["chunk"] = "chunk"
    chat_id: str
    messages: list[ChatMessage]


class EndEvent(BaseModel):
    """Terminal event of a successful or cancelled turn."""

    type: Literal["end"] = "end"
    chat_id: str
    updated_files: bool = False
    extra_files: list[str] | None = None
    error: str | None = None
    cancelled: bool = False
    chat_summary: str | None = None


class ErrorEvent(BaseModel):
    """Terminal event of a failed turn. Never mixed into chunks."""

    type: Literal["error"] = "error"
    chat_id: str
    error: str


TurnEvent = ChunkEvent | EndEvent | ErrorEvent
