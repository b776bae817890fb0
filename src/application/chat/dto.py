"""Chat DTOs."""

from pydantic import BaseModel, Field

from src.domain.entities.chat_mode import ChatMode


class ChatTurnRequest(BaseModel):
    """One user turn.

    History is loaded from conversation memory by ``chat_id``; a missing id
    starts a new conversation.
    """

    message: str = Field(..., min_length=1, max_length=100_000)
    chat_id: str | None = Field(None, max_length=100)
    mode: ChatMode = ChatMode.BUILD
    model: str | None = Field(None, max_length=255)  # Override routing
    selected_path: str | None = Field(None, max_length=1024)  # File the user is focused on
