"""Conversation modes."""

from enum import Enum


class ChatMode(str, Enum):
    """How the assistant may act in a conversation.

    BUILD may mutate files through directives; ASK is read-only Q&A;
    AGENT acts through tool calls only.
    """

    BUILD = "build"
    ASK = "ask"
    AGENT = "agent"

    @property
    def allows_file_mutation(self) -> bool:
        return self is ChatMode.BUILD
