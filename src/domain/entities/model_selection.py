"""Model selection entities."""

from enum import Enum


class TaskType(str, Enum):
    """Task type hint used for model and prompt selection."""

    FRONTEND = "frontend"
    BACKEND = "backend"
    DEBUGGING = "debugging"
    GENERAL = "general"


class RouterCategory(str, Enum):
    """Single-word classifications the router model may answer with."""

    ULTRATHINK = "ultrathink"
    FRONTEND = "frontend"
    BACKEND = "backend"
    DEBUGGING = "debugging"
    CODE = "code"
    CLARIFICATION = "clarification"
    GENERAL = "general"

    @classmethod
    def parse(cls, raw: str) -> "RouterCategory | None":
        """Classification from raw router output, or None if unrecognized."""
        text = raw.strip().lower().strip(".!\"'` ")
        try:
            return cls(text)
        except ValueError:
            return None
