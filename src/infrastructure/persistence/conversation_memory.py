"""Conversation memory - save/load to output/conversations/."""

import json
import logging
import threading
import uuid
from pathlib import Path

from src.domain.ports.llm import LLMMessage

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


class ConversationMemory:
    """Save and load conversations to output/conversations/{id}.json.

    Each file holds ``{"summary": ..., "messages": [...]}``; the summary is
    the model's latest <chat-summary> and serves as the title.
    Thread-safe: file operations are protected by a reentrant lock.
    """

    def __init__(self, output_dir: str = "output") -> None:
        self._base = Path(output_dir) / "conversations"
        self._base.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def create_id(self) -> str:
        """Generate new conversation ID."""
        return str(uuid.uuid4())

    def _path(self, conversation_id: str) -> Path:
        return self._base / f"{conversation_id}.json"

    def _read(self, conversation_id: str) -> dict | None:
        path = self._path(conversation_id)
        if not path.exists():
            return None
        try:
            with self._lock:
                data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Malformed conversation file: %s", path, exc_info=True)
            return None
        except OSError:
            logger.warning("Failed to load conversation %s", conversation_id, exc_info=True)
            return None
        return data if isinstance(data, dict) else None

    def save(self, conversation_id: str, messages: list[LLMMessage], summary: str | None = None) -> None:
        """Save conversation to file (thread-safe). Keeps the previous summary when none is given."""
        path = self._path(conversation_id)
        with self._lock:
            if summary is None:
                summary = (self._read(conversation_id) or {}).get("summary")
            data = {
                "summary": summary,
                "messages": [{"role": m.role, "content": m.content} for m in messages],
            }
            try:
                path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            except OSError:
                logger.warning("Failed to save conversation %s", conversation_id, exc_info=True)

    def append(self, conversation_id: str, message: LLMMessage) -> None:
        """Append one message to an existing conversation."""
        with self._lock:
            messages = self.load(conversation_id)
            messages.append(message)
            self.save(conversation_id, messages)

    def load(self, conversation_id: str) -> list[LLMMessage]:
        """Load conversation messages. Returns empty list if not found or unreadable."""
        data = self._read(conversation_id)
        if data is None:
            return []
        try:
            return [LLMMessage(role=m["role"], content=m["content"]) for m in data.get("messages", [])]
        except (KeyError, TypeError):
            logger.warning("Malformed conversation messages: %s", conversation_id, exc_info=True)
            return []

    def summary(self, conversation_id: str) -> str | None:
        return (self._read(conversation_id) or {}).get("summary")

    def list_ids(self) -> list[str]:
        """List saved conversation IDs."""
        if not self._base.exists():
            return []
        return sorted(p.stem for p in self._base.glob("*.json"))

    def list_with_titles(self) -> list[dict]:
        """List conversations with their chat summary as title."""
        return [{"id": cid, "title": self.summary(cid) or UNTITLED} for cid in self.list_ids()]

    def delete(self, conversation_id: str) -> bool:
        """Delete conversation file (thread-safe). Returns True if deleted."""
        path = self._path(conversation_id)
        if not path.exists():
            return False
        try:
            with self._lock:
                path.unlink()
            return True
        except OSError:
            logger.warning("Failed to delete conversation %s", conversation_id, exc_info=True)
            return False
