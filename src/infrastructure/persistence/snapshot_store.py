"""Partial-response snapshots - output/snapshots/{conversation_id}.txt."""

import logging
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


class FileSnapshotStore:
    """Latest in-progress assistant text per conversation.

    Thread-safe: file operations are protected by a reentrant lock.
    """

    def __init__(self, output_dir: str = "output") -> None:
        self._base = Path(output_dir) / "snapshots"
        self._base.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def save_snapshot(self, conversation_id: str, text: str) -> None:
        path = self._base / f"{conversation_id}.txt"
        try:
            with self._lock:
                path.write_text(text, encoding="utf-8")
        except OSError:
            logger.warning("Failed to save snapshot %s", conversation_id, exc_info=True)

    def load_snapshot(self, conversation_id: str) -> str | None:
        path = self._base / f"{conversation_id}.txt"
        if not path.exists():
            return None
        try:
            with self._lock:
                return path.read_text(encoding="utf-8")
        except OSError:
            logger.warning("Failed to load snapshot %s", conversation_id, exc_info=True)
            return None

    def clear(self, conversation_id: str) -> None:
        with self._lock:
            (self._base / f"{conversation_id}.txt").unlink(missing_ok=True)
