"""Workflow state store - output/workflow/{conversation_id}.json."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from src.domain.entities.workflow_state import WorkflowState

logger = logging.getLogger(__name__)


class JsonWorkflowStateStore:
    """One JSON record per conversation, replaced atomically on write."""

    def __init__(self, output_dir: str = "output") -> None:
        self._base = Path(output_dir) / "workflow"
        self._base.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path(self, conversation_id: str) -> Path:
        return self._base / f"{conversation_id}.json"

    def read(self, conversation_id: str) -> dict | None:
        """Raw record, or None when missing or unreadable."""
        path = self._path(conversation_id)
        if not path.exists():
            return None
        try:
            with self._lock:
                data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Malformed workflow state file: %s", path, exc_info=True)
            return None
        return data if isinstance(data, dict) else None

    def write(self, conversation_id: str, state: WorkflowState) -> None:
        """Write via temp file + rename so readers never see a partial record."""
        path = self._path(conversation_id)
        payload = state.model_dump_json()
        with self._lock:
            fd, tmp = tempfile.mkstemp(dir=self._base, prefix=f".{conversation_id}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp, path)
            except OSError:
                Path(tmp).unlink(missing_ok=True)
                raise


class InMemoryWorkflowStateStore:
    """Process-local store for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._records: dict[str, dict] = {}

    def read(self, conversation_id: str) -> dict | None:
        record = self._records.get(conversation_id)
        return dict(record) if record is not None else None

    def write(self, conversation_id: str, state: WorkflowState) -> None:
        self._records[conversation_id] = state.model_dump(mode="json")

    def put_raw(self, conversation_id: str, record: dict) -> None:
        """Store an arbitrary record as-is (e.g. one written by an older version)."""
        self._records[conversation_id] = dict(record)
