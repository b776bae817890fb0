"""Guardrail violation log - one JSONL file per day under output/guardrail-logs/."""

import json
import logging
import threading
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError

from src.domain.ports.persistence import ViolationLogEntry

logger = logging.getLogger(__name__)


class GuardrailLog:
    """Append-only violation log with aggregate queries.

    Thread-safe: appends are serialized by a lock.
    """

    def __init__(self, output_dir: str = "output") -> None:
        self._base = Path(output_dir) / "guardrail-logs"
        self._base.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _file_for(self, when: datetime) -> Path:
        return self._base / f"violations-{when.strftime('%Y-%m-%d')}.jsonl"

    def log_violation(self, entry: ViolationLogEntry) -> None:
        """Append one entry. Failures are logged, never raised."""
        path = self._file_for(entry.timestamp)
        try:
            with self._lock, path.open("a", encoding="utf-8") as f:
                f.write(entry.model_dump_json() + "\n")
            logger.info(
                "Logged guardrail violation type=%s mode=%s model=%s",
                entry.violation_type,
                entry.mode,
                entry.model,
            )
        except OSError:
            logger.error("Failed to log guardrail violation", exc_info=True)

    def get_violation_logs(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ViolationLogEntry]:
        """Entries within [start, end]; malformed lines are skipped with a warning."""
        entries: list[ViolationLogEntry] = []
        for path in sorted(self._base.glob("violations-*.jsonl")):
            try:
                lines = path.read_text(encoding="utf-8").splitlines()
            except OSError:
                logger.error("Failed to read violation log %s", path, exc_info=True)
                continue
            for line in lines:
                if not line.strip():
                    continue
                try:
                    entry = ViolationLogEntry.model_validate_json(line)
                except (ValidationError, json.JSONDecodeError):
                    logger.warning("Failed to parse log line in %s", path.name)
                    continue
                if start and entry.timestamp < start:
                    continue
                if end and entry.timestamp > end:
                    continue
                entries.append(entry)
        return entries

    def get_violation_stats(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict:
        """Totals by type, by mode (``mode:step`` when a step was active) and by model."""
        logs = self.get_violation_logs(start, end)
        by_mode = Counter(f"{e.mode}:{e.workflow_step}" if e.workflow_step else e.mode for e in logs)
        return {
            "total": len(logs),
            "by_type": dict(Counter(e.violation_type for e in logs)),
            "by_mode": dict(by_mode),
            "by_model": dict(Counter(e.model for e in logs)),
        }

    def get_top_violations(self, limit: int = 10) -> list[dict]:
        stats = self.get_violation_stats()
        total = stats["total"]
        ranked = sorted(stats["by_type"].items(), key=lambda kv: kv[1], reverse=True)[:limit]
        return [
            {"type": kind, "count": count, "percentage": (count / total * 100) if total else 0.0}
            for kind, count in ranked
        ]

    def export_violation_report(self, now: datetime | None = None) -> str:
        """Markdown summary of the last 7 days."""
        now = now or datetime.now(timezone.utc)
        stats = self.get_violation_stats(start=now - timedelta(days=7))
        lines = [
            "# Guardrail Violation Report (Last 7 Days)",
            "",
            f"Total Violations: {stats['total']}",
            "",
            "## Top Violations",
        ]
        lines += [f"- {v['type']}: {v['count']} ({v['percentage']:.1f}%)" for v in self.get_top_violations(5)]
        lines += ["", "## Violations by Mode"]
        lines += [f"- {k}: {c}" for k, c in sorted(stats["by_mode"].items(), key=lambda kv: kv[1], reverse=True)]
        lines += ["", "## Violations by Model"]
        lines += [f"- {k}: {c}" for k, c in sorted(stats["by_model"].items(), key=lambda kv: kv[1], reverse=True)]
        return "\n".join(lines) + "\n"
