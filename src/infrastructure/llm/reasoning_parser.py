"""Parser for reasoning models (DeepSeek-R1, QwQ) - splits inline <think> blocks from content.

Text is passed through byte-exact; a tag split across chunks is held back
until the next chunk decides it.
"""

from dataclasses import dataclass, field
from typing import Literal

ParsedKind = Literal["thinking", "content"]
THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"


def _partial_suffix(text: str, tag: str) -> int:
    """Length of the longest suffix of ``text`` that is a proper prefix of ``tag``."""
    for size in range(min(len(tag) - 1, len(text)), 0, -1):
        if tag.startswith(text[-size:]):
            return size
    return 0


@dataclass
class ReasoningParser:
    """Incremental splitter; feed chunks, then flush at end of stream."""

    in_think: bool = False
    _pending: str = field(default="", repr=False)

    def feed(self, chunk: str) -> list[tuple[ParsedKind, str]]:
        buffer = self._pending + chunk
        self._pending = ""
        emitted: list[tuple[ParsedKind, str]] = []

        while buffer:
            tag = THINK_CLOSE if self.in_think else THINK_OPEN
            kind: ParsedKind = "thinking" if self.in_think else "content"
            idx = buffer.find(tag)
            if idx == -1:
                held = _partial_suffix(buffer, tag)
                text = buffer[: len(buffer) - held]
                if text:
                    emitted.append((kind, text))
                self._pending = buffer[len(buffer) - held :]
                break
            if idx > 0:
                emitted.append((kind, buffer[:idx]))
            self.in_think = not self.in_think
            buffer = buffer[idx + len(tag) :]
        return emitted

    def flush(self) -> list[tuple[ParsedKind, str]]:
        if not self._pending:
            return []
        kind: ParsedKind = "thinking" if self.in_think else "content"
        text, self._pending = self._pending, ""
        return [(kind, text)]
