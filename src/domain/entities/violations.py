"""Protocol violation taxonomy."""

from dataclasses import dataclass
from enum import Enum

CONTEXT_MAX_CHARS = 100


class ViolationKind(str, Enum):
    """Closed set of rule infractions the detector can report."""

    PROHIBITED_MARKUP_BLOCK = "prohibited-markup-block"
    PROHIBITED_TOOL_REFERENCE = "prohibited-tool-reference"
    MALFORMED_TAG_STRUCTURE = "malformed-tag-structure"
    MODE_INCOMPATIBLE_DIRECTIVE = "mode-incompatible-directive"
    NON_CONTENT_INSIDE_WRITE = "non-content-inside-write"


class Severity(str, Enum):
    """Only CRITICAL violations interrupt a stream."""

    CRITICAL = "critical"
    WARNING = "warning"


@dataclass(frozen=True)
class Violation:
    """One detected infraction with a short diagnostic excerpt."""

    kind: ViolationKind
    severity: Severity
    message: str
    context: str = ""

    @property
    def is_critical(self) -> bool:
        return self.severity is Severity.CRITICAL


def excerpt(text: str, limit: int = CONTEXT_MAX_CHARS) -> str:
    """Bounded context snippet: first ``limit`` chars plus an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


@dataclass(frozen=True)
class Problem:
    """Diagnostic reported for a file in the virtual tree."""

    file: str
    line: int
    column: int
    message: str
    code: str | int = ""


@dataclass
class ProblemReport:
    problems: list[Problem]

    @property
    def is_empty(self) -> bool:
        return not self.problems
