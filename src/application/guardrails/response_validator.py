"""Whole-response validator for final acceptance and offline audits."""

import logging
from typing import assert_never

from pydantic import BaseModel

from src.application.guardrails.tag_parser import count_chat_summaries, strip_problem_reports, strip_think_blocks
from src.application.guardrails.violation_detector import DetectionContext, detect_violations
from src.domain.entities.violations import Severity, Violation, ViolationKind

logger = logging.getLogger(__name__)


class ValidationResult(BaseModel):
    """``violations`` holds critical entries only; the rest are ``warnings``."""

    is_valid: bool
    violations: list[Violation]
    warnings: list[Violation]


def _chat_summary_warnings(text: str) -> list[Violation]:
    count = count_chat_summaries(text)
    if count == 1:
        return []
    return [
        Violation(
            kind=ViolationKind.MALFORMED_TAG_STRUCTURE,
            severity=Severity.WARNING,
            message=f"Expected exactly one <chat-summary>, found {count}",
            context=f"Found {count} <chat-summary>",
        )
    ]


def validate_response(response: str, context: DetectionContext | None = None) -> ValidationResult:
    """Run every check over a finished response.

    Reasoning blocks and problem reports are not model output proper and
    are removed first.
    """
    text = strip_problem_reports(strip_think_blocks(response))
    found = [*detect_violations(text, context, streaming=False), *_chat_summary_warnings(text)]
    critical = [v for v in found if v.severity is Severity.CRITICAL]
    warnings = [v for v in found if v.severity is Severity.WARNING]
    if critical:
        logger.warning(
            "Response validation failed with %d critical violations: %s",
            len(critical),
            ", ".join(v.kind.value for v in critical),
        )
    return ValidationResult(is_valid=not critical, violations=critical, warnings=warnings)


def _format_one(v: Violation) -> str:
    match v.kind:
        case ViolationKind.PROHIBITED_MARKUP_BLOCK:
            return "⚠️ Markdown code blocks detected. Use <write> tags for all file content."
        case ViolationKind.PROHIBITED_TOOL_REFERENCE:
            return f"⚠️ {v.message}"
        case ViolationKind.MODE_INCOMPATIBLE_DIRECTIVE:
            return f"⚠️ Mode Violation: {v.message}"
        case ViolationKind.MALFORMED_TAG_STRUCTURE:
            return f"⚠️ Tag Error: {v.message}"
        case ViolationKind.NON_CONTENT_INSIDE_WRITE:
            return f"⚠️ Invalid Content: {v.message}"
        case _:
            assert_never(v.kind)


def format_validation_errors(violations: list[Violation]) -> str:
    """Human-readable list, blank-line separated. Empty string for no violations."""
    return "\n\n".join(_format_one(v) for v in violations)
