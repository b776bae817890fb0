"""Batch audit of saved conversations with the response validator."""

import logging
from dataclasses import dataclass

from src.application.guardrails.response_validator import ValidationResult, validate_response
from src.application.guardrails.violation_detector import DetectionContext
from src.domain.ports.llm import LLMMessage

logger = logging.getLogger(__name__)


@dataclass
class AuditFinding:
    """Validation result for one assistant message (``index`` into the conversation)."""

    index: int
    result: ValidationResult


def audit_conversation(
    messages: list[LLMMessage],
    context: DetectionContext | None = None,
) -> list[AuditFinding]:
    """Validate every assistant message; only messages with violations or warnings are returned."""
    findings: list[AuditFinding] = []
    for index, message in enumerate(messages):
        if message.role != "assistant":
            continue
        result = validate_response(message.content, context)
        if result.violations or result.warnings:
            findings.append(AuditFinding(index=index, result=result))
    logger.debug("Audited %d messages, %d with findings", len(messages), len(findings))
    return findings
