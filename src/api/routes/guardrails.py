"""Guardrail API routes - ad-hoc validation and violation statistics."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from src.api.dependencies import get_guardrail_log, limiter
from src.application.guardrails.response_validator import (
    ValidationResult,
    format_validation_errors,
    validate_response,
)
from src.application.guardrails.tag_parser import parse_directives
from src.application.guardrails.violation_detector import DetectionContext
from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.workflow_state import WorkflowStep
from src.infrastructure.persistence.guardrail_log import GuardrailLog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/guardrails", tags=["guardrails"])


class ValidateRequest(BaseModel):
    response: str = Field(..., max_length=1_000_000)
    mode: ChatMode = ChatMode.BUILD
    workflow_step: WorkflowStep | None = None


class ValidateResponse(ValidationResult):
    report: str = ""
    directives: list[dict] = Field(default_factory=list)


@router.post("/validate", response_model=ValidateResponse)
@limiter.limit("60/minute")
async def validate(request: Request, body: ValidateRequest) -> ValidateResponse:
    """Run the response validator over a finished response.

    Directives found are listed in the order they appear.
    """
    result = validate_response(body.response, DetectionContext(body.mode, body.workflow_step))
    return ValidateResponse(
        is_valid=result.is_valid,
        violations=result.violations,
        warnings=result.warnings,
        report=format_validation_errors([*result.violations, *result.warnings]),
        directives=[{"tag": d.tag, **asdict(d)} for d in parse_directives(body.response).in_document_order],
    )


@router.get("/stats")
@limiter.limit("60/minute")
async def stats(request: Request, log: GuardrailLog = Depends(get_guardrail_log)) -> dict:
    return {**log.get_violation_stats(), "top": log.get_top_violations()}


@router.get("/report", response_class=PlainTextResponse)
@limiter.limit("30/minute")
async def report(request: Request, log: GuardrailLog = Depends(get_guardrail_log)) -> str:
    """Markdown report for the last 7 days."""
    return log.export_violation_report()
