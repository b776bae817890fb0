"""Corrective agent - one-shot router call producing a corrective instruction."""

import logging
import re

from pydantic import BaseModel

from src.application.shared.llm_helpers import ask_model
from src.domain.entities.violations import Violation
from src.domain.ports.llm import LLMPort

logger = logging.getLogger(__name__)

RESPONSE_PREVIEW_CHARS = 1000
VIOLATION_CONTEXT_CHARS = 200

CORRECTIVE_AGENT_PROMPT = """You are a corrective agent helping another AI model fix its response.

The model attempted to respond but violated the following rules:
{violations}

Original user request: {user_prompt}
Model's problematic response: {model_response}

Your job:
1. Identify exactly what the model did wrong
2. Provide SPECIFIC corrective instructions
3. Format your response as a corrective prompt that will guide the model to fix its response

## Output Format

<corrective-instruction>
[Clear, specific instruction on what to change]
</corrective-instruction>

## Example

<corrective-instruction>
You used markdown code blocks which are PROHIBITED. Rewrite your response using ONLY <write> tags for all code.

Format: <write path="src/component.tsx" description="Create component">
YOUR CODE HERE
</write>
</corrective-instruction>

Be direct, specific, and actionable in your instructions."""

_INSTRUCTION_RE = re.compile(r"<corrective-instruction>(.*?)</corrective-instruction>", re.DOTALL)


class CorrectionResult(BaseModel):
    """``prompt`` is set only when ``should_retry`` is True."""

    should_retry: bool
    prompt: str | None = None
    reason: str | None = None


def truncate_response(text: str, limit: int = RESPONSE_PREVIEW_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "\n...[truncated]"


def format_violations(violations: list[Violation]) -> str:
    return "\n".join(
        f"- {v.kind.value}: {v.message}\n  Context: {v.context[:VIOLATION_CONTEXT_CHARS]}..."
        for v in violations
    )


def build_corrective_prompt(user_prompt: str, model_response: str, violations: list[Violation]) -> str:
    return CORRECTIVE_AGENT_PROMPT.format(
        violations=format_violations(violations),
        user_prompt=user_prompt,
        model_response=truncate_response(model_response),
    )


def extract_instruction(reply: str) -> str | None:
    """Text between the instruction delimiters, or None. Never guesses."""
    match = _INSTRUCTION_RE.search(reply)
    if not match:
        return None
    return match.group(1).strip() or None


async def attempt_correction(
    llm: LLMPort,
    user_prompt: str,
    model_response: str,
    violations: list[Violation],
    router_model: str,
    timeout: float | None = None,
) -> CorrectionResult:
    """Ask the router model how to fix ``model_response``."""
    logger.info("Attempting correction with router model %s", router_model)
    prompt = build_corrective_prompt(user_prompt, model_response, violations)
    try:
        reply = await ask_model(llm, prompt, router_model, timeout=timeout)
    except Exception as e:
        logger.error("Correction attempt failed: %s", e, exc_info=True)
        return CorrectionResult(should_retry=False, reason=f"Correction failed: {e}")

    instruction = extract_instruction(reply)
    if instruction is None:
        logger.warning("Router did not provide corrective instruction in expected format")
        return CorrectionResult(
            should_retry=False,
            reason="Could not generate corrective instruction (no tags found)",
        )
    return CorrectionResult(should_retry=True, prompt=instruction)
