"""Text rendering of non-text stream events and problem reports."""

import html
import json
from typing import Any

from src.application.guardrails.tag_parser import escape_directive_tags
from src.domain.entities.stream_events import ToolCall, ToolResult
from src.domain.entities.violations import Problem

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"
CANCELLED_ANNOTATION = "\n\n[Response cancelled by user]"


def to_text(value: Any) -> str:
    """Tool payloads may be structured; render them as text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False, indent=2)
    except (TypeError, ValueError):
        return str(value)


def render_reasoning(text: str) -> str:
    """Escaped reasoning block; ``text`` is the raw reasoning so far."""
    return THINK_OPEN + escape_directive_tags(text)


def render_tool_call(event: ToolCall) -> str:
    payload = escape_directive_tags(to_text(event.input))
    name = html.escape(event.tool_name, quote=True)
    return f'<tool-call tool="{name}" id="{html.escape(event.tool_call_id, quote=True)}">\n{payload}\n</tool-call>\n'


def render_tool_result(event: ToolResult) -> str:
    payload = escape_directive_tags(to_text(event.output))
    name = html.escape(event.tool_name, quote=True)
    return f'<tool-result tool="{name}" id="{html.escape(event.tool_call_id, quote=True)}">\n{payload}\n</tool-result>\n'


def render_problem_report(problems: list[Problem]) -> str:
    """Inline report block appended to the response before an auto-fix round."""
    rows = "\n".join(
        f'<problem file="{html.escape(p.file, quote=True)}" line="{p.line}" column="{p.column}" '
        f'code="{html.escape(str(p.code), quote=True)}">{html.escape(p.message, quote=False)}</problem>'
        for p in problems
    )
    return f'<problem-report summary="{len(problems)} problems">\n{rows}\n</problem-report>'


def problem_fix_prompt(problems: list[Problem]) -> str:
    """User message asking the model to fix reported problems."""
    noun = "error" if len(problems) == 1 else "errors"
    lines = [f"Fix these {len(problems)} {noun}:", ""]
    for i, p in enumerate(problems, 1):
        code = f" ({p.code})" if p.code != "" else ""
        lines.append(f"{i}. {p.file}:{p.line}:{p.column} - {p.message}{code}")
    lines += ["", "Please fix all errors in a concise way, using write tags for every changed file."]
    return "\n".join(lines)
