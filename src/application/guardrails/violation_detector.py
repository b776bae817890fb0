"""Violation detector - pure pattern checks over response text.

Every check runs on every call and nothing is remembered between calls;
callers that watch a growing buffer deduplicate themselves.
"""

import re
from dataclasses import dataclass

from src.application.guardrails.tag_parser import (
    count_write_tags,
    find_directive_open_tags,
    has_unclosed_write,
    parse_write_directives,
)
from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.violations import Severity, Violation, ViolationKind, excerpt
from src.domain.entities.workflow_state import WorkflowStep

# Tool names from a different agent ecosystem; they do not exist here.
PROHIBITED_TOOLS = ("apply_patch", "turbo_edit", "patch_file", "edit_file", "write_file")

_FENCED_BLOCK_RE = re.compile(r"```[\s\S]*?```")
_OPENING_FENCE_RE = re.compile(r"```[\w]*\s*\n")
_TOOL_RES = tuple((tool, re.compile(rf"\b{re.escape(tool)}\b", re.IGNORECASE)) for tool in PROHIBITED_TOOLS)
_NARRATIVE_RES = tuple(
    re.compile(p, re.IGNORECASE | re.MULTILINE)
    for p in (
        r"^Summary:",
        r"^Here's what I changed",
        r"^I've updated",
        r"^Click",
        r"^Please",
        r"^Now hit refresh",
        r"^-\s*Fixed",
        r"^-\s*Added",
    )
)
_ADD_DEP_PACKAGES_RE = re.compile(r'<add-dependency(?=[\s/>])[^>]*?packages\s*=\s*"([^"]*)"')


@dataclass(frozen=True)
class DetectionContext:
    """Conversation mode and workflow step a response is checked against."""

    mode: ChatMode = ChatMode.BUILD
    workflow_step: WorkflowStep | None = None


def detect_markup_blocks(text: str, streaming: bool = False) -> list[Violation]:
    """Every complete fenced block is critical.

    In streaming mode an opening fence after the last complete block is
    flagged too, so the stream can stop before the block finishes.
    """
    violations: list[Violation] = []
    last_end = 0
    for match in _FENCED_BLOCK_RE.finditer(text):
        last_end = match.end()
        violations.append(
            Violation(
                kind=ViolationKind.PROHIBITED_MARKUP_BLOCK,
                severity=Severity.CRITICAL,
                message="Fenced code blocks are prohibited. Put file content inside <write> tags.",
                context=excerpt(match.group(0)),
            )
        )
    if streaming:
        opening = _OPENING_FENCE_RE.search(text, last_end)
        if opening:
            violations.append(
                Violation(
                    kind=ViolationKind.PROHIBITED_MARKUP_BLOCK,
                    severity=Severity.CRITICAL,
                    message="Fenced code block opened. Put file content inside <write> tags.",
                    context=excerpt(text[opening.start() :]),
                )
            )
    return violations


def detect_prohibited_tools(text: str) -> list[Violation]:
    """One critical violation per denylisted tool name mentioned."""
    return [
        Violation(
            kind=ViolationKind.PROHIBITED_TOOL_REFERENCE,
            severity=Severity.CRITICAL,
            message=f'Referenced tool "{tool}" does not exist here. Use <write> tags instead.',
            context=f"Found reference to: {tool}",
        )
        for tool, pattern in _TOOL_RES
        if pattern.search(text)
    ]


def detect_malformed_tags(text: str, streaming: bool = False) -> list[Violation]:
    """Write open/close mismatch (critical) and comma-separated packages (warning).

    While streaming, a single trailing write that is still open is expected.
    """
    violations: list[Violation] = []
    opened, closed = count_write_tags(text)
    in_progress = streaming and opened == closed + 1 and has_unclosed_write(text)
    if opened != closed and not in_progress:
        violations.append(
            Violation(
                kind=ViolationKind.MALFORMED_TAG_STRUCTURE,
                severity=Severity.CRITICAL,
                message=f"Mismatched write tags: {opened} opening tags, {closed} closing tags",
                context=f"Found {opened} <write>, {closed} </write>",
            )
        )
    for match in _ADD_DEP_PACKAGES_RE.finditer(text):
        if "," in match.group(1):
            violations.append(
                Violation(
                    kind=ViolationKind.MALFORMED_TAG_STRUCTURE,
                    severity=Severity.WARNING,
                    message="add-dependency packages must be space-separated, not comma-separated.",
                    context=excerpt(match.group(1)),
                )
            )
    return violations


def detect_non_content_in_write(text: str) -> list[Violation]:
    """Narrative prose inside write content. At most one violation per write."""
    violations: list[Violation] = []
    for directive in parse_write_directives(text):
        if any(p.search(directive.content) for p in _NARRATIVE_RES):
            violations.append(
                Violation(
                    kind=ViolationKind.NON_CONTENT_INSIDE_WRITE,
                    severity=Severity.CRITICAL,
                    message="Instructions or summaries found inside <write>. Only file content is allowed.",
                    context=excerpt(directive.content),
                )
            )
    return violations


def is_docs_path(path: str) -> bool:
    """Docs step may only write markdown under docs/ or README.md."""
    return path.endswith(".md") and (path.startswith("docs/") or path == "README.md")


def detect_mode_violation(text: str, context: DetectionContext) -> list[Violation]:
    """Directives the current mode or workflow step forbids."""
    tags = find_directive_open_tags(text)
    if not tags:
        return []

    def _critical(message: str, ctx: str) -> Violation:
        return Violation(
            kind=ViolationKind.MODE_INCOMPATIBLE_DIRECTIVE,
            severity=Severity.CRITICAL,
            message=message,
            context=ctx,
        )

    violations: list[Violation] = []
    if context.workflow_step is WorkflowStep.PLANNING:
        violations.append(
            _critical(
                "Planning step prohibits file creation or modification. Only a markdown plan is allowed.",
                "Found directive tags in planning step",
            )
        )
    elif context.workflow_step is WorkflowStep.DOCS:
        for tag in tags:
            if tag.name != "write":
                continue
            path = tag.attrs.get("path", "")
            if not is_docs_path(path):
                violations.append(
                    _critical(
                        f"Docs step only allows markdown files in docs/ or README.md. Found: {path}",
                        excerpt(path),
                    )
                )

    if context.mode is ChatMode.AGENT:
        violations.append(
            _critical(
                "Agent mode prohibits directive tags. Use the provided tools instead.",
                "Found directive tags in agent mode",
            )
        )
    elif context.mode is ChatMode.ASK:
        violations.append(
            _critical(
                "Ask mode prohibits file operations. This mode is for questions and explanations only.",
                "Found directive tags in ask mode",
            )
        )
    return violations


def detect_violations(
    text: str,
    context: DetectionContext | None = None,
    streaming: bool = False,
) -> list[Violation]:
    """Run every check over ``text``; order is markup, tools, tags, content, mode."""
    context = context or DetectionContext()
    return [
        *detect_markup_blocks(text, streaming),
        *detect_prohibited_tools(text),
        *detect_malformed_tags(text, streaming),
        *detect_non_content_in_write(text),
        *detect_mode_violation(text, context),
    ]
