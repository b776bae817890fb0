"""Correction texts keyed by violation kind."""

from typing import assert_never

from src.domain.entities.violations import Violation, ViolationKind

_WRITE_EXAMPLE = (
    '<write path="src/component.tsx" description="Create component">\n'
    "FULL FILE CONTENT\n"
    "</write>"
)

_DIRECTIVE_LIST = (
    '- <write path="..." description="...">FULL FILE CONTENT</write>\n'
    '- <delete path="..." />\n'
    '- <rename from="..." to="..." />\n'
    '- <add-dependency packages="pkg-a pkg-b" />'
)


def canned_correction(violation: Violation) -> str:
    """Static correction message for a violation."""
    match violation.kind:
        case ViolationKind.PROHIBITED_MARKUP_BLOCK:
            return (
                "STOP! You used fenced code blocks (```), which are PROHIBITED.\n\n"
                f"Rewrite your response and put file content ONLY inside write tags:\n{_WRITE_EXAMPLE}"
            )
        case ViolationKind.PROHIBITED_TOOL_REFERENCE:
            return (
                "STOP! Tools such as apply_patch or edit_file DO NOT EXIST here.\n\n"
                f"Rewrite your response using only these tags:\n{_DIRECTIVE_LIST}"
            )
        case ViolationKind.MALFORMED_TAG_STRUCTURE:
            return (
                "STOP! Your write tags are malformed: every <write> must be closed with </write>.\n\n"
                f"Rewrite your response with balanced tags:\n{_WRITE_EXAMPLE}"
            )
        case ViolationKind.NON_CONTENT_INSIDE_WRITE:
            return (
                "STOP! You put explanations or summaries inside a <write> tag. Its content is written "
                "to disk byte-for-byte, so it must contain ONLY the file content.\n\n"
                "Rewrite your response and keep any explanation outside the tags."
            )
        case ViolationKind.MODE_INCOMPATIBLE_DIRECTIVE:
            return (
                "STOP! The current mode does not allow these file operations.\n"
                f"{violation.message}\n\n"
                "Rewrite your response within the rules of the current mode."
            )
        case _:
            assert_never(violation.kind)


def router_instruction_prompt(violation: Violation) -> str:
    """Prompt asking the router model to write a correction for a violation."""
    match violation.kind:
        case ViolationKind.PROHIBITED_MARKUP_BLOCK:
            task = "The assistant used markdown fenced code blocks, which are prohibited for file content."
        case ViolationKind.PROHIBITED_TOOL_REFERENCE:
            task = f"The assistant referenced a tool that does not exist here ({violation.context})."
        case ViolationKind.MALFORMED_TAG_STRUCTURE:
            task = f"The assistant produced malformed directive tags: {violation.message}"
        case ViolationKind.NON_CONTENT_INSIDE_WRITE:
            task = "The assistant put prose (summaries, instructions) inside a <write> tag."
        case ViolationKind.MODE_INCOMPATIBLE_DIRECTIVE:
            task = f"The assistant used file operations the current mode forbids: {violation.message}"
        case _:
            assert_never(violation.kind)
    return (
        f"{task}\n\n"
        "Write a short, direct correction message (starting with STOP!) telling the assistant "
        "to rewrite its response. The only valid file operations are:\n"
        f"{_DIRECTIVE_LIST}\n\n"
        f"Offending excerpt: {violation.context}\n\n"
        "Reply with the correction message only."
    )
