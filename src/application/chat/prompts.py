"""Chat mode system prompts, router prompt and task instructions."""

from dataclasses import dataclass

from src.domain.entities.chat_mode import ChatMode
from src.domain.entities.model_selection import TaskType

TAG_GRAMMAR = """# Making changes
Express every file change with these tags, outside any code fence:
- <write path="src/file.ts" description="short summary">FULL FILE CONTENT</write>
- <delete path="src/old.ts" />
- <rename from="src/a.ts" to="src/b.ts" />
- <add-dependency packages="pkg-one pkg-two" /> (space-separated, never commas)

Rules:
- Always write the complete file content. Never use markdown code fences for file content.
- Close every <write> tag. Put only file content inside it, no commentary.
- Do not reference external editing tools; these tags are the only way to change files.
- End your reply with exactly one <chat-summary>short title</chat-summary>."""


@dataclass(frozen=True)
class ModeConfig:
    """System prompt and sampling settings for one chat mode."""

    mode: ChatMode
    system_prompt: str
    temperature: float = 0.7


MODES: dict[ChatMode, ModeConfig] = {
    ChatMode.BUILD: ModeConfig(
        mode=ChatMode.BUILD,
        temperature=0.3,
        system_prompt=(
            "You are an AI editor that creates and modifies the user's project. "
            "Explain briefly what you are about to change, then make the changes.\n\n" + TAG_GRAMMAR
        ),
    ),
    ChatMode.ASK: ModeConfig(
        mode=ChatMode.ASK,
        temperature=0.7,
        system_prompt=(
            "You are a helpful assistant answering questions about the user's project. "
            "You cannot change files in this mode: do not use <write>, <delete>, <rename> "
            "or <add-dependency> tags. Explain in prose; small inline code snippets are fine.\n"
            "End your reply with exactly one <chat-summary>short title</chat-summary>."
        ),
    ),
    ChatMode.AGENT: ModeConfig(
        mode=ChatMode.AGENT,
        temperature=0.3,
        system_prompt=(
            "You are a planning agent. Gather information with the tools you are given and "
            "produce a plan. Do not change files directly: no <write>, <delete>, <rename> "
            "or <add-dependency> tags.\n"
            "End your reply with exactly one <chat-summary>short title</chat-summary>."
        ),
    ),
}


def get_mode(mode: ChatMode) -> ModeConfig:
    return MODES[mode]


ROUTER_SYSTEM_PROMPT = """You classify user prompts so the right model can answer them.

Reply with EXACTLY ONE word from this list:
- ultrathink: deep reasoning, system architecture, algorithm design
- frontend: UI, components, styling, user interaction
- backend: APIs, databases, server logic, authentication
- debugging: errors, bug fixes, troubleshooting
- code: writing or editing code with no clear frontend or backend focus
- clarification: the request is ambiguous and needs more information
- general: anything else

Reply with the lowercase category name only."""

ULTRATHINK_INSTRUCTIONS = """
# Deep reasoning
Think through the architecture before writing code. Weigh alternatives,
state the trade-offs you chose, then implement the chosen design in full.
"""

TASK_INSTRUCTIONS: dict[TaskType, str] = {
    TaskType.FRONTEND: """
# Frontend focus
Build small composable components, keep layouts responsive and accessible,
and keep styling consistent with the existing project.
""",
    TaskType.BACKEND: """
# Backend focus
Validate inputs, keep data models consistent, return proper status codes
and handle errors explicitly.
""",
    TaskType.DEBUGGING: """
# Debugging focus
Find the root cause before changing code. Make the smallest change that
fixes it and say how the fix can be verified.
""",
    TaskType.GENERAL: "",
}
