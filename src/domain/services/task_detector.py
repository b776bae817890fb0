"""Task type detector - keyword heuristic with LRU cache."""

from collections.abc import Iterable
from functools import lru_cache

from src.domain.entities.model_selection import TaskType

# Checked first: any hit means debugging.
DEBUGGING_KEYWORDS = (
    "error",
    "bug",
    "fix",
    "crash",
    "issue",
    "problem",
    "broken",
    "not working",
    "debug",
    "exception",
    "failed",
    "failing",
    "throws",
    "undefined",
    "null",
    "warning",
    "traceback",
)

FRONTEND_KEYWORDS = (
    "component",
    "ui",
    "button",
    "form",
    "input",
    "style",
    "css",
    "tailwind",
    "react",
    "jsx",
    "tsx",
    "page",
    "layout",
    "modal",
    "dialog",
    "tooltip",
    "animation",
    "hover",
    "click",
    "responsive",
    "mobile",
    "navigation",
    "menu",
    "sidebar",
    "header",
    "footer",
    "card",
    "icon",
    "accessibility",
)

BACKEND_KEYWORDS = (
    "api",
    "endpoint",
    "route",
    "server",
    "database",
    "query",
    "sql",
    "model",
    "schema",
    "migration",
    "authentication",
    "authorization",
    "middleware",
    "validation",
    "service",
    "controller",
    "repository",
    "orm",
    "rest",
    "graphql",
    "websocket",
    "cron",
    "queue",
    "cache",
    "redis",
    "postgres",
    "mongo",
)

FRONTEND_EXTENSIONS = frozenset({"tsx", "jsx", "css", "scss", "sass", "less", "vue", "svelte", "html"})
BACKEND_EXTENSIONS = frozenset({"ts", "js", "py", "go", "sql"})


def file_extension(path: str) -> str:
    parts = path.rsplit(".", 1)
    return parts[1].lower() if len(parts) == 2 else ""


@lru_cache(maxsize=128)
def _keyword_scores(text: str) -> tuple[bool, int, int]:
    if any(kw in text for kw in DEBUGGING_KEYWORDS):
        return (True, 0, 0)
    frontend = sum(1 for kw in FRONTEND_KEYWORDS if kw in text)
    backend = sum(1 for kw in BACKEND_KEYWORDS if kw in text)
    return (False, frontend, backend)


def detect_task_type(
    prompt: str,
    selected_path: str | None = None,
    codebase_paths: Iterable[str] | None = None,
) -> TaskType:
    """Classify a prompt as frontend, backend, debugging or general.

    Debugging keywords win outright. Otherwise keyword counts are compared,
    boosted by +2 for the selected file's extension and +1 for whichever
    side dominates the codebase.
    """
    is_debugging, frontend, backend = _keyword_scores(prompt.strip().lower())
    if is_debugging:
        return TaskType.DEBUGGING

    if selected_path:
        ext = file_extension(selected_path)
        if ext in FRONTEND_EXTENSIONS:
            frontend += 2
        elif ext in BACKEND_EXTENSIONS:
            backend += 2

    if codebase_paths:
        exts = [file_extension(p) for p in codebase_paths]
        frontend_files = sum(1 for e in exts if e in FRONTEND_EXTENSIONS)
        backend_files = sum(1 for e in exts if e in BACKEND_EXTENSIONS)
        if frontend_files > backend_files:
            frontend += 1
        elif backend_files > frontend_files:
            backend += 1

    if frontend > backend and frontend > 0:
        return TaskType.FRONTEND
    if backend > frontend and backend > 0:
        return TaskType.BACKEND
    return TaskType.GENERAL
