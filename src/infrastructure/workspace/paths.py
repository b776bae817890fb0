"""Path safety helpers for project-relative directive paths."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def resolve_inside(root: Path, relative: str) -> Path | None:
    """Absolute path for ``relative`` under ``root``, or None if it escapes root.

    Symlinks are followed, so a link pointing outside the root is rejected.
    """
    if not relative or Path(relative).is_absolute():
        return None
    try:
        root_resolved = root.resolve(strict=False)
        resolved = (root / relative).resolve(strict=False)
        resolved.relative_to(root_resolved)
        return resolved
    except (ValueError, OSError):
        logger.debug("Rejected path outside project root: %s", relative)
        return None


SKIP_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build", "output"})


def list_project_files(root: Path, limit: int = 2000) -> list[str]:
    """Project-relative file paths, skipping vendored and generated directories."""
    if not root.is_dir():
        return []
    found: list[str] = []
    for path in root.rglob("*"):
        rel = path.relative_to(root)
        if any(part in SKIP_DIRS or part.startswith(".") for part in rel.parts[:-1]):
            continue
        if path.is_file():
            found.append(rel.as_posix())
            if len(found) >= limit:
                break
    return found
