"""Virtual file tree - project files with pending directives overlaid in memory."""

import ast
import json
import logging
import re
import tomllib
from pathlib import Path

from src.domain.entities.directives import ParsedDirectives
from src.domain.entities.violations import Problem
from src.infrastructure.workspace.paths import resolve_inside

logger = logging.getLogger(__name__)

_TOML_POSITION_RE = re.compile(r"\(at line (\d+), column (\d+)\)")


class VirtualFileTree:
    """Read view of ``root`` after renames, deletes and writes, in that order.

    Nothing is written to disk.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._overlay: dict[str, str | None] = {}  # None = deleted
        self._changed: list[str] = []

    def _mark(self, path: str) -> None:
        if path not in self._changed:
            self._changed.append(path)

    def _read_disk(self, path: str) -> str | None:
        target = resolve_inside(self._root, path)
        if target is None or not target.is_file():
            return None
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.debug("Unreadable file in virtual tree: %s", path)
            return None

    def read(self, path: str) -> str | None:
        if path in self._overlay:
            return self._overlay[path]
        return self._read_disk(path)

    def exists(self, path: str) -> bool:
        return self.read(path) is not None

    def apply(self, directives: ParsedDirectives) -> "VirtualFileTree":
        for rename in directives.renames:
            content = self.read(rename.from_path)
            self._overlay[rename.from_path] = None
            if content is not None:
                self._overlay[rename.to_path] = content
                self._mark(rename.to_path)
        for delete in directives.deletes:
            self._overlay[delete.path] = None
            if delete.path in self._changed:
                self._changed.remove(delete.path)
        for write in directives.writes:
            self._overlay[write.path] = write.content
            self._mark(write.path)
        return self

    @property
    def changed_files(self) -> list[str]:
        """Files whose content comes from directives, in first-touched order."""
        return [p for p in self._changed if self._overlay.get(p) is not None]


def check_python(path: str, content: str) -> list[Problem]:
    try:
        ast.parse(content, filename=path)
    except SyntaxError as e:
        return [Problem(file=path, line=e.lineno or 1, column=e.offset or 1, message=e.msg, code="syntax-error")]
    return []


def check_json(path: str, content: str) -> list[Problem]:
    try:
        json.loads(content)
    except json.JSONDecodeError as e:
        return [Problem(file=path, line=e.lineno, column=e.colno, message=e.msg, code="json-error")]
    return []


def check_toml(path: str, content: str) -> list[Problem]:
    try:
        tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        match = _TOML_POSITION_RE.search(str(e))
        line, column = (int(match.group(1)), int(match.group(2))) if match else (1, 1)
        message = _TOML_POSITION_RE.sub("", str(e)).strip()
        return [Problem(file=path, line=line, column=column, message=message, code="toml-error")]
    return []


CHECKERS = {
    ".py": check_python,
    ".json": check_json,
    ".toml": check_toml,
}


class VirtualWorkspace:
    """Implements VirtualFileTreePort for a project directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def apply_directives(self, directives: ParsedDirectives) -> VirtualFileTree:
        return VirtualFileTree(self._root).apply(directives)

    def compute_problems(self, tree: VirtualFileTree) -> list[Problem]:
        """Syntax problems in changed files of known types."""
        problems: list[Problem] = []
        for path in tree.changed_files:
            checker = CHECKERS.get(Path(path).suffix.lower())
            content = tree.read(path)
            if checker is None or content is None:
                continue
            problems.extend(checker(path, content))
        return problems
