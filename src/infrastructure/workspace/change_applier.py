"""Apply parsed directives to the project directory."""

import logging
from pathlib import Path

from src.domain.entities.directives import ParsedDirectives
from src.domain.ports.virtual_fs import ChangeResult
from src.infrastructure.workspace.paths import resolve_inside

logger = logging.getLogger(__name__)


class WorkspaceChangeApplier:
    """Writes, deletes and renames files under ``root``.

    Paths that resolve outside the root are refused and reported in
    ``errors``; the remaining directives are still applied.
    Dependencies are not installed here; their packages are reported as
    ``extra_files`` hints for the caller.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def apply(self, directives: ParsedDirectives) -> ChangeResult:
        result = ChangeResult()

        for rename in directives.renames:
            src = resolve_inside(self._root, rename.from_path)
            dst = resolve_inside(self._root, rename.to_path)
            if src is None or dst is None:
                result.errors.append(f"Access denied: rename {rename.from_path} -> {rename.to_path}")
                continue
            if not src.exists():
                logger.warning("Rename source does not exist: %s", rename.from_path)
                continue
            try:
                dst.parent.mkdir(parents=True, exist_ok=True)
                src.rename(dst)
                result.renamed.append((rename.from_path, rename.to_path))
            except OSError as e:
                result.errors.append(f"Rename failed {rename.from_path}: {e}")

        for delete in directives.deletes:
            target = resolve_inside(self._root, delete.path)
            if target is None:
                result.errors.append(f"Access denied: delete {delete.path}")
                continue
            try:
                target.unlink(missing_ok=True)
                result.deleted.append(delete.path)
            except OSError as e:
                result.errors.append(f"Delete failed {delete.path}: {e}")

        for write in directives.writes:
            target = resolve_inside(self._root, write.path)
            if target is None:
                result.errors.append(f"Access denied: write {write.path}")
                continue
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(write.content, encoding="utf-8")
                result.written.append(write.path)
            except OSError as e:
                result.errors.append(f"Write failed {write.path}: {e}")

        for dependency in directives.dependencies:
            result.extra_files.extend(dependency.packages)

        result.updated_files = bool(result.written or result.deleted or result.renamed)
        for error in result.errors:
            logger.warning("Change applier: %s", error)
        return result
