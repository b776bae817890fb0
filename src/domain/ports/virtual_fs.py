"""Virtual file tree and change-applier ports."""

from typing import Protocol

from pydantic import BaseModel

from src.domain.entities.directives import ParsedDirectives
from src.domain.entities.violations import Problem


class VirtualTree(Protocol):
    """Read view of the project with pending directives overlaid."""

    @property
    def changed_files(self) -> list[str]: ...

    def read(self, path: str) -> str | None: ...


class VirtualFileTreePort(Protocol):
    """Builds virtual trees for a project and checks them for problems."""

    def apply_directives(self, directives: ParsedDirectives) -> VirtualTree: ...

    def compute_problems(self, tree: VirtualTree) -> list[Problem]:
        """Problems in files changed by the overlaid directives."""
        ...


class ChangeResult(BaseModel):
    """Outcome of applying directives to disk."""

    updated_files: bool = False
    written: list[str] = []
    deleted: list[str] = []
    renamed: list[tuple[str, str]] = []
    extra_files: list[str] = []
    errors: list[str] = []


class ChangeApplierPort(Protocol):
    def apply(self, directives: ParsedDirectives) -> ChangeResult: ...
