"""File-mutation directives extracted from model output."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass(frozen=True)
class WriteDirective:
    """Replace the whole file at ``path`` with ``content`` (byte-for-byte)."""

    tag: ClassVar[str] = "write"

    path: str
    content: str
    description: str = ""


@dataclass(frozen=True)
class DeleteDirective:
    tag: ClassVar[str] = "delete"

    path: str


@dataclass(frozen=True)
class RenameDirective:
    tag: ClassVar[str] = "rename"

    from_path: str
    to_path: str


@dataclass(frozen=True)
class AddDependencyDirective:
    """Install packages. Order follows the ``packages`` attribute."""

    tag: ClassVar[str] = "add-dependency"

    packages: tuple[str, ...]


Directive = WriteDirective | DeleteDirective | RenameDirective | AddDependencyDirective


@dataclass
class ParsedDirectives:
    """All directives found in one response.

    The per-kind lists keep document order within a kind;
    ``in_document_order`` interleaves every kind as written. Appliers
    use the per-kind lists (renames, deletes, writes, dependencies).
    """

    writes: list[WriteDirective] = field(default_factory=list)
    deletes: list[DeleteDirective] = field(default_factory=list)
    renames: list[RenameDirective] = field(default_factory=list)
    dependencies: list[AddDependencyDirective] = field(default_factory=list)
    in_document_order: list[Directive] = field(default_factory=list)
    chat_summary: str | None = None

    @property
    def has_mutations(self) -> bool:
        """True when any file would change on disk."""
        return bool(self.writes or self.deletes or self.renames)

    @property
    def has_dependencies(self) -> bool:
        return bool(self.dependencies)
