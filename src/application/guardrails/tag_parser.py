"""Tag parser - extracts file-mutation directives from model output.

Grammar::

    <write path="..." description="...">CONTENT</write>
    <delete path="..." />
    <rename from="..." to="..." />
    <add-dependency packages="a b c" />
    <chat-summary>...</chat-summary>

Every function re-scans the full text it is given; nothing is cached
between calls.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

from src.domain.entities.directives import (
    AddDependencyDirective,
    DeleteDirective,
    ParsedDirectives,
    RenameDirective,
    WriteDirective,
)

logger = logging.getLogger(__name__)

DIRECTIVE_TAGS = ("write", "delete", "rename", "add-dependency")
_ESCAPABLE_TAGS = (*DIRECTIVE_TAGS, "chat-summary")

_ATTR_RE = re.compile(r'([A-Za-z_][\w-]*)\s*=\s*"([^"]*)"')
_WRITE_RE = re.compile(r"<write(?=[\s>])([^>]*)>(.*?)</write\s*>", re.DOTALL)
_WRITE_OPEN_RE = re.compile(r"<write(?=[\s>])[^>]*>")
_WRITE_CLOSE_RE = re.compile(r"</write\s*>")
_WRITE_PARTIAL_OPEN_RE = re.compile(r"<write(?=[\s>]|\Z)[^>]*\Z")
_DELETE_RE = re.compile(r"<delete(?=[\s/>])([^>]*?)/?>(?:\s*</delete>)?")
_RENAME_RE = re.compile(r"<rename(?=[\s/>])([^>]*?)/?>(?:\s*</rename>)?")
_ADD_DEP_RE = re.compile(r"<add-dependency(?=[\s/>])([^>]*?)/?>(?:\s*</add-dependency>)?")
_CHAT_SUMMARY_RE = re.compile(r"<chat-summary>(.*?)</chat-summary>", re.DOTALL)
_OPEN_TAG_RE = re.compile(r"<(write|delete|rename|add-dependency)(?=[\s/>])([^>]*)>")
_ESCAPE_RE = re.compile(r"<(/?)(" + "|".join(re.escape(t) for t in _ESCAPABLE_TAGS) + r")(?=[\s/>])")
_THINK_BLOCK_RE = re.compile(r"<think>.*?(?:</think>|\Z)", re.DOTALL)
_PROBLEM_REPORT_RE = re.compile(r"<problem-report[^>]*>.*?</problem-report>", re.DOTALL)


@dataclass(frozen=True)
class DirectiveTag:
    """An opening directive tag (content not needed)."""

    name: str
    attrs: dict[str, str]
    start: int


def parse_attributes(raw: str) -> dict[str, str]:
    """Attributes of one tag, in any order. Later duplicates win."""
    return {m.group(1): m.group(2) for m in _ATTR_RE.finditer(raw)}


def _write_matches(text: str) -> Iterator[tuple[int, WriteDirective]]:
    for match in _WRITE_RE.finditer(text):
        attrs = parse_attributes(match.group(1))
        path = attrs.get("path", "").strip()
        if not path:
            logger.warning("Skipping write directive without path")
            continue
        directive = WriteDirective(path=path, content=match.group(2), description=attrs.get("description", ""))
        yield match.start(), directive


def _delete_matches(text: str) -> Iterator[tuple[int, DeleteDirective]]:
    for match in _DELETE_RE.finditer(text):
        path = parse_attributes(match.group(1)).get("path", "").strip()
        if path:
            yield match.start(), DeleteDirective(path=path)


def _rename_matches(text: str) -> Iterator[tuple[int, RenameDirective]]:
    for match in _RENAME_RE.finditer(text):
        attrs = parse_attributes(match.group(1))
        src, dst = attrs.get("from", "").strip(), attrs.get("to", "").strip()
        if src and dst:
            yield match.start(), RenameDirective(from_path=src, to_path=dst)
        else:
            logger.warning("Skipping rename directive missing from/to: %r", attrs)


def _add_dependency_matches(text: str, split_commas: bool) -> Iterator[tuple[int, AddDependencyDirective]]:
    for match in _ADD_DEP_RE.finditer(text):
        packages = split_packages(parse_attributes(match.group(1)).get("packages", ""), split_commas)
        if packages:
            yield match.start(), AddDependencyDirective(packages=packages)


def parse_write_directives(text: str) -> list[WriteDirective]:
    """All closed write directives in document order.

    Content is the literal text between the tags. Writes without a path
    are skipped.
    """
    return [d for _, d in _write_matches(text)]


def parse_delete_directives(text: str) -> list[DeleteDirective]:
    return [d for _, d in _delete_matches(text)]


def parse_rename_directives(text: str) -> list[RenameDirective]:
    return [d for _, d in _rename_matches(text)]


def split_packages(raw: str, split_commas: bool = False) -> tuple[str, ...]:
    """Split a packages attribute on whitespace.

    A comma is kept inside the package name unless ``split_commas`` is set;
    either way a warning is logged.
    """
    if "," in raw:
        if split_commas:
            logger.warning("add-dependency packages are comma-separated, splitting on commas: %r", raw)
            return tuple(p for p in re.split(r"[\s,]+", raw) if p)
        logger.warning("add-dependency packages contain commas, names kept verbatim: %r", raw)
    return tuple(raw.split())


def parse_add_dependency_directives(text: str, split_commas: bool = False) -> list[AddDependencyDirective]:
    return [d for _, d in _add_dependency_matches(text, split_commas)]


def parse_chat_summary(text: str) -> str | None:
    """First chat summary, stripped."""
    match = _CHAT_SUMMARY_RE.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def count_chat_summaries(text: str) -> int:
    return len(_CHAT_SUMMARY_RE.findall(text))


def parse_directives(text: str, split_commas: bool = False) -> ParsedDirectives:
    """Every directive in ``text``, grouped by kind and as one list in document order."""
    writes = list(_write_matches(text))
    deletes = list(_delete_matches(text))
    renames = list(_rename_matches(text))
    dependencies = list(_add_dependency_matches(text, split_commas))
    ordered = sorted([*writes, *deletes, *renames, *dependencies], key=lambda item: item[0])
    return ParsedDirectives(
        writes=[d for _, d in writes],
        deletes=[d for _, d in deletes],
        renames=[d for _, d in renames],
        dependencies=[d for _, d in dependencies],
        in_document_order=[d for _, d in ordered],
        chat_summary=parse_chat_summary(text),
    )


def has_unclosed_write(text: str) -> bool:
    """True if the last write open tag (complete or cut off) has no close tag after it."""
    last_open = -1
    for match in _WRITE_OPEN_RE.finditer(text):
        last_open = match.start()
    partial = _WRITE_PARTIAL_OPEN_RE.search(text)
    if partial and partial.start() > last_open:
        return True
    if last_open == -1:
        return False
    return _WRITE_CLOSE_RE.search(text, last_open) is None


def count_write_tags(text: str) -> tuple[int, int]:
    """(open, close) counts of write tags."""
    return len(_WRITE_OPEN_RE.findall(text)), len(_WRITE_CLOSE_RE.findall(text))


def find_directive_open_tags(text: str) -> list[DirectiveTag]:
    """Opening tags of every directive kind, closed or not."""
    return [
        DirectiveTag(name=m.group(1), attrs=parse_attributes(m.group(2)), start=m.start())
        for m in _OPEN_TAG_RE.finditer(text)
    ]


def escape_directive_tags(text: str) -> str:
    """Neutralize directive tags so the text can never be parsed as a directive."""
    return _ESCAPE_RE.sub(lambda m: "＜" + m.group(1) + m.group(2), text)


def strip_think_blocks(text: str) -> str:
    """Remove <think> blocks, including one still open at the end."""
    return _THINK_BLOCK_RE.sub("", text)


def strip_problem_reports(text: str) -> str:
    return _PROBLEM_REPORT_RE.sub("", text)
