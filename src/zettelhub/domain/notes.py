"""Note reader — turn a markdown file into a :class:`NoteDocument`.

The reader derives identity (id, title, type, aliases) and relations
(tags) from a document but never writes anything.  A missing id is
generated on the fly and flagged with ``id_generated``; persisting it
back to the file is the caller's decision.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from ruamel.yaml.comments import CommentedMap

from zettelhub.domain.content import (
    ParseError,
    frontmatter_scalar_text,
    parse_frontmatter,
    string_list,
    to_plain,
)
from zettelhub.domain.ids import generate_id, normalize_id
from zettelhub.domain.links import ExtractedLink, extract_links, strip_backlinks_section
from zettelhub.domain.tags import TagSource, collect_tags

DEFAULT_NOTE_TYPE = "note"

_H1_PATTERN = re.compile(r"^#[ \t]+(.+?)[ \t#]*$", re.MULTILINE)


@dataclass
class NoteDocument:
    """A parsed note file."""

    id: str
    path: str  # POSIX path relative to the notebook root
    title: str
    type: str
    metadata: CommentedMap
    body: str  # body with any generated backlinks section removed
    raw_body: str
    aliases: list[str] = field(default_factory=list)
    id_generated: bool = False
    source_id: str | None = None  # id as written in the file

    @property
    def filename(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def description(self) -> str:
        value = self.metadata.get("description")
        return "" if value is None else str(value)

    @property
    def searchable_text(self) -> str:
        """Body plus front matter description, the text links come from."""
        return "\n".join(part for part in (self.body, self.description) if part)

    def plain_metadata(self) -> dict[str, Any]:
        """Front matter as JSON-safe values, with the effective id applied."""
        plain = to_plain(self.metadata)
        assert isinstance(plain, dict)
        return {"id": self.id, **{k: v for k, v in plain.items() if k != "id"}}

    def links(self) -> list[ExtractedLink]:
        return extract_links(self.searchable_text)

    def tags(self) -> list[tuple[str, TagSource]]:
        return collect_tags(self.metadata, self.body)


def _derive_title(metadata: dict[str, Any], body: str) -> str:
    value = metadata.get("title")
    if value is not None and str(value).strip():
        return str(value).strip()
    match = _H1_PATTERN.search(body)
    return match.group(1).strip() if match else ""


def _source_id(metadata: dict[str, Any], content: str) -> str | None:
    """The ``id`` as written, or None when it is absent or blank."""
    value = metadata.get("id")
    if value is None:
        return None
    if not isinstance(value, str):
        # Unquoted ids such as 12345e67 or 00001234 load as numbers.
        value = frontmatter_scalar_text(content, "id") or str(value)
    return value.strip() or None


def parse_note(content: str, rel_path: str, *, strict_id: bool = True) -> NoteDocument:
    """Parse note *content* stored at *rel_path* (relative to the root).

    With ``strict_id=False`` an id that is not 8 hex digits is kept only
    as ``source_id`` and a fresh id is generated, which is what import
    sources from other tools need.

    Raises:
        ParseError: Malformed front matter, or (strict) an id that is
            not a well-formed hex id.
    """
    try:
        metadata, raw_body = parse_frontmatter(content)
    except ParseError as exc:
        raise ParseError(exc.reason, path=rel_path) from exc

    source_id = _source_id(metadata, content)
    note_id = normalize_id(source_id) if source_id is not None else None
    if note_id is None and source_id is not None and strict_id:
        msg = f"invalid note id {source_id!r} (expected 8 hex digits)"
        raise ParseError(msg, path=rel_path)
    id_generated = note_id is None
    if note_id is None:
        note_id = generate_id()

    body = strip_backlinks_section(raw_body)
    note_type = metadata.get("type")
    return NoteDocument(
        id=note_id,
        path=rel_path,
        title=_derive_title(metadata, body),
        type=str(note_type).strip() if note_type else DEFAULT_NOTE_TYPE,
        metadata=metadata,
        body=body,
        raw_body=raw_body,
        aliases=string_list(metadata.get("aliases")),
        id_generated=id_generated,
        source_id=source_id,
    )


def relative_note_path(path: Path, root: Path) -> str:
    """Return *path* relative to *root* as a POSIX string.

    Raises:
        ValueError: If *path* is not inside *root*.
    """
    return path.resolve().relative_to(root.resolve()).as_posix()


def read_note(path: Path, root: Path) -> NoteDocument:
    """Read and parse the note file at *path* under notebook *root*.

    Raises:
        ParseError: Unreadable file, invalid UTF-8, or malformed header.
    """
    rel_path = relative_note_path(path, root)
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError("file is not valid UTF-8", path=rel_path) from exc
    except OSError as exc:
        raise ParseError(f"cannot read file: {exc.strerror or exc}", path=rel_path) from exc
    return parse_note(content, rel_path)
