"""Generated ``## Backlinks`` sections in note files.

Opt-in via ``[index] backlinks_section = true``.  The section is always
the tail of the body: everything before it is preserved byte for byte,
and the reader strips it again before link extraction, so generated
links never feed back into the index.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from zettelhub.domain.content import ParseError, parse_frontmatter, render_frontmatter
from zettelhub.domain.links import strip_backlinks_section
from zettelhub.domain.resolver import relative_link
from zettelhub.infrastructure.database.schema import links, notes
from zettelhub.infrastructure.templates import render_backlinks_section

if TYPE_CHECKING:
    from collections.abc import Iterable

    from zettelhub.infrastructure.vault import VaultTransaction

logger = logging.getLogger(__name__)


def _backlink_items(txn: VaultTransaction, note_id: str, note_path: str) -> list[dict[str, str]]:
    stmt = (
        select(notes.c.id, notes.c.path, notes.c.title)
        .select_from(links.join(notes, notes.c.id == links.c.source_id))
        .where(links.c.target_id == note_id, links.c.source_id != note_id)
        .distinct()
        .order_by(notes.c.id)
    )
    items: list[dict[str, str]] = []
    for row in txn.conn.execute(stmt):
        title = (row.title or "").strip() or row.path.rsplit("/", 1)[-1].removesuffix(".md")
        items.append({"title": title or row.id, "href": relative_link(note_path, row.path)})
    return items


def refresh_backlinks_section(txn: VaultTransaction, note_id: str) -> bool:
    """Rewrite the backlinks section of one note. Returns True if the file changed."""
    note_path = txn.conn.execute(select(notes.c.path).where(notes.c.id == note_id)).scalar()
    if note_path is None:
        return False
    file_path = txn.abs_path(note_path)
    if not file_path.is_file():
        return False

    content = file_path.read_text(encoding="utf-8")
    try:
        metadata, body = parse_frontmatter(content)
    except ParseError:
        logger.debug("Skipping backlinks for unparseable %s", note_path)
        return False

    items = _backlink_items(txn, note_id, note_path)
    kept = strip_backlinks_section(body)
    if not items and kept == body:
        return False

    new_body = kept.rstrip("\n")
    if items:
        section = render_backlinks_section(items)
        new_body = f"{new_body}\n\n{section}" if new_body else section
    elif new_body:
        new_body += "\n"

    changed = txn.write_file(file_path, render_frontmatter(metadata, new_body))
    if changed:
        logger.debug("Updated backlinks section of %s (%d backlinks)", note_path, len(items))
    return changed


def refresh_backlinks_sections(txn: VaultTransaction, note_ids: Iterable[str]) -> int:
    """Refresh several notes' sections; returns how many files changed."""
    return sum(1 for nid in dict.fromkeys(note_ids) if nid and refresh_backlinks_section(txn, nid))
