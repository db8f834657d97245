"""Index store writes — notes, tags, and links.

Every function takes a caller-owned :class:`~sqlalchemy.Connection`;
the transaction boundary is the caller's ``engine.begin()`` block, so
one note's row, tags, FTS entry (via triggers), and links commit or
roll back together.  Nothing here opens its own connection.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, or_, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from zettelhub.infrastructure.database.schema import links, notes, tags

if TYPE_CHECKING:
    from sqlalchemy import Connection, Row

    from zettelhub.domain.links import LinkType
    from zettelhub.domain.notes import NoteDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkEdge:
    """An outgoing edge ready to persist; ``target_id`` None means broken."""

    target_id: str | None
    link_type: LinkType
    reference: str

    @property
    def key(self) -> tuple[str, str]:
        """De-duplication key: the resolved target, else the raw reference."""
        return (self.link_type, self.target_id or f"?{self.reference}")


def dedupe_edges(edges: Iterable[LinkEdge]) -> list[LinkEdge]:
    """Drop repeated edges, keeping the first occurrence of each key."""
    seen: set[tuple[str, str]] = set()
    result: list[LinkEdge] = []
    for edge in edges:
        if edge.key in seen:
            continue
        seen.add(edge.key)
        result.append(edge)
    return result


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


def upsert_note(conn: Connection, note: NoteDocument) -> str | None:
    """Replace all persisted state for *note*: row, tags, and FTS entry.

    A different note currently registered at the same path (its id was
    edited in place) is deleted first.  Returns that stale id, if any.
    """
    stale = conn.execute(
        select(notes.c.id).where(notes.c.path == note.path, notes.c.id != note.id)
    ).first()
    stale_id: str | None = None
    if stale is not None:
        stale_id = str(stale.id)
        delete_notes(conn, [stale_id])
        logger.debug("Replaced stale note %s at %s", stale_id, note.path)

    values = {
        "id": note.id,
        "path": note.path,
        "title": note.title,
        "type": note.type,
        "aliases": json.dumps(note.aliases),
        "metadata": json.dumps(note.plain_metadata(), ensure_ascii=False),
        "body": note.body,
        "filename": note.filename,
    }
    stmt = sqlite_insert(notes).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[notes.c.id],
        set_={k: stmt.excluded[k] for k in values if k != "id"},
    )
    conn.execute(stmt)

    conn.execute(delete(tags).where(tags.c.note_id == note.id))
    rows = [{"tag": tag, "note_id": note.id, "source": source} for tag, source in note.tags()]
    if rows:
        conn.execute(insert(tags), rows)
    return stale_id


def delete_notes(conn: Connection, ids: Sequence[str]) -> int:
    """Remove notes with their tags and all links touching them.

    FTS entries go with the note rows via the delete trigger.
    Returns the number of note rows removed.
    """
    if not ids:
        return 0
    id_list = list(ids)
    conn.execute(delete(tags).where(tags.c.note_id.in_(id_list)))
    conn.execute(
        delete(links).where(or_(links.c.source_id.in_(id_list), links.c.target_id.in_(id_list)))
    )
    result = conn.execute(delete(notes).where(notes.c.id.in_(id_list)))
    return result.rowcount or 0


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------


def upsert_links(conn: Connection, source_id: str, edges: Iterable[LinkEdge]) -> int:
    """Replace the entire outgoing edge set of *source_id*.

    Returns the number of edges stored after de-duplication.
    """
    conn.execute(delete(links).where(links.c.source_id == source_id))
    rows = [
        {
            "source_id": source_id,
            "target_id": edge.target_id,
            "link_type": edge.link_type,
            "reference": edge.reference,
        }
        for edge in dedupe_edges(edges)
    ]
    if rows:
        conn.execute(insert(links), rows)
    return len(rows)


def broken_links(conn: Connection) -> list[Row]:
    """Dangling edges with the path of the note they come from."""
    return list(
        conn.execute(
            select(links.c.source_id, links.c.link_type, links.c.reference, notes.c.path)
            .select_from(links.join(notes, notes.c.id == links.c.source_id))
            .where(links.c.target_id.is_(None))
            .order_by(notes.c.path, links.c.reference)
        )
    )

