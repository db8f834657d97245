"""Reference lookups against the index store.

:class:`StoreReferenceLookup` implements
:class:`~zettelhub.domain.resolver.ReferenceLookup` on top of a live
connection, so resolution inside an indexing transaction sees the
rows written earlier in that same transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select, text

from zettelhub.domain.ids import normalize_id
from zettelhub.domain.resolver import markdown_target_candidates, resolve_reference
from zettelhub.infrastructure.database.schema import notes

if TYPE_CHECKING:
    from sqlalchemy import Connection


class StoreReferenceLookup:
    """Title, alias, id, and path lookups over the ``notes`` table.

    Ties on title or alias are broken by path so results are stable.
    """

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def known_id(self, reference: str) -> str | None:
        note_id = normalize_id(reference)
        if note_id is None:
            return None
        return self._conn.execute(select(notes.c.id).where(notes.c.id == note_id)).scalar()

    def id_for_title(self, title: str) -> str | None:
        return self._conn.execute(
            select(notes.c.id).where(notes.c.title == title).order_by(notes.c.path).limit(1)
        ).scalar()

    def id_for_alias(self, alias: str) -> str | None:
        row = self._conn.execute(
            text(
                "SELECT notes.id FROM notes, json_each(notes.aliases) "
                "WHERE json_each.value = :alias ORDER BY notes.path LIMIT 1"
            ),
            {"alias": alias},
        ).first()
        return str(row.id) if row is not None else None

    def id_for_title_casefold(self, folded_title: str) -> str | None:
        return self._conn.execute(
            select(notes.c.id)
            .where(func.casefold(notes.c.title) == folded_title, notes.c.title != "")
            .order_by(notes.c.path)
            .limit(1)
        ).scalar()

    def id_for_path(self, candidates: list[str]) -> str | None:
        """First note whose path matches one of *candidates* (case-insensitive).

        Candidates are tried in order; an exact-case match beats a
        case-insensitive one for the same candidate.
        """
        for candidate in candidates:
            note_id = self._conn.execute(
                select(notes.c.id).where(notes.c.path == candidate)
            ).scalar()
            if note_id is not None:
                return str(note_id)
            note_id = self._conn.execute(
                select(notes.c.id)
                .where(func.casefold(notes.c.path) == candidate.casefold())
                .order_by(notes.c.path)
                .limit(1)
            ).scalar()
            if note_id is not None:
                return str(note_id)
        return None

    # ------------------------------------------------------------------
    # Resolution entry points
    # ------------------------------------------------------------------

    def resolve(self, reference: str) -> str | None:
        """Resolve a wiki-style reference (id / title / alias / casefold title)."""
        return resolve_reference(reference, self)

    def resolve_markdown(self, target: str, source_rel_path: str) -> str | None:
        """Resolve a markdown link target written in the note at *source_rel_path*."""
        return self.id_for_path(markdown_target_candidates(target, source_rel_path))
