"""Read-oriented repository for query, link, and graph commands."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select, text
from sqlalchemy.engine import Engine

from zettelhub.infrastructure.database.schema import notes, tags


@dataclass(frozen=True)
class SearchFilters:
    """Structured search filters; all optional and combined with AND."""

    note_type: str | None = None
    tag: str | None = None
    date_from: str | None = None  # inclusive, YYYY-MM-DD
    date_to: str | None = None  # inclusive, YYYY-MM-DD
    path: str | None = None  # substring, or a LIKE pattern with * / %

    @property
    def active(self) -> bool:
        fields = (self.note_type, self.tag, self.date_from, self.date_to, self.path)
        return any(v is not None for v in fields)


def _path_like(path: str) -> str:
    # Matched with ESCAPE '\', so a literal _ stays literal.
    pattern = path.replace("\\", "\\\\").replace("_", "\\_")
    if "*" in path or "%" in path:
        return pattern.replace("*", "%")
    return f"%{pattern}%"


class QueryRepository:
    """Encapsulates SQL for read-side operations."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def get_note(self, note_id: str) -> dict[str, Any] | None:
        """Fetch one note row with decoded JSON columns."""
        stmt = select(
            notes.c.id,
            notes.c.path,
            notes.c.title,
            notes.c.type,
            notes.c.aliases,
            notes.c.metadata,
            notes.c.filename,
            notes.c.body,
        ).where(notes.c.id == note_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            return None
        item = dict(row)
        item["aliases"] = json.loads(item["aliases"] or "[]")
        item["metadata"] = json.loads(item["metadata"] or "{}")
        return item

    def get_note_tags(self, note_id: str) -> list[dict[str, str]]:
        stmt = (
            select(tags.c.tag, tags.c.source)
            .where(tags.c.note_id == note_id)
            .order_by(tags.c.tag, tags.c.source)
        )
        with self._engine.connect() as conn:
            return [dict(r) for r in conn.execute(stmt).mappings()]

    def notes_with_tag(self, tag: str, *, source: str | None = None) -> list[dict[str, str]]:
        """Notes (id, path) carrying *tag*, compared casefolded, in path order."""
        stmt = (
            select(notes.c.id, notes.c.path)
            .join(tags, tags.c.note_id == notes.c.id)
            .where(func.casefold(tags.c.tag) == tag.casefold())
            .distinct()
            .order_by(notes.c.path)
        )
        if source:
            stmt = stmt.where(tags.c.source == source)
        with self._engine.connect() as conn:
            return [dict(r) for r in conn.execute(stmt).mappings()]

    def all_ids(self) -> set[str]:
        with self._engine.connect() as conn:
            return {str(r.id) for r in conn.execute(select(notes.c.id))}

    def id_path_map(self) -> dict[str, str]:
        with self._engine.connect() as conn:
            return {str(r.id): str(r.path) for r in conn.execute(select(notes.c.id, notes.c.path))}

    def count_notes(self) -> int:
        with self._engine.connect() as conn:
            return int(conn.execute(select(func.count(notes.c.id))).scalar_one() or 0)

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def get_outgoing_links(self, note_id: str) -> list[dict[str, Any]]:
        """Outgoing edges of *note_id*; ``broken`` when the target is not indexed."""
        sql = text(
            """
            SELECT l.target_id, l.link_type, l.reference, n.title AS title, n.path AS path,
                   n.id IS NULL AS broken
            FROM links AS l
            LEFT JOIN notes AS n ON n.id = l.target_id
            WHERE l.source_id = :id
            ORDER BY l.link_type, l.target_id IS NULL, l.target_id, l.reference
            """
        )
        with self._engine.connect() as conn:
            rows = conn.execute(sql, {"id": note_id}).mappings().all()
        return [{**dict(r), "broken": bool(r["broken"])} for r in rows]

    def get_incoming_links(self, note_id: str) -> list[dict[str, Any]]:
        """Incoming edges (backlinks) of *note_id*; ``broken`` when the source is gone."""
        sql = text(
            """
            SELECT l.source_id, l.link_type, l.reference, n.title AS title, n.path AS path,
                   n.id IS NULL AS broken
            FROM links AS l
            LEFT JOIN notes AS n ON n.id = l.source_id
            WHERE l.target_id = :id
            ORDER BY l.link_type, l.source_id, l.reference
            """
        )
        with self._engine.connect() as conn:
            rows = conn.execute(sql, {"id": note_id}).mappings().all()
        return [{**dict(r), "broken": bool(r["broken"])} for r in rows]

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_rows(
        self,
        query: str | None,
        filters: SearchFilters,
        *,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Ranked FTS5 search (bm25) or, without a query, filtered listing.

        The listing without a query is ordered by ``metadata.date``
        (newest first) then title.
        """
        date_expr = "json_extract(n.metadata, '$.date')"
        params: dict[str, Any] = {"limit": limit}
        if query:
            sql = f"""
                SELECT n.id, n.title, n.type, n.path, {date_expr} AS date,
                       bm25(notes_fts, 0.0, 10.0, 5.0, 1.0) AS score,
                       snippet(notes_fts, 3, '[', ']', '...', 12) AS snippet
                FROM notes_fts
                JOIN notes AS n ON n.id = notes_fts.id
                WHERE notes_fts MATCH :query
            """
            params["query"] = query
        else:
            sql = f"""
                SELECT n.id, n.title, n.type, n.path, {date_expr} AS date,
                       NULL AS score, NULL AS snippet
                FROM notes AS n
                WHERE 1 = 1
            """

        if filters.note_type:
            sql += " AND n.type = :note_type"
            params["note_type"] = filters.note_type
        if filters.tag:
            sql += " AND n.id IN (SELECT note_id FROM tags WHERE casefold(tag) = :tag)"
            params["tag"] = filters.tag.lstrip("#").casefold()
        if filters.date_from:
            sql += f" AND substr({date_expr}, 1, 10) >= :date_from"
            params["date_from"] = filters.date_from
        if filters.date_to:
            sql += f" AND substr({date_expr}, 1, 10) <= :date_to"
            params["date_to"] = filters.date_to
        if filters.path:
            sql += " AND n.path LIKE :path ESCAPE '\\'"
            params["path"] = _path_like(filters.path)

        if query:
            sql += " ORDER BY score, n.title"
        else:
            sql += f" ORDER BY {date_expr} IS NULL, {date_expr} DESC, n.title"
        sql += " LIMIT :limit"

        with self._engine.connect() as conn:
            rows = conn.execute(text(sql), params).mappings().all()
        return [dict(r) for r in rows]

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def tag_counts(self, *, source: str | None = None) -> list[dict[str, Any]]:
        """Tags with the number of distinct notes carrying each."""
        note_count = func.count(func.distinct(tags.c.note_id))
        stmt = select(tags.c.tag, note_count.label("count"))
        if source:
            stmt = stmt.where(tags.c.source == source)
        stmt = stmt.group_by(tags.c.tag).order_by(note_count.desc(), tags.c.tag)
        with self._engine.connect() as conn:
            return [dict(r) for r in conn.execute(stmt).mappings()]
