"""QueryService — read-only operations over the index.

Every command that accepts "a note by id, title, or alias" goes through
:meth:`QueryService.resolve_reference`, so lookups behave identically
across ``resolve``, ``links``, ``backlinks``, ``show`` and ``graph``.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import OperationalError

from zettelhub.infrastructure.repositories.query import SearchFilters
from zettelhub.infrastructure.repositories.references import StoreReferenceLookup
from zettelhub.services._helpers import parse_date_filter
from zettelhub.services.base import BaseService
from zettelhub.services.result import ErrorCode, ServiceResult
from zettelhub.services.telemetry import traced


class QueryService(BaseService):
    """Resolution, link listing, search, and tag listing."""

    def _resolve(self, reference: str) -> str | None:
        with self._vault.engine.connect() as conn:
            return StoreReferenceLookup(conn).resolve(reference)

    def _not_found(self, op: str, reference: str) -> ServiceResult:
        return ServiceResult.failure(
            op,
            ErrorCode.NOT_FOUND,
            f"No note matches '{reference}' (by id, title, or alias)",
            reference=reference,
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @traced
    def resolve_reference(self, reference: str) -> ServiceResult:
        """Resolve *reference* (id / title / alias / case-insensitive title)."""
        op = "resolve"
        note_id = self._resolve(reference)
        if note_id is None:
            return self._not_found(op, reference)
        note = self._vault.query.get_note(note_id) or {}
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "reference": reference,
                "id": note_id,
                "title": note.get("title", ""),
                "path": note.get("path", ""),
            },
        )

    @traced
    def get(self, reference: str) -> ServiceResult:
        """One note with metadata, tags, and link counts."""
        op = "get"
        note_id = self._resolve(reference)
        if note_id is None:
            return self._not_found(op, reference)
        note = self._vault.query.get_note(note_id)
        if note is None:
            return self._not_found(op, reference)

        outgoing = self._vault.query.get_outgoing_links(note_id)
        incoming = self._vault.query.get_incoming_links(note_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                **note,
                "tags": self._vault.query.get_note_tags(note_id),
                "links_out": len(outgoing),
                "links_broken": sum(1 for e in outgoing if e["broken"]),
                "links_in": len(incoming),
            },
        )

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    @traced
    def outgoing_links(self, reference: str) -> ServiceResult:
        """Forward links of a note; broken edges carry ``broken: True``."""
        op = "links"
        note_id = self._resolve(reference)
        if note_id is None:
            return self._not_found(op, reference)
        note = self._vault.query.get_note(note_id) or {}
        items = [
            {
                "id": row["target_id"],
                "title": row["title"] or "",
                "path": row["path"],
                "link_type": row["link_type"],
                "reference": row["reference"],
                "broken": row["broken"],
            }
            for row in self._vault.query.get_outgoing_links(note_id)
        ]
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": note_id,
                "title": note.get("title", ""),
                "count": len(items),
                "broken": sum(1 for i in items if i["broken"]),
                "items": items,
            },
        )

    @traced
    def incoming_links(self, reference: str) -> ServiceResult:
        """Backlinks of a note."""
        op = "backlinks"
        note_id = self._resolve(reference)
        if note_id is None:
            return self._not_found(op, reference)
        note = self._vault.query.get_note(note_id) or {}
        items = [
            {
                "id": row["source_id"],
                "title": row["title"] or "",
                "path": row["path"],
                "link_type": row["link_type"],
                "reference": row["reference"],
                "broken": row["broken"],
            }
            for row in self._vault.query.get_incoming_links(note_id)
        ]
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": note_id,
                "title": note.get("title", ""),
                "count": len(items),
                "items": items,
            },
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    @traced
    def search(
        self,
        query: str | None = None,
        *,
        note_type: str | None = None,
        tag: str | None = None,
        date: str | None = None,
        path: str | None = None,
        limit: int | None = None,
    ) -> ServiceResult:
        """Full-text search via FTS5 BM25, optionally filtered.

        Args:
            query: FTS5 search expression; may be empty when a filter is given.
            note_type: Exact ``type`` match.
            tag: Tag membership (front matter or inline), case-insensitive.
            date: ``YYYY-MM-DD``, ``YYYY-MM``, or ``START:END`` on ``metadata.date``.
            path: Path substring, or a pattern when it contains ``*`` or ``%``.
            limit: Maximum results (default from ``[search] limit``).
        """
        op = "search"
        date_from = date_to = None
        if date:
            try:
                date_from, date_to = parse_date_filter(date)
            except ValueError as exc:
                return ServiceResult.failure(
                    op, ErrorCode.INVALID_FILTER, f"Invalid date filter: {exc}", date=date
                )

        filters = SearchFilters(
            note_type=note_type or None,
            tag=tag or None,
            date_from=date_from,
            date_to=date_to,
            path=path or None,
        )
        text_query = (query or "").strip()
        if not text_query and not filters.active:
            return ServiceResult.failure(
                op, ErrorCode.EMPTY_QUERY, "Search query cannot be empty without a filter"
            )

        effective_limit = limit or self._vault.settings.search.limit
        try:
            rows = self._vault.query.search_rows(text_query or None, filters, limit=effective_limit)
        except OperationalError as exc:
            if not text_query:
                raise
            return ServiceResult.failure(
                op,
                ErrorCode.INVALID_QUERY,
                f"Invalid search expression '{text_query}'; quote terms with special characters",
                sqlite_error=str(exc.orig),
            )

        items: list[dict[str, Any]] = []
        for row in rows:
            item = dict(row)
            if item.get("score") is not None:
                item["score"] = round(float(item["score"]), 4)
            items.append(item)
        return ServiceResult(
            ok=True,
            op=op,
            data={"query": text_query, "count": len(items), "items": items},
        )

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    @traced
    def list_tags(self, *, source: str | None = None) -> ServiceResult:
        """All tags with note counts, most used first."""
        items = self._vault.query.tag_counts(source=source)
        return ServiceResult(ok=True, op="tags", data={"count": len(items), "items": items})
