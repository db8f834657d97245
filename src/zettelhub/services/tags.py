"""TagService — edit front matter tags and keep the index in step.

Only the ``tags`` list in a note's front matter is edited; inline
``#hashtags`` in the body are left alone.  Every edited file is
re-indexed right after it is written.
"""

from __future__ import annotations

from typing import Any

from zettelhub.domain.content import (
    ParseError,
    render_frontmatter,
    set_frontmatter_id,
    string_list,
)
from zettelhub.domain.notes import read_note
from zettelhub.domain.tags import edit_tags, normalize_tag, set_frontmatter_tags
from zettelhub.infrastructure.repositories.references import StoreReferenceLookup
from zettelhub.services._helpers import failure_entry
from zettelhub.services.base import BaseService
from zettelhub.services.index import IndexService
from zettelhub.services.result import ErrorCode, ServiceResult
from zettelhub.services.telemetry import annotate, traced


class TagService(BaseService):
    """Add, remove, and rename front matter tags."""

    @traced
    def add_tag(self, reference: str, tag: str) -> ServiceResult:
        """Add *tag* to the note *reference* resolves to."""
        return self._edit_note("tag_add", reference, tag, adding=True)

    @traced
    def remove_tag(self, reference: str, tag: str) -> ServiceResult:
        """Remove *tag* (compared casefolded) from one note."""
        return self._edit_note("tag_remove", reference, tag, adding=False)

    @traced
    def rename_tag(self, old: str, new: str) -> ServiceResult:
        """Replace *old* with *new* in every note whose front matter carries *old*.

        A note that fails to parse is reported under ``failures`` and
        the others are still renamed.
        """
        op = "tag_rename"
        old_name, new_name = normalize_tag(old), normalize_tag(new)
        if not old_name or not new_name:
            unusable = new if old_name else old
            return ServiceResult.failure(
                op, ErrorCode.INVALID_TAG, f"Not a usable tag: {unusable!r}"
            )

        items: list[dict[str, Any]] = []
        failures: list[dict[str, Any]] = []
        warnings: list[str] = []
        candidates: list[dict[str, str]] = []
        if old_name == new_name:
            warnings.append("Old and new tag are the same; nothing to rename")
        else:
            candidates = self._vault.query.notes_with_tag(old_name, source="frontmatter")

        for note in candidates:
            try:
                tags, changed = self._rewrite(
                    note["id"], note["path"], warnings, add=new_name, remove=old_name
                )
            except ParseError as exc:
                failures.append(failure_entry(note["path"], exc.reason))
                continue
            if changed:
                items.append({"id": note["id"], "path": note["path"], "tags": tags})

        annotate(notes=len(items), failures=len(failures))
        self._log.info("tag.renamed", old=old_name, new=new_name, notes=len(items))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "old": old_name,
                "new": new_name,
                "count": len(items),
                "items": items,
                "failures": failures,
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _edit_note(self, op: str, reference: str, tag: str, *, adding: bool) -> ServiceResult:
        name = normalize_tag(tag)
        if not name:
            return ServiceResult.failure(op, ErrorCode.INVALID_TAG, f"Not a usable tag: {tag!r}")

        with self._vault.engine.connect() as conn:
            note_id = StoreReferenceLookup(conn).resolve(reference)
        note = self._vault.query.get_note(note_id) if note_id else None
        if note is None:
            return ServiceResult.failure(
                op,
                ErrorCode.NOT_FOUND,
                f"No note matches '{reference}' (by id, title, or alias)",
                reference=reference,
            )

        warnings: list[str] = []
        try:
            tags, changed = self._rewrite(
                note["id"],
                note["path"],
                warnings,
                add=name if adding else None,
                remove=None if adding else name,
            )
        except ParseError as exc:
            return ServiceResult.failure(
                op,
                ErrorCode.PARSE_ERROR,
                f"Cannot parse {note['path']}: {exc.reason}",
                data={"failures": [failure_entry(note["path"], exc.reason)]},
            )

        self._log.info("note.tags_edited", id=note["id"], tag=name, op=op, changed=changed)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": note["id"],
                "path": note["path"],
                "tag": name,
                "changed": changed,
                "tags": tags,
            },
            warnings=warnings,
        )

    def _rewrite(
        self,
        note_id: str,
        rel_path: str,
        warnings: list[str],
        *,
        add: str | None = None,
        remove: str | None = None,
    ) -> tuple[list[str], bool]:
        """Edit the tags of the note file at *rel_path* and re-index it.

        Returns the resulting tag list and whether the file changed.

        Raises:
            ParseError: The file is unreadable or its front matter is malformed.
        """
        path = self._vault.abs_path(rel_path)
        doc = read_note(path, self._vault.root)
        normalized = (normalize_tag(raw) for raw in string_list(doc.metadata.get("tags")))
        current = [tag for tag in normalized if tag]
        updated = edit_tags(current, add=add, remove=remove)
        if updated == current:
            return current, False

        metadata = doc.metadata
        set_frontmatter_tags(metadata, updated)
        if doc.id_generated or not isinstance(metadata.get("id"), str):
            # Keep the indexed id; an unquoted or missing id is written quoted.
            metadata = set_frontmatter_id(metadata, note_id)
        with self._vault.transaction() as txn:
            txn.write_file(path, render_frontmatter(metadata, doc.raw_body))

        indexed = IndexService(self._vault).index_file(path)
        warnings.extend(indexed.warnings)
        if not indexed.ok and indexed.error is not None:
            warnings.append(indexed.error.message)
        return updated, True
