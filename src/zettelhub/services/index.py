"""IndexService — the indexing pipeline.

Single-file mode::

    read -> extract links -> resolve against current store -> upsert
    (note + tags + FTS + links in one transaction) -> backlinks refresh

Bulk mode (``reindex_all``)::

    snapshot ids -> pass one (per-file, failures collected) -> orphan
    sweep -> pass two (re-resolve every note's links)

Pass two strictly follows pass one for *all* files: a link whose target
was indexed after its referrer in pass one is only resolvable then.
No transaction spans a bulk scan; each note commits on its own.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from zettelhub.domain.content import (
    ParseError,
    parse_frontmatter,
    render_frontmatter,
    set_frontmatter_id,
)
from zettelhub.domain.links import rewrite_links
from zettelhub.domain.notes import NoteDocument, read_note
from zettelhub.domain.resolver import markdown_target_candidates, relative_link
from zettelhub.infrastructure.database.schema import links, notes
from zettelhub.services._helpers import bounded, failure_entry
from zettelhub.services.backlinks import refresh_backlinks_sections
from zettelhub.services.base import BaseService
from zettelhub.services.result import ErrorCode, ServiceResult
from zettelhub.services.telemetry import annotate, trace_span, traced

if TYPE_CHECKING:
    from zettelhub.domain.links import MarkdownTarget
    from zettelhub.infrastructure.vault import VaultTransaction


class IndexService(BaseService):
    """Builds and maintains the index from notebook files."""

    # ------------------------------------------------------------------
    # Single file
    # ------------------------------------------------------------------

    @traced
    def index_file(self, path: Path) -> ServiceResult:
        """(Re)index one note file.

        A link that does not resolve is stored as a broken edge; it is
        never an error.  Other notes whose broken links resolve once this
        note is stored are re-resolved in the same transaction.  A parse
        failure leaves the store untouched.
        """
        op = "index_file"
        path = Path(path)
        if not path.is_absolute():
            path = Path.cwd() / path
        try:
            rel_path = self._vault.rel_path(path)
        except ValueError:
            return ServiceResult.failure(
                op, ErrorCode.OUTSIDE_ROOT, f"{path} is outside the notebook {self._vault.root}"
            )
        if not path.is_file():
            return ServiceResult.failure(op, ErrorCode.NOT_FOUND, f"No such note file: {rel_path}")

        try:
            doc = read_note(path, self._vault.root)
        except ParseError as exc:
            failures = [failure_entry(rel_path, exc.reason)]
            return ServiceResult.failure(
                op,
                ErrorCode.PARSE_ERROR,
                f"Cannot parse {rel_path}: {exc.reason}",
                data={"indexed": None, "path": rel_path, "failures": failures},
            )

        warnings: list[str] = []
        outcome = self._index_document(doc, warnings)
        self._log.info("note.indexed", id=doc.id, path=doc.path, links=outcome["links"])
        return ServiceResult(
            ok=True,
            op=op,
            data={"indexed": doc.id, "path": doc.path, "failures": [], **outcome},
            warnings=warnings,
        )

    @traced
    def relink(self, note_ids: list[str]) -> ServiceResult:
        """Re-resolve the links of already indexed notes.

        Used after a group of files was indexed one by one, so links
        between members of the group resolve regardless of order.
        """
        op = "relink"
        paths = self._vault.query.id_path_map()
        relinked: list[str] = []
        unresolved = 0
        for note_id in dict.fromkeys(note_ids):
            rel_path = paths.get(note_id)
            if rel_path is None:
                continue
            try:
                doc = read_note(self._vault.abs_path(rel_path), self._vault.root)
            except ParseError as exc:
                self._log.warning("note.relink_skipped", path=rel_path, reason=exc.reason)
                continue
            doc.id = note_id
            with self._vault.transaction() as txn:
                edges = txn.resolve_links(doc)
                txn.upsert_links(note_id, edges)
                if self._vault.settings.index.backlinks_section:
                    targets = [e.target_id for e in edges if e.target_id]
                    refresh_backlinks_sections(txn, [note_id, *targets])
            unresolved += sum(1 for e in edges if e.target_id is None)
            relinked.append(note_id)
        return ServiceResult(
            ok=True, op=op, data={"relinked": relinked, "unresolved": unresolved}
        )

    def _index_document(
        self,
        doc: NoteDocument,
        warnings: list[str],
        *,
        bulk: bool = False,
    ) -> dict[str, Any]:
        """Upsert *doc* with its tags and links in one transaction."""
        cfg = self._vault.settings.index
        outcome: dict[str, Any] = {
            "id_written": False,
            "renamed_from": None,
            "rewritten": [],
            "relinked": [],
        }

        with self._vault.transaction() as txn:
            if doc.id_generated and cfg.write_generated_ids:
                content = render_frontmatter(set_frontmatter_id(doc.metadata, doc.id), doc.raw_body)
                outcome["id_written"] = txn.write_file(txn.abs_path(doc.path), content)

            previous_path = txn.conn.execute(
                select(notes.c.path).where(notes.c.id == doc.id)
            ).scalar()
            old_targets = [
                r.target_id
                for r in txn.conn.execute(
                    select(links.c.target_id).where(
                        links.c.source_id == doc.id, links.c.target_id.is_not(None)
                    )
                )
            ]

            moved = previous_path is not None and previous_path != doc.path
            if moved and self._still_claims_id(previous_path, doc.id):
                if not bulk:
                    warnings.append(
                        f"Duplicate id {doc.id}: {previous_path} and {doc.path} "
                        f"(indexed {doc.path}, last processed wins)"
                    )
                moved = False

            txn.upsert_note(doc)
            edges = txn.resolve_links(doc)
            txn.upsert_links(doc.id, edges)
            if not bulk:
                outcome["relinked"] = self._heal_broken_links(txn, doc.id)

            if moved:
                assert previous_path is not None
                outcome["renamed_from"] = previous_path
                outcome["rewritten"] = self._rewrite_renamed_links(
                    txn, doc.id, previous_path, doc.path, warnings
                )

            if cfg.backlinks_section and not bulk:
                new_targets = [e.target_id for e in edges if e.target_id]
                refresh_backlinks_sections(txn, [doc.id, *old_targets, *new_targets])

        outcome["links"] = len(edges)
        outcome["unresolved"] = sum(1 for e in edges if e.target_id is None)
        outcome["tags"] = len(doc.tags())
        return outcome

    def _heal_broken_links(self, txn: VaultTransaction, note_id: str) -> list[str]:
        """Re-resolve notes whose dangling links now find a target.

        Returns the ids of the re-resolved notes.
        """
        healed: list[str] = []
        for source_id, source_path in txn.resolvable_broken_links().items():
            if source_id == note_id:
                continue
            try:
                source_doc = read_note(txn.abs_path(source_path), self._vault.root)
            except ParseError as exc:
                self._log.warning("note.relink_skipped", path=source_path, reason=exc.reason)
                continue
            source_doc.id = source_id
            txn.upsert_links(source_id, txn.resolve_links(source_doc))
            healed.append(source_id)
        return healed

    def _still_claims_id(self, rel_path: str, note_id: str) -> bool:
        """True when the file at *rel_path* still exists and carries *note_id*."""
        file_path = self._vault.abs_path(rel_path)
        if not file_path.is_file():
            return False
        try:
            return read_note(file_path, self._vault.root).id == note_id
        except ParseError:
            return False

    def _rewrite_renamed_links(
        self,
        txn: VaultTransaction,
        note_id: str,
        old_path: str,
        new_path: str,
        warnings: list[str],
    ) -> list[str]:
        """Point markdown links in linking notes at the note's new location.

        Each rewritten source is re-indexed in the same transaction.
        Returns the paths of the rewritten files.
        """
        rows = txn.conn.execute(
            select(notes.c.id, notes.c.path)
            .select_from(links.join(notes, notes.c.id == links.c.source_id))
            .where(links.c.target_id == note_id, links.c.link_type == "markdown")
            .distinct()
        ).all()

        folded_old = old_path.casefold()
        rewritten: list[str] = []
        for row in rows:
            source_path: str = row.path
            source_file = txn.abs_path(source_path)
            if not source_file.is_file():
                continue

            def _retarget(target: MarkdownTarget, _src: str = source_path) -> str | None:
                candidates = markdown_target_candidates(target.path, _src)
                if folded_old not in {c.casefold() for c in candidates}:
                    return None
                return target.render(relative_link(_src, new_path))

            try:
                metadata, body = parse_frontmatter(source_file.read_text(encoding="utf-8"))
            except (ParseError, OSError, UnicodeDecodeError) as exc:
                warnings.append(f"Could not update links in {source_path}: {exc}")
                continue

            new_body = rewrite_links(body, markdown=_retarget)
            if new_body == body:
                continue
            txn.write_file(source_file, render_frontmatter(metadata, new_body))
            source_doc = read_note(source_file, self._vault.root)
            if source_doc.id_generated:
                source_doc.id = row.id
            txn.upsert_note(source_doc)
            txn.upsert_links(source_doc.id, txn.resolve_links(source_doc))
            rewritten.append(source_path)
            self._log.info("rename.links_rewritten", source=source_path, old=old_path, new=new_path)
        return rewritten

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    @traced
    def reindex_all(self) -> ServiceResult:
        """Full scan: index every file, sweep orphans, re-resolve all links.

        Per-file failures are collected and reported, never raised.  A
        missing root is fatal.  Store errors propagate.
        """
        op = "reindex"
        root = self._vault.root
        if not root.is_dir():
            return ServiceResult.failure(
                op, ErrorCode.ROOT_NOT_FOUND, f"Notebook root does not exist: {root}"
            )

        cfg = self._vault.settings.index
        warnings: list[str] = []
        before_paths = self._vault.query.id_path_map()
        before = set(before_paths)

        with trace_span("discover"):
            files = self._vault.find_notes()
            annotate(files=len(files))

        docs: dict[str, NoteDocument] = {}
        failures: list[dict[str, Any]] = []
        failed_paths: set[str] = set()
        duplicates: list[dict[str, Any]] = []
        ids_written = 0

        with trace_span("pass_one"):
            for path in files:
                rel_path = self._vault.rel_path(path)
                try:
                    doc = read_note(path, root)
                except ParseError as exc:
                    failures.append(failure_entry(rel_path, exc.reason))
                    failed_paths.add(rel_path)
                    self._log.warning("note.parse_failed", path=rel_path, reason=exc.reason)
                    continue

                if doc.id in docs:
                    previous = docs[doc.id].path
                    duplicates.append(
                        {"id": doc.id, "paths": [previous, doc.path], "kept": doc.path}
                    )
                    warnings.append(
                        f"Duplicate id {doc.id}: {previous} and {doc.path} (kept {doc.path})"
                    )
                docs[doc.id] = doc

                try:
                    outcome = self._index_document(doc, warnings, bulk=True)
                except OSError as exc:
                    failures.append(failure_entry(rel_path, f"write failed: {exc}"))
                    failed_paths.add(rel_path)
                    del docs[doc.id]
                    continue
                ids_written += int(outcome["id_written"])
                # Sources rewritten for a rename must enter pass two with their new text.
                for rewritten_path in outcome["rewritten"]:
                    try:
                        fresh = read_note(self._vault.abs_path(rewritten_path), root)
                    except ParseError:
                        continue
                    if fresh.id in docs:
                        docs[fresh.id] = fresh

        # Notes whose file exists but no longer parses keep their entry.
        protected = {nid for nid, p in before_paths.items() if p in failed_paths}
        orphans = sorted(before - set(docs) - protected)

        with trace_span("orphan_sweep", removed=len(orphans)):
            if orphans:
                with self._vault.transaction() as txn:
                    txn.delete_notes(orphans)

        total_links = 0
        unresolved = 0
        with trace_span("pass_two"):
            for doc in docs.values():
                with self._vault.transaction() as txn:
                    edges = txn.resolve_links(doc)
                    txn.upsert_links(doc.id, edges)
                total_links += len(edges)
                unresolved += sum(1 for e in edges if e.target_id is None)

        if cfg.backlinks_section:
            with trace_span("backlinks"), self._vault.transaction() as txn:
                refresh_backlinks_sections(txn, sorted(docs))

        if failures:
            warnings.append(f"{len(failures)} file(s) skipped")
        shown, omitted = bounded(failures, cfg.max_reported_failures)

        self._log.info(
            "reindex.complete",
            found=len(files),
            indexed=len(docs),
            skipped=len(failures),
            removed=len(orphans),
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "found": len(files),
                "indexed": len(docs),
                "skipped": len(failures),
                "removed": len(orphans),
                "removed_ids": orphans,
                "failures": shown,
                "failures_omitted": omitted,
                "duplicates": duplicates,
                "links": total_links,
                "unresolved": unresolved,
                "ids_written": ids_written,
            },
            warnings=warnings,
        )
