"""ImportService — batch import with consistent id remapping.

Two passes over the batch:

1. **Plan** (no writes): parse every source, assign a fresh id, compute
   its destination, and register it in :class:`BatchMaps`.
2. **Rewrite**: rewrite each file's id, wiki links, and markdown links
   using only the complete maps from pass one, then either report the
   changes (dry run) or write and index the files.

Every lookup in pass two sees the whole batch, so the result does not
depend on the order of the sources.  Ids are always freshly generated:
importing the same sources twice creates two sets of notes.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import unquote

from jinja2 import TemplateError

from zettelhub.domain.content import ParseError, render_frontmatter, set_frontmatter_id, to_plain
from zettelhub.domain.ids import generate_id, normalize_id
from zettelhub.domain.links import MarkdownTarget, rewrite_links
from zettelhub.domain.notes import parse_note
from zettelhub.domain.resolver import (
    NOTE_EXTENSION,
    extension_variants,
    relative_link,
    resolve_reference,
)
from zettelhub.infrastructure.database.engine import db_path_for
from zettelhub.infrastructure.templates import build_template_environment, slugify
from zettelhub.services._helpers import failure_entry
from zettelhub.services.base import BaseService
from zettelhub.services.index import IndexService
from zettelhub.services.result import ErrorCode, ServiceResult
from zettelhub.services.telemetry import annotate, trace_span, traced

# ---------------------------------------------------------------------------
# Planning types
# ---------------------------------------------------------------------------


@dataclass
class ImportCandidate:
    """A parsed source file with its freshly assigned id."""

    source: Path  # absolute
    new_id: str
    old_id: str | None
    title: str
    type: str
    aliases: list[str]
    metadata: Any  # round-trip front matter, rewritten in pass two
    body: str

    @property
    def date(self) -> str:
        """``date`` from the front matter (``YYYY-MM-DD``), else today."""
        value = to_plain(self.metadata.get("date"))
        if value:
            return str(value)[:10]
        return date.today().isoformat()


type DestinationRule = Callable[[ImportCandidate], str]


class TemplateDestinationRule:
    """Destination paths rendered from a Jinja2 template.

    Template variables: ``id``, ``title``, ``slug``, ``type``, ``date``,
    ``year``, ``month``, ``stem`` (source file name without extension)
    and ``metadata``.  The result is joined onto *target_dir* and must
    stay inside the notebook.
    """

    def __init__(
        self,
        target_dir: str = ".",
        path_template: str = "{{ id }}{% if slug %}-{{ slug }}{% endif %}.md",
        slug_replacement: str = "-",
    ) -> None:
        self._target_dir = target_dir
        self._slug_replacement = slug_replacement
        env = build_template_environment(slug_replacement=slug_replacement)
        self._template = env.from_string(path_template)

    def __call__(self, candidate: ImportCandidate) -> str:
        day = candidate.date
        rendered = self._template.render(
            id=candidate.new_id,
            title=candidate.title,
            slug=slugify(candidate.title, self._slug_replacement),
            type=candidate.type,
            date=day,
            year=day[:4],
            month=day[5:7],
            stem=candidate.source.stem,
            metadata=to_plain(candidate.metadata),
        ).strip()
        if not rendered:
            msg = "path template rendered an empty path"
            raise ValueError(msg)
        if not rendered.lower().endswith(NOTE_EXTENSION):
            rendered += NOTE_EXTENSION
        rel_path = os.path.normpath(os.path.join(self._target_dir, rendered))
        rel_path = PurePosixPath(*Path(rel_path).parts).as_posix()
        if rel_path.startswith("/") or rel_path == ".." or rel_path.startswith("../"):
            msg = f"destination escapes the notebook: {rel_path}"
            raise ValueError(msg)
        return rel_path


# ---------------------------------------------------------------------------
# Batch maps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathResolution:
    """Outcome of :meth:`BatchMaps.resolve_path`.

    ``candidates`` is only filled when several batch files matched and
    none could be preferred.
    """

    destination: str | None
    candidates: tuple[Path, ...] = ()


def _basename_key(name: str) -> str:
    folded = name.casefold()
    return folded.removesuffix(NOTE_EXTENSION)


@dataclass
class BatchMaps:
    """Forward-reference maps of one import batch.

    Implements :class:`~zettelhub.domain.resolver.ReferenceLookup`, so
    wiki references resolve exactly as they do against the index store,
    but to the *new* ids.  Title and alias entries are first-wins.
    """

    old_ids: dict[str, str] = field(default_factory=dict)
    titles: dict[str, str] = field(default_factory=dict)
    folded_titles: dict[str, str] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)
    destinations: dict[Path, str] = field(default_factory=dict)
    folded_paths: dict[str, list[Path]] = field(default_factory=dict)
    basenames: dict[str, list[Path]] = field(default_factory=dict)
    new_ids: set[str] = field(default_factory=set)

    def add(self, candidate: ImportCandidate, destination: str) -> None:
        self.new_ids.add(candidate.new_id)
        if candidate.old_id:
            self.old_ids.setdefault(candidate.old_id, candidate.new_id)
            canonical = normalize_id(candidate.old_id)
            if canonical is not None:
                self.old_ids.setdefault(canonical, candidate.new_id)
        if candidate.title:
            self.titles.setdefault(candidate.title, candidate.new_id)
            self.folded_titles.setdefault(candidate.title.casefold(), candidate.new_id)
        for alias in candidate.aliases:
            self.aliases.setdefault(alias, candidate.new_id)
        source = candidate.source
        self.destinations[source] = destination
        self.folded_paths.setdefault(str(source).casefold(), []).append(source)
        self.basenames.setdefault(_basename_key(source.name), []).append(source)

    # -- ReferenceLookup -----------------------------------------------

    def known_id(self, reference: str) -> str | None:
        # Old ids come from other tools and need not be hex.
        if reference in self.old_ids:
            return self.old_ids[reference]
        canonical = normalize_id(reference)
        return self.old_ids.get(canonical) if canonical else None

    def id_for_title(self, title: str) -> str | None:
        return self.titles.get(title)

    def id_for_alias(self, alias: str) -> str | None:
        return self.aliases.get(alias)

    def id_for_title_casefold(self, folded_title: str) -> str | None:
        return self.folded_titles.get(folded_title)

    def resolve(self, reference: str) -> str | None:
        return resolve_reference(reference, self)

    # -- Paths ---------------------------------------------------------

    def resolve_path(self, target: str, source_dir: Path) -> PathResolution:
        """Map a markdown link *target* written in *source_dir* to a destination.

        Tries, in order: the exact file, extension and case variants in
        the same directory, then a batch-wide basename match.  Several
        basename matches are narrowed to the one in *source_dir*; if that
        does not single one out the link stays unresolved.
        """
        decoded = unquote(target.strip())
        if not decoded:
            return PathResolution(None)
        absolute = Path(os.path.normpath(source_dir / decoded))

        if absolute in self.destinations:
            return PathResolution(self.destinations[absolute])

        for variant in extension_variants(absolute.name):
            path = absolute.parent / variant
            if path in self.destinations:
                return PathResolution(self.destinations[path])
        for variant in extension_variants(absolute.name):
            matches = self.folded_paths.get(str(absolute.parent / variant).casefold(), [])
            if len(matches) == 1:
                return PathResolution(self.destinations[matches[0]])

        candidates = self.basenames.get(_basename_key(absolute.name), [])
        if len(candidates) == 1:
            return PathResolution(self.destinations[candidates[0]])
        if len(candidates) > 1:
            local = [c for c in candidates if c.parent == source_dir]
            if len(local) == 1:
                return PathResolution(self.destinations[local[0]])
            return PathResolution(None, tuple(sorted(candidates)))
        return PathResolution(None)


@dataclass
class _Rewrite:
    candidate: ImportCandidate
    destination: str
    content: str = ""
    changes: list[str] = field(default_factory=list)
    ambiguous: list[dict[str, Any]] = field(default_factory=list)
    unresolved: int = 0

    def report(self) -> dict[str, Any]:
        return {
            "source": str(self.candidate.source),
            "id": self.candidate.new_id,
            "old_id": self.candidate.old_id,
            "destination": self.destination,
            "changes": self.changes,
            "ambiguous": self.ambiguous,
            "unresolved": self.unresolved,
        }


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ImportService(BaseService):
    """Imports external note files into the notebook.

    Not idempotent: every run assigns new ids, so importing the same
    sources again duplicates the notes rather than updating them.
    """

    @traced
    def import_batch(
        self,
        sources: Sequence[Path],
        *,
        destination_rule: DestinationRule | None = None,
        dry_run: bool = False,
    ) -> ServiceResult:
        """Import *sources* as new notes, rewriting references between them.

        Args:
            sources: Note files to import (directories already expanded).
            destination_rule: Maps a candidate to a notebook-relative path;
                defaults to the ``[import]`` settings.
            dry_run: Report the planned changes without writing anything.
        """
        op = "import"
        if not sources:
            return ServiceResult.failure(op, ErrorCode.NO_SOURCES, "No note files to import")

        if destination_rule is None:
            cfg = self._vault.settings.import_
            destination_rule = TemplateDestinationRule(
                cfg.target_dir, cfg.path_template, cfg.slug_replacement
            )

        failures: list[dict[str, Any]] = []
        warnings: list[str] = []
        with trace_span("plan", sources=len(sources)):
            maps, planned = self._plan(sources, destination_rule, failures)
            annotate(planned=len(planned))

        with trace_span("rewrite"):
            rewrites = [self._rewrite(item, maps) for item in planned]
        for item in rewrites:
            for entry in item.ambiguous:
                warnings.append(
                    f"Ambiguous link ({entry['target']}) in {item.candidate.source}: "
                    f"{len(entry['candidates'])} candidates, left unchanged"
                )

        indexed: list[str] = []
        if not dry_run and rewrites:
            with trace_span("commit"):
                indexed = self._commit(rewrites, failures)

        data: dict[str, Any] = {
            "dry_run": dry_run,
            "count": len(rewrites),
            "items": [item.report() for item in rewrites],
            "indexed": indexed,
            "failures": failures,
        }
        if failures:
            warnings.append(f"{len(failures)} file(s) not imported")
        if not rewrites:
            return ServiceResult.failure(
                op, ErrorCode.IMPORT_FAILED, "No files could be imported", data=data
            )
        self._log.info(
            "import.complete", count=len(rewrites), failed=len(failures), dry_run=dry_run
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    # ------------------------------------------------------------------
    # Pass one
    # ------------------------------------------------------------------

    def _plan(
        self,
        sources: Sequence[Path],
        destination_rule: DestinationRule,
        failures: list[dict[str, Any]],
    ) -> tuple[BatchMaps, list[tuple[ImportCandidate, str]]]:
        maps = BatchMaps()
        planned: list[tuple[ImportCandidate, str]] = []
        taken: set[str] = set()

        for raw_source in sources:
            source = Path(raw_source).resolve()
            if source in maps.destinations:
                continue
            try:
                content = source.read_text(encoding="utf-8")
                doc = parse_note(content, source.name, strict_id=False)
            except ParseError as exc:
                failures.append(failure_entry(str(source), exc.reason))
                continue
            except UnicodeDecodeError:
                failures.append(failure_entry(str(source), "file is not valid UTF-8"))
                continue
            except OSError as exc:
                reason = f"cannot read file: {exc.strerror or exc}"
                failures.append(failure_entry(str(source), reason))
                continue

            candidate = ImportCandidate(
                source=source,
                new_id=self._fresh_id(maps),
                old_id=doc.source_id,
                title=doc.title,
                type=doc.type,
                aliases=doc.aliases,
                metadata=doc.metadata,
                body=doc.raw_body,
            )
            try:
                destination = destination_rule(candidate)
            except (ValueError, TemplateError) as exc:
                failures.append(failure_entry(str(source), f"destination: {exc}"))
                continue

            folded = destination.casefold()
            if folded in taken or self._vault.abs_path(destination).exists():
                failures.append(failure_entry(str(source), f"destination exists: {destination}"))
                continue
            taken.add(folded)
            maps.add(candidate, destination)
            planned.append((candidate, destination))
        return maps, planned

    def _fresh_id(self, maps: BatchMaps) -> str:
        while True:
            new_id = generate_id()
            if new_id not in maps.new_ids and not self._id_in_use(new_id):
                return new_id

    def _id_in_use(self, note_id: str) -> bool:
        # A dry run may be planned against a notebook without an index.
        cfg = self._vault.settings.index
        if not db_path_for(self._vault.root, cfg.private_dir, cfg.db_filename).is_file():
            return False
        return self._vault.query.get_note(note_id) is not None

    # ------------------------------------------------------------------
    # Pass two
    # ------------------------------------------------------------------

    def _rewrite(self, item: tuple[ImportCandidate, str], maps: BatchMaps) -> _Rewrite:
        candidate, destination = item
        result = _Rewrite(candidate=candidate, destination=destination)
        if candidate.old_id:
            result.changes.append(f"id: {candidate.old_id} -> {candidate.new_id}")

        def _wiki(reference: str, display: str | None) -> str | None:
            new_id = maps.resolve(reference)
            if new_id is None:
                result.unresolved += 1
                return None
            old = reference if display is None else f"{reference}|{display}"
            new = new_id if display is None else f"{new_id}|{display}"
            result.changes.append(f"wikilink [[{old}]] -> [[{new}]]")
            return new

        def _markdown(target: MarkdownTarget) -> str | None:
            match = maps.resolve_path(target.path, candidate.source.parent)
            if match.candidates:
                result.ambiguous.append(
                    {
                        "target": target.path,
                        "candidates": [str(c) for c in match.candidates],
                    }
                )
                self._log.warning(
                    "import.ambiguous_link",
                    source=str(candidate.source),
                    target=target.path,
                    candidates=len(match.candidates),
                )
            if match.destination is None:
                result.unresolved += 1
                return None
            new_target = target.render(relative_link(destination, match.destination))
            result.changes.append(f"link ({target.path}) -> ({new_target})")
            return new_target

        body = rewrite_links(candidate.body, wiki=_wiki, markdown=_markdown)
        metadata = set_frontmatter_id(candidate.metadata, candidate.new_id)
        result.content = render_frontmatter(metadata, body)
        return result

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def _commit(self, rewrites: list[_Rewrite], failures: list[dict[str, Any]]) -> list[str]:
        with self._vault.transaction() as txn:
            for item in rewrites:
                txn.write_file(self._vault.abs_path(item.destination), item.content)

        indexer = IndexService(self._vault)
        indexed: list[str] = []
        for item in rewrites:
            result = indexer.index_file(self._vault.abs_path(item.destination))
            if result.ok:
                indexed.append(item.candidate.new_id)
            else:
                assert result.error is not None
                failures.append(failure_entry(item.destination, result.error.message))
        # Links between batch members only resolve once all of them are indexed.
        indexer.relink(indexed)
        return indexed
