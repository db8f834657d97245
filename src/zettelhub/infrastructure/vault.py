"""Vault — the notebook repository with transaction coordination.

The Vault is the single dependency injected into every service.  It owns
the database engine, the lazy graph engine, and filesystem discovery.
The :meth:`Vault.transaction` context manager coordinates DB + file
writes so that if any fail, they all roll back:

- **DB**: Native SQLAlchemy ``engine.begin()`` with auto-commit/rollback.
- **Files**: Compensation-based: newly created files are deleted and
  modified files are restored from backup on rollback.
- **Graph**: Cache is invalidated on transaction end (success or failure).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from zettelhub.domain.notes import relative_note_path
from zettelhub.infrastructure import store
from zettelhub.infrastructure.database.engine import init_database, open_database
from zettelhub.infrastructure.filesystem import find_note_files
from zettelhub.infrastructure.graph import GraphEngine
from zettelhub.infrastructure.repositories.query import QueryRepository
from zettelhub.infrastructure.repositories.references import StoreReferenceLookup

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from zettelhub.config.settings import ZhSettings
    from zettelhub.domain.notes import NoteDocument

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# File operation tracking for compensation-based rollback
# ---------------------------------------------------------------------------


@dataclass
class _FileOp:
    """A tracked file write within a vault transaction."""

    path: Path
    backup: str | None  # original content for updates, None for creates

    def rollback(self) -> None:
        """Undo this file operation (best-effort)."""
        try:
            if self.backup is not None:
                self.path.write_text(self.backup, encoding="utf-8")
            else:
                self.path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to rollback file operation: %s", self.path)


# ---------------------------------------------------------------------------
# VaultTransaction: yielded to callers within transaction()
# ---------------------------------------------------------------------------


@dataclass
class VaultTransaction:
    """Active transaction with a DB connection and tracked file I/O.

    All file writes must go through :meth:`write_file` so the Vault can
    compensate on rollback.
    """

    conn: Connection
    _vault: Vault
    _file_ops: list[_FileOp] = field(default_factory=list, repr=False)

    def write_file(self, path: Path, content: str) -> bool:
        """Write *content* to *path*, tracking for rollback.

        Parent directories are created as needed.  Returns False (and
        writes nothing) when the file already holds exactly *content*.
        """
        backup: str | None = None
        if path.exists():
            backup = path.read_text(encoding="utf-8")
            if backup == content:
                return False

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        self._file_ops.append(_FileOp(path=path, backup=backup))
        return True

    def abs_path(self, rel_path: str) -> Path:
        return self._vault.abs_path(rel_path)

    # ------------------------------------------------------------------
    # Index store operations (bound to this transaction's connection)
    # ------------------------------------------------------------------

    @property
    def lookup(self) -> StoreReferenceLookup:
        """Reference lookups that see this transaction's uncommitted rows."""
        return StoreReferenceLookup(self.conn)

    def upsert_note(self, note: NoteDocument) -> str | None:
        return store.upsert_note(self.conn, note)

    def delete_notes(self, ids: Sequence[str]) -> int:
        return store.delete_notes(self.conn, ids)

    def upsert_links(self, source_id: str, edges: Iterable[store.LinkEdge]) -> int:
        return store.upsert_links(self.conn, source_id, edges)

    def resolvable_broken_links(self) -> dict[str, str]:
        """Sources (id to path) holding a dangling edge that now resolves."""
        lookup = self.lookup
        sources: dict[str, str] = {}
        for row in store.broken_links(self.conn):
            if row.link_type == "wiki":
                target_id = lookup.resolve(row.reference)
            else:
                target_id = lookup.resolve_markdown(row.reference, row.path)
            if target_id is not None:
                sources.setdefault(row.source_id, row.path)
        return sources

    def resolve_links(self, note: NoteDocument) -> list[store.LinkEdge]:
        """Extract and resolve *note*'s links against the current store state.

        Unresolvable references become edges with ``target_id=None``.
        """
        lookup = self.lookup
        edges: list[store.LinkEdge] = []
        for link in note.links():
            if link.link_type == "wiki":
                target_id = lookup.resolve(link.reference)
            else:
                target_id = lookup.resolve_markdown(link.reference, note.path)
            edges.append(store.LinkEdge(target_id, link.link_type, link.reference))
        return edges


# ---------------------------------------------------------------------------
# Vault: the repository
# ---------------------------------------------------------------------------


class Vault:
    """Repository encapsulating database, filesystem, and graph access.

    The index database is opened on first use of :attr:`engine`.  With
    ``create=True`` (indexing commands) it is created if missing; with
    ``create=False`` (read commands) a missing or corrupt database raises
    :class:`~zettelhub.infrastructure.database.StoreUnavailable`.
    """

    def __init__(self, settings: ZhSettings, *, create: bool = True) -> None:
        self._settings = settings
        self._create = create
        self._engine: Engine | None = None
        self._graph: GraphEngine | None = None
        self._query: QueryRepository | None = None

    @property
    def root(self) -> Path:
        """The notebook root directory."""
        return self._settings.notebook_root

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine, opened on first use."""
        if self._engine is None:
            index_cfg = self._settings.index
            opener = init_database if self._create else open_database
            self._engine = opener(self.root, index_cfg.private_dir, index_cfg.db_filename)
        return self._engine

    @property
    def graph(self) -> GraphEngine:
        """The graph engine (lazy-built from DB links)."""
        if self._graph is None:
            self._graph = GraphEngine(self.engine)
        return self._graph

    @property
    def query(self) -> QueryRepository:
        """Read-side repository over committed state."""
        if self._query is None:
            self._query = QueryRepository(self.engine)
        return self._query

    @property
    def settings(self) -> ZhSettings:
        return self._settings

    def close(self) -> None:
        """Dispose of pooled database connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def find_notes(self) -> list[Path]:
        """Discover note files under the root, excluding private/excluded dirs."""
        cfg = self._settings.index
        return find_note_files(
            self.root,
            private_dir=cfg.private_dir,
            exclude_dirs=cfg.exclude_dirs,
            extensions=cfg.extensions,
        )

    def rel_path(self, path: Path) -> str:
        """POSIX path of *path* relative to the root (ValueError if outside)."""
        return relative_note_path(path, self.root)

    def abs_path(self, rel_path: str) -> Path:
        return self.root / rel_path

    @contextmanager
    def transaction(self) -> Iterator[VaultTransaction]:
        """Coordinated transaction across DB and files.

        - DB writes use a native SQLAlchemy transaction (commit on
          success, rollback on exception).
        - File writes are compensated on failure: created files are
          deleted and modified files restored, best-effort per file.
        - The graph cache is invalidated on exit either way.

        Usage::

            with vault.transaction() as txn:
                txn.upsert_note(note)
                txn.upsert_links(note.id, txn.resolve_links(note))
        """
        file_ops: list[_FileOp] = []
        with self.engine.begin() as conn:
            txn = VaultTransaction(conn=conn, _vault=self, _file_ops=file_ops)
            try:
                yield txn
            except BaseException:
                for op in reversed(file_ops):
                    op.rollback()
                raise
            finally:
                if self._graph is not None:
                    self._graph.invalidate()
