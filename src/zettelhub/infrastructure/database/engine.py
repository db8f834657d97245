"""Database engine setup for SQLite with WAL mode.

SQLite is the persistence layer: WAL mode for concurrent reads, FTS5
for full-text search, ACID transactions for per-note atomicity.  The
DB is stored at ``{notebook_root}/.zh/index.db`` by default.

SQLAlchemy Core (not ORM) is used because zettelhub is a short-lived
CLI process, with no benefit from session management or identity maps.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Literal

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError

from zettelhub.infrastructure.database.schema import FTS5_CREATE_SQL, FTS5_TRIGGERS_SQL, metadata

logger = logging.getLogger(__name__)

DEFAULT_PRIVATE_DIR = ".zh"
DEFAULT_DB_FILENAME = "index.db"


class StoreUnavailable(RuntimeError):
    """The index database is missing, unreadable, or corrupt."""

    def __init__(
        self, message: str, *, db_path: Path, reason: Literal["missing", "corrupt"]
    ) -> None:
        super().__init__(message)
        self.db_path = db_path
        self.reason = reason


def db_path_for(
    root: Path,
    private_dir: str = DEFAULT_PRIVATE_DIR,
    db_filename: str = DEFAULT_DB_FILENAME,
) -> Path:
    """Location of the index database for the notebook at *root*."""
    return root / private_dir / db_filename


def _casefold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and a Unicode ``casefold()`` SQL function."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()
        dbapi_conn.create_function("casefold", 1, _casefold, deterministic=True)

    return engine


def _corrupt(db_path: Path, exc: Exception) -> StoreUnavailable:
    msg = f"Index database {db_path} is unreadable or corrupt: {exc}"
    return StoreUnavailable(msg, db_path=db_path, reason="corrupt")


def init_database(
    root: Path,
    private_dir: str = DEFAULT_PRIVATE_DIR,
    db_filename: str = DEFAULT_DB_FILENAME,
) -> Engine:
    """Create (or open) the index database under *root*.

    Creates the private directory, all tables from :data:`schema.metadata`,
    the FTS5 virtual table, and its sync triggers.  Idempotent; safe to
    call on an existing notebook.

    Raises:
        StoreUnavailable: If an existing database file cannot be used.
    """
    db_path = db_path_for(root, private_dir, db_filename)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)

    try:
        metadata.create_all(engine)
        with engine.begin() as conn:
            conn.execute(text(FTS5_CREATE_SQL))
            for ddl in FTS5_TRIGGERS_SQL:
                conn.execute(text(ddl))
    except (DBAPIError, sqlite3.DatabaseError) as exc:
        engine.dispose()
        raise _corrupt(db_path, exc) from exc

    logger.debug("Index database ready at %s", db_path)
    return engine


def open_database(
    root: Path,
    private_dir: str = DEFAULT_PRIVATE_DIR,
    db_filename: str = DEFAULT_DB_FILENAME,
) -> Engine:
    """Open an existing index database without creating anything.

    Raises:
        StoreUnavailable: ``reason="missing"`` when no index has been
            built yet, ``reason="corrupt"`` when the file is not a usable
            index database.
    """
    db_path = db_path_for(root, private_dir, db_filename)
    if not db_path.is_file():
        msg = f"No index database at {db_path}"
        raise StoreUnavailable(msg, db_path=db_path, reason="missing")

    engine = create_db_engine(db_path)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT id FROM notes LIMIT 1"))
            conn.execute(text("SELECT id FROM notes_fts LIMIT 1"))
            conn.execute(text("SELECT source_id FROM links LIMIT 1"))
            conn.execute(text("SELECT tag FROM tags LIMIT 1"))
    except (DBAPIError, sqlite3.DatabaseError) as exc:
        engine.dispose()
        raise _corrupt(db_path, exc) from exc
    return engine
