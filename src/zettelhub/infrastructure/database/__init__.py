"""SQLite index database: engine, schema, and FTS5 sync via SQLAlchemy Core."""

from zettelhub.infrastructure.database.engine import (
    StoreUnavailable,
    create_db_engine,
    db_path_for,
    init_database,
    open_database,
)
from zettelhub.infrastructure.database.schema import links, metadata, notes, tags

__all__ = [
    "StoreUnavailable",
    "create_db_engine",
    "db_path_for",
    "init_database",
    "links",
    "metadata",
    "notes",
    "open_database",
    "tags",
]
