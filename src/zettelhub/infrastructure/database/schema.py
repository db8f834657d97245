"""SQLAlchemy Core table definitions for the zettelhub index.

Three tables (notes, links, tags) plus one derived FTS5 table.  The
FTS5 virtual table and its sync triggers are created via raw DDL in
:func:`~zettelhub.infrastructure.database.engine.init_database` since
SQLAlchemy cannot express SQLite virtual tables natively.
"""

from __future__ import annotations

from sqlalchemy import Column, Index, MetaData, Table, Text, UniqueConstraint

metadata = MetaData()

notes = Table(
    "notes",
    metadata,
    Column("id", Text, primary_key=True),
    Column("path", Text, nullable=False, unique=True),
    Column("title", Text, nullable=False, default="", server_default=""),
    Column("type", Text, nullable=False, default="note", server_default="note"),
    Column("aliases", Text, nullable=False, default="[]", server_default="[]"),  # JSON array
    Column("metadata", Text, nullable=False, default="{}", server_default="{}"),  # JSON object
    Column("body", Text, nullable=False, default="", server_default=""),
    Column("filename", Text, nullable=False, default="", server_default=""),
)

Index("ix_notes_title", notes.c.title)

# target_id is NULL for a broken link; ``reference`` keeps the raw text
# so the edge can be re-resolved once its target is indexed.
links = Table(
    "links",
    metadata,
    Column("source_id", Text, nullable=False),
    Column("target_id", Text),
    Column("link_type", Text, nullable=False),  # wiki | markdown
    Column("reference", Text, nullable=False),
)

Index("ix_links_source", links.c.source_id)
Index("ix_links_target", links.c.target_id)

tags = Table(
    "tags",
    metadata,
    Column("tag", Text, nullable=False),
    Column("note_id", Text, nullable=False),
    Column("source", Text, nullable=False),  # frontmatter | body
    UniqueConstraint("note_id", "tag", "source"),
)

Index("ix_tags_tag", tags.c.tag)

# FTS5 shadow of notes (title, filename, body + front matter description).
FTS5_CREATE_SQL = (
    "CREATE VIRTUAL TABLE IF NOT EXISTS notes_fts USING fts5("
    "id UNINDEXED, title, filename, body, tokenize = 'unicode61')"
)

_FTS_BODY_EXPR = (
    "COALESCE(NEW.body, '') || COALESCE(char(10) || "
    "json_extract(NEW.metadata, '$.description'), '')"
)

# Triggers keep notes_fts in the same transaction as every notes write.
FTS5_TRIGGERS_SQL: tuple[str, ...] = (
    "CREATE TRIGGER IF NOT EXISTS notes_fts_insert AFTER INSERT ON notes BEGIN "
    "INSERT INTO notes_fts(id, title, filename, body) "
    f"VALUES (NEW.id, NEW.title, NEW.filename, {_FTS_BODY_EXPR}); "
    "END",
    "CREATE TRIGGER IF NOT EXISTS notes_fts_update AFTER UPDATE ON notes BEGIN "
    "DELETE FROM notes_fts WHERE id = OLD.id; "
    "INSERT INTO notes_fts(id, title, filename, body) "
    f"VALUES (NEW.id, NEW.title, NEW.filename, {_FTS_BODY_EXPR}); "
    "END",
    "CREATE TRIGGER IF NOT EXISTS notes_fts_delete AFTER DELETE ON notes BEGIN "
    "DELETE FROM notes_fts WHERE id = OLD.id; "
    "END",
)
