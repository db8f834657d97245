"""Tests for index store writes."""

from __future__ import annotations

from sqlalchemy import func, select, text
from sqlalchemy.engine import Engine

from zettelhub.domain.notes import parse_note
from zettelhub.infrastructure.database.schema import links, notes, tags
from zettelhub.infrastructure.store import (
    LinkEdge,
    dedupe_edges,
    delete_notes,
    upsert_links,
    upsert_note,
)


def _doc(note_id: str, path: str, body: str = "", **fm: str):
    header = "".join(f"{k}: {v}\n" for k, v in fm.items())
    return parse_note(f'---\nid: "{note_id}"\n{header}---\n{body}', path)


def _count(engine: Engine, table) -> int:
    with engine.connect() as conn:
        return int(conn.execute(select(func.count()).select_from(table)).scalar_one())


class TestUpsertNote:
    def test_insert_and_replace(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            upsert_note(conn, _doc("0000000a", "a.md", "#one", title="First"))
        with db_engine.begin() as conn:
            upsert_note(conn, _doc("0000000a", "a.md", "#two", title="Second"))
        with db_engine.connect() as conn:
            row = conn.execute(select(notes).where(notes.c.id == "0000000a")).one()
            tag_rows = conn.execute(select(tags.c.tag)).scalars().all()
        assert row.title == "Second"
        assert tag_rows == ["two"]

    def test_fts_follows_upsert(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            upsert_note(conn, _doc("0000000a", "a.md", "zeppelin"))
        with db_engine.begin() as conn:
            upsert_note(conn, _doc("0000000a", "a.md", "submarine"))
        with db_engine.connect() as conn:
            hits = conn.execute(
                text("SELECT count(*) FROM notes_fts WHERE notes_fts MATCH 'zeppelin'")
            ).scalar()
        assert hits == 0

    def test_stale_id_at_same_path_is_replaced(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            upsert_note(conn, _doc("0000000a", "a.md"))
        with db_engine.begin() as conn:
            stale = upsert_note(conn, _doc("0000000b", "a.md"))
        assert stale == "0000000a"
        assert _count(db_engine, notes) == 1

    def test_metadata_is_json(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            upsert_note(conn, _doc("0000000a", "a.md", date="2024-02-03"))
        with db_engine.connect() as conn:
            value = conn.execute(
                text("SELECT json_extract(metadata, '$.date') FROM notes")
            ).scalar()
        assert value == "2024-02-03"


class TestDeleteNotes:
    def test_removes_rows_tags_and_links(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            upsert_note(conn, _doc("0000000a", "a.md", "#t"))
            upsert_note(conn, _doc("0000000b", "b.md"))
            upsert_links(conn, "0000000a", [LinkEdge("0000000b", "wiki", "B")])
            upsert_links(conn, "0000000b", [LinkEdge("0000000a", "wiki", "A")])
        with db_engine.begin() as conn:
            assert delete_notes(conn, ["0000000a"]) == 1
        assert _count(db_engine, notes) == 1
        assert _count(db_engine, tags) == 0
        assert _count(db_engine, links) == 0

    def test_empty(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            assert delete_notes(conn, []) == 0


class TestUpsertLinks:
    def test_replaces_edge_set(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            upsert_links(conn, "0000000a", [LinkEdge("0000000b", "wiki", "B")])
            stored = upsert_links(
                conn,
                "0000000a",
                [LinkEdge("0000000c", "markdown", "c.md"), LinkEdge(None, "wiki", "Nowhere")],
            )
        assert stored == 2
        with db_engine.connect() as conn:
            rows = conn.execute(select(links.c.target_id, links.c.reference)).all()
        assert sorted(rows, key=lambda r: r.reference) == [(None, "Nowhere"), ("0000000c", "c.md")]

    def test_dedupes(self) -> None:
        edges = [
            LinkEdge("0000000b", "wiki", "B"),
            LinkEdge("0000000b", "wiki", "Beta"),
            LinkEdge("0000000b", "markdown", "b.md"),
            LinkEdge(None, "wiki", "X"),
            LinkEdge(None, "wiki", "X"),
            LinkEdge(None, "wiki", "Y"),
        ]
        assert len(dedupe_edges(edges)) == 4
