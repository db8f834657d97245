"""Tests for database engine setup."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import text

from zettelhub.infrastructure.database import StoreUnavailable, init_database, open_database
from zettelhub.infrastructure.database.engine import db_path_for


class TestInitDatabase:
    def test_creates_private_dir_and_file(self, tmp_path: Path) -> None:
        engine = init_database(tmp_path)
        engine.dispose()
        assert db_path_for(tmp_path).is_file()
        assert db_path_for(tmp_path).parent.name == ".zh"

    def test_wal_mode(self, tmp_path: Path) -> None:
        engine = init_database(tmp_path)
        with engine.connect() as conn:
            mode = conn.execute(text("PRAGMA journal_mode")).scalar()
        engine.dispose()
        assert mode == "wal"

    def test_idempotent(self, tmp_path: Path) -> None:
        init_database(tmp_path).dispose()
        engine = init_database(tmp_path)
        with engine.connect() as conn:
            assert conn.execute(text("SELECT count(*) FROM notes")).scalar() == 0
        engine.dispose()

    def test_custom_location(self, tmp_path: Path) -> None:
        init_database(tmp_path, ".index", "notes.sqlite").dispose()
        assert (tmp_path / ".index" / "notes.sqlite").is_file()

    def test_casefold_function(self, tmp_path: Path) -> None:
        engine = init_database(tmp_path)
        with engine.connect() as conn:
            assert conn.execute(text("SELECT casefold('StraSSE')")).scalar() == "strasse"
        engine.dispose()

    def test_corrupt_file(self, tmp_path: Path) -> None:
        path = db_path_for(tmp_path)
        path.parent.mkdir()
        path.write_bytes(b"this is not a database" * 100)
        with pytest.raises(StoreUnavailable) as excinfo:
            init_database(tmp_path)
        assert excinfo.value.reason == "corrupt"


class TestOpenDatabase:
    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(StoreUnavailable) as excinfo:
            open_database(tmp_path)
        assert excinfo.value.reason == "missing"
        assert not (tmp_path / ".zh").exists()

    def test_existing(self, tmp_path: Path) -> None:
        init_database(tmp_path).dispose()
        engine = open_database(tmp_path)
        engine.dispose()

    def test_foreign_sqlite_file_is_corrupt(self, tmp_path: Path) -> None:
        import sqlite3

        path = db_path_for(tmp_path)
        path.parent.mkdir()
        with sqlite3.connect(path) as conn:
            conn.execute("CREATE TABLE other (x INTEGER)")
        with pytest.raises(StoreUnavailable) as excinfo:
            open_database(tmp_path)
        assert excinfo.value.reason == "corrupt"
