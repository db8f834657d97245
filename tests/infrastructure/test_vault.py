"""Tests for Vault and VaultTransaction."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import select

from tests.conftest import make_settings, write_note
from zettelhub.domain.notes import read_note
from zettelhub.infrastructure.database import StoreUnavailable
from zettelhub.infrastructure.database.schema import links, notes
from zettelhub.infrastructure.vault import Vault


class TestVaultLifecycle:
    def test_database_opened_lazily(self, notebook_root: Path) -> None:
        v = Vault(make_settings(notebook_root))
        assert not (notebook_root / ".zh").exists()
        assert v.engine is not None
        assert (notebook_root / ".zh" / "index.db").is_file()
        v.close()

    def test_read_only_vault_requires_index(self, notebook_root: Path) -> None:
        v = Vault(make_settings(notebook_root), create=False)
        with pytest.raises(StoreUnavailable):
            _ = v.query
        assert not (notebook_root / ".zh").exists()

    def test_paths(self, vault: Vault) -> None:
        assert vault.rel_path(vault.root / "a" / "b.md") == "a/b.md"
        assert vault.abs_path("a/b.md") == vault.root / "a" / "b.md"
        with pytest.raises(ValueError):
            vault.rel_path(vault.root.parent / "elsewhere.md")

    def test_find_notes_skips_private_dir(self, vault: Vault) -> None:
        write_note(vault.root, "a.md", "x")
        _ = vault.engine
        assert [p.name for p in vault.find_notes()] == ["a.md"]


class TestTransaction:
    def test_commit_writes_rows_and_files(self, vault: Vault) -> None:
        path = write_note(vault.root, "a.md", "[[Nowhere]]", note_id="0000000a", title="A")
        doc = read_note(path, vault.root)
        target = vault.root / "out.md"
        with vault.transaction() as txn:
            txn.upsert_note(doc)
            txn.upsert_links(doc.id, txn.resolve_links(doc))
            assert txn.write_file(target, "hello")
        assert target.read_text(encoding="utf-8") == "hello"
        with vault.engine.connect() as conn:
            assert conn.execute(select(notes.c.id)).scalars().all() == ["0000000a"]
            edge = conn.execute(select(links)).one()
        assert edge.target_id is None
        assert edge.reference == "Nowhere"

    def test_unchanged_write_is_skipped(self, vault: Vault) -> None:
        target = vault.root / "same.md"
        target.write_text("same", encoding="utf-8")
        with vault.transaction() as txn:
            assert not txn.write_file(target, "same")

    def test_rollback_restores_files_and_rows(self, vault: Vault) -> None:
        existing = vault.root / "existing.md"
        existing.write_text("original", encoding="utf-8")
        created = vault.root / "new" / "created.md"
        doc = read_note(write_note(vault.root, "a.md", note_id="0000000a"), vault.root)

        with pytest.raises(RuntimeError), vault.transaction() as txn:
            txn.upsert_note(doc)
            txn.write_file(existing, "changed")
            txn.write_file(created, "fresh")
            raise RuntimeError("boom")

        assert existing.read_text(encoding="utf-8") == "original"
        assert not created.exists()
        with vault.engine.connect() as conn:
            assert conn.execute(select(notes.c.id)).first() is None

    def test_resolve_links_sees_uncommitted_rows(self, vault: Vault) -> None:
        a = read_note(write_note(vault.root, "a.md", "[[B]]", note_id="0000000a"), vault.root)
        b = read_note(write_note(vault.root, "b.md", note_id="0000000b", title="B"), vault.root)
        with vault.transaction() as txn:
            txn.upsert_note(a)
            txn.upsert_note(b)
            edges = txn.resolve_links(a)
        assert [e.target_id for e in edges] == ["0000000b"]

    def test_graph_invalidated(self, vault: Vault) -> None:
        first = vault.graph.graph
        doc = read_note(write_note(vault.root, "a.md", note_id="0000000a"), vault.root)
        with vault.transaction() as txn:
            txn.upsert_note(doc)
        assert vault.graph.graph is not first
        assert "0000000a" in vault.graph.graph
