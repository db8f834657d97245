"""Tests for the lazily built link graph."""

from __future__ import annotations

from tests.conftest import reindex, write_note
from zettelhub.infrastructure.graph import broken_node_key
from zettelhub.infrastructure.vault import Vault


class TestGraphEngine:
    def test_nodes_and_edges(self, vault: Vault) -> None:
        write_note(vault.root, "a.md", "[[B]] [b](b.md) [[Ghost]]", note_id="0000000a", title="A")
        write_note(vault.root, "b.md", note_id="0000000b", title="B")
        reindex(vault)

        g = vault.graph.graph
        assert g.nodes["0000000a"]["title"] == "A"
        assert g.edges["0000000a", "0000000b"]["link_types"] == ["markdown", "wiki"]
        ghost = broken_node_key("Ghost")
        assert g.nodes[ghost]["broken"] is True
        assert g.has_edge("0000000a", ghost)

    def test_cached_until_invalidated(self, vault: Vault) -> None:
        first = vault.graph.graph
        assert vault.graph.graph is first
        vault.graph.invalidate()
        assert vault.graph.graph is not first
