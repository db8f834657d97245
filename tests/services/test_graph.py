"""Tests for GraphService — link neighbourhoods and DOT output."""

from __future__ import annotations

import pytest

from tests.conftest import reindex, write_note
from zettelhub.infrastructure.vault import Vault
from zettelhub.services.graph import GraphService, to_dot
from zettelhub.services.result import ErrorCode

A, B, C, D = "0000000a", "0000000b", "0000000c", "0000000d"


@pytest.fixture
def chain(vault: Vault) -> Vault:
    """D -> A -> B -> C, plus a broken link from A."""
    write_note(vault.root, "a.md", "[[Beta]] [[Ghost]]", note_id=A, title="Alpha")
    write_note(vault.root, "b.md", "[c](c.md)", note_id=B, title="Beta")
    write_note(vault.root, "c.md", note_id=C, title="Gamma")
    write_note(vault.root, "d.md", "[[Alpha]]", note_id=D, title="Delta")
    reindex(vault)
    return vault


class TestNeighbourhood:
    def test_depth_one_follows_both_directions(self, chain: Vault) -> None:
        result = GraphService(chain).neighbourhood("Alpha")
        assert result.ok
        nodes = [(n["id"], n["distance"], n["broken"]) for n in result.data["nodes"]]
        assert nodes == [(A, 0, False), (B, 1, False), (D, 1, False), ("?Ghost", 1, True)]
        edges = [(e["source"], e["target"]) for e in result.data["edges"]]
        assert edges == [(A, B), (A, "?Ghost"), (D, A)]

    def test_depth_two(self, chain: Vault) -> None:
        result = GraphService(chain).neighbourhood(A, depth=2)
        assert {n["id"] for n in result.data["nodes"]} == {A, B, C, D, "?Ghost"}
        assert result.data["depth"] == 2
        c_node = next(n for n in result.data["nodes"] if n["id"] == C)
        assert c_node["distance"] == 2
        assert c_node["title"] == "Gamma"

    def test_depth_is_clamped(self, chain: Vault) -> None:
        assert GraphService(chain).neighbourhood(A, depth=0).data["depth"] == 1
        assert GraphService(chain).neighbourhood(A, depth=99).data["depth"] == 5

    def test_edge_link_types(self, chain: Vault) -> None:
        edges = GraphService(chain).neighbourhood("Beta").data["edges"]
        assert {(e["source"], e["target"]): e["link_types"] for e in edges} == {
            (A, B): ["wiki"],
            (B, C): ["markdown"],
        }

    def test_not_found(self, chain: Vault) -> None:
        result = GraphService(chain).neighbourhood("Nobody")
        assert not result.ok
        assert result.error.code == ErrorCode.NOT_FOUND

    def test_dot_included(self, chain: Vault) -> None:
        dot = GraphService(chain).neighbourhood("Alpha").data["dot"]
        assert dot.startswith("digraph notes {")
        assert f'"{A}" -> "{B}" [label="wiki"];' in dot
        assert '"?Ghost" [label="Ghost", style=dashed];' in dot


class TestToDot:
    def test_quotes_and_center(self) -> None:
        nodes = [
            {"id": A, "title": 'Say "hi"', "broken": False},
            {"id": B, "title": "", "broken": False},
        ]
        edges = [{"source": A, "target": B, "link_types": ["markdown", "wiki"]}]
        dot = to_dot(A, nodes, edges)
        assert f'"{A}" [label="Say \\"hi\\"", style=bold];' in dot
        assert f'"{B}" [label="{B}"];' in dot
        assert 'label="markdown,wiki"' in dot
        assert dot.endswith("}")
