"""Tests for the per-operation Rich renderers."""

from __future__ import annotations

from typing import Any

from zettelhub.output.renderers import render_quiet, render_result
from zettelhub.services.result import ErrorCode, ServiceResult


def _ok(op: str, **data: Any) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=data)


class TestRenderQuiet:
    def test_items(self) -> None:
        result = _ok("search", items=[{"id": "0000000a"}, {"id": "0000000b"}])
        assert render_quiet(result) == "0000000a\n0000000b"

    def test_links_skip_broken(self) -> None:
        result = _ok("links", items=[{"id": "0000000a"}, {"id": None, "broken": True}])
        assert render_quiet(result) == "0000000a"

    def test_tags(self) -> None:
        result = _ok("tags", items=[{"tag": "x", "count": 2}, {"tag": "y", "count": 1}])
        assert render_quiet(result) == "x\ny"

    def test_graph_skips_broken_nodes(self) -> None:
        result = _ok(
            "graph",
            nodes=[{"id": "0000000a", "broken": False}, {"id": "?Ghost", "broken": True}],
        )
        assert render_quiet(result) == "0000000a"

    def test_indexed(self) -> None:
        assert render_quiet(_ok("index_file", indexed="0000000a")) == "0000000a"
        assert render_quiet(_ok("reindex", indexed=3)) == "3"

    def test_nothing_to_print(self) -> None:
        assert render_quiet(_ok("relink")) == ""


class TestRenderResult:
    def test_error(self) -> None:
        result = ServiceResult.failure(
            "reindex",
            ErrorCode.PARSE_ERROR,
            "Cannot parse a.md",
            data={"failures": [{"path": "a.md", "reason": "bad yaml"}]},
        )
        output = render_result(result)
        assert output.startswith("ERROR  reindex: Cannot parse a.md")
        assert "skipped a.md: bad yaml" in output

    def test_error_detail_only_when_verbose(self) -> None:
        result = ServiceResult.failure("resolve", ErrorCode.NOT_FOUND, "nope", reference="x")
        assert "reference: x" not in render_result(result)
        assert "reference: x" in render_result(result, verbose=True)

    def test_reindex(self) -> None:
        result = _ok(
            "reindex",
            found=3,
            indexed=2,
            skipped=1,
            removed=0,
            links=4,
            unresolved=1,
            ids_written=0,
            failures=[{"path": "bad.md", "reason": "malformed"}],
            failures_omitted=2,
        )
        output = render_result(result)
        assert "found: 3" in output
        assert "skipped bad.md: malformed" in output
        assert "... and 2 more" in output

    def test_import_dry_run(self) -> None:
        result = _ok(
            "import",
            dry_run=True,
            count=1,
            items=[
                {
                    "source": "/old/a.md",
                    "id": "0000000a",
                    "destination": "0000000a-a.md",
                    "changes": ["wikilink [[B]] -> [[0000000b]]"],
                    "ambiguous": [{"target": "n.md", "candidates": ["/old/x/n.md", "/old/y/n.md"]}],
                }
            ],
            failures=[],
        )
        output = render_result(result)
        assert "(dry run, nothing written)" in output
        assert "0000000a  /old/a.md -> 0000000a-a.md" in output
        assert "wikilink [[B]] -> [[0000000b]]" in output
        assert "ambiguous (n.md): /old/x/n.md, /old/y/n.md" in output
        assert "indexed:" not in output

    def test_note_panel_keeps_brackets(self) -> None:
        result = _ok(
            "get",
            id="0000000a",
            title="Draft [WIP]",
            path="a.md",
            type="note",
            aliases=[],
            tags=[{"tag": "x", "source": "body"}, {"tag": "x", "source": "frontmatter"}],
            links_out=1,
            links_broken=0,
            links_in=0,
            body="See [[Beta]].",
        )
        output = render_result(result)
        assert "0000000a  Draft [WIP]" in output
        assert "tags: x" in output
        assert "See [[Beta]]." in output

    def test_links_table(self) -> None:
        result = _ok(
            "links",
            id="0000000a",
            title="A",
            count=2,
            broken=1,
            items=[
                {"id": "0000000b", "title": "B", "path": "b.md", "link_type": "wiki",
                 "reference": "B", "broken": False},
                {"id": None, "title": "", "path": None, "link_type": "wiki",
                 "reference": "Ghost", "broken": True},
            ],
        )
        output = render_result(result)
        assert "Target" in output
        assert "broken" in output
        assert "2 links, 1 broken" in output

    def test_backlinks_summary(self) -> None:
        output = render_result(_ok("backlinks", id="0000000a", title="A", count=0, items=[]))
        assert output.endswith("0 links")

    def test_search_score_column_only_when_ranked(self) -> None:
        ranked = _ok("search", count=1, items=[{"id": "0000000a", "title": "A", "score": -1.5}])
        listed = _ok("search", count=1, items=[{"id": "0000000a", "title": "A", "score": None}])
        assert "Score" in render_result(ranked)
        assert "-1.5000" in render_result(ranked)
        assert "Score" not in render_result(listed)

    def test_graph(self) -> None:
        result = _ok(
            "graph",
            id="0000000a",
            depth=1,
            nodes=[
                {"id": "0000000a", "title": "A", "broken": False, "distance": 0},
                {"id": "?Ghost", "title": "Ghost", "broken": True, "distance": 1},
            ],
            edges=[{"source": "0000000a", "target": "?Ghost", "link_types": ["wiki"]}],
        )
        output = render_result(result)
        assert "[1] ?Ghost (broken)" in output
        assert "0000000a  A  --wiki-->  ?Ghost (broken)" in output

    def test_generic_fallback(self) -> None:
        output = render_result(_ok("relink", relinked=["0000000a"], unresolved=0))
        assert "relinked: 0000000a" in output
        assert "unresolved: 0" in output


class TestTelemetryRendering:
    def test_meta_only_when_verbose(self) -> None:
        result = ServiceResult(
            ok=True,
            op="tags",
            data={"count": 0, "items": []},
            meta={
                "telemetry": {
                    "name": "QueryService.list_tags",
                    "duration_ms": 1.5,
                    "children": [
                        {"name": "sql", "duration_ms": 0.5, "annotations": {"rows": 0}}
                    ],
                }
            },
        )
        assert "QueryService.list_tags" not in render_result(result)
        verbose = render_result(result, verbose=True)
        assert "1.50ms  QueryService.list_tags" in verbose
        assert "0.50ms  sql  (rows=0)" in verbose
