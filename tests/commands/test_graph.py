"""Tests for the graph command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.conftest import write_note
from zettelhub.cli import cli


def _seed(runner: CliRunner, root: Path) -> None:
    write_note(root, "a.md", "[[B]]", note_id="0000000a", title="A")
    write_note(root, "b.md", "[[C]]", note_id="0000000b", title="B")
    write_note(root, "c.md", note_id="0000000c", title="C")
    assert runner.invoke(cli, ["reindex"]).exit_code == 0


@pytest.mark.usefixtures("_isolated_notebook")
class TestGraphCommand:
    def test_default_depth(self, cli_runner: CliRunner, notebook_root: Path) -> None:
        _seed(cli_runner, notebook_root)
        result = cli_runner.invoke(cli, ["--json", "graph", "A"])
        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["depth"] == 1
        assert [n["id"] for n in data["nodes"]] == ["0000000a", "0000000b"]

    def test_depth_option(self, cli_runner: CliRunner, notebook_root: Path) -> None:
        _seed(cli_runner, notebook_root)
        result = cli_runner.invoke(cli, ["-q", "graph", "A", "--depth", "2"])
        assert result.output.split() == ["0000000a", "0000000b", "0000000c"]

    def test_depth_from_config(self, cli_runner: CliRunner, notebook_root: Path) -> None:
        (notebook_root / "zettelhub.toml").write_text("[graph]\ndepth = 2\n")
        _seed(cli_runner, notebook_root)
        result = cli_runner.invoke(cli, ["--json", "graph", "A"])
        assert json.loads(result.output)["data"]["depth"] == 2

    def test_depth_out_of_range(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["graph", "A", "--depth", "9"])
        assert result.exit_code == 2

    def test_dot_format(self, cli_runner: CliRunner, notebook_root: Path) -> None:
        _seed(cli_runner, notebook_root)
        result = cli_runner.invoke(cli, ["graph", "B", "--format", "dot"])
        assert result.exit_code == 0
        assert result.output.startswith("digraph notes {")
        assert '"0000000a" -> "0000000b"' in result.output

    def test_ascii_format(self, cli_runner: CliRunner, notebook_root: Path) -> None:
        _seed(cli_runner, notebook_root)
        result = cli_runner.invoke(cli, ["graph", "B"])
        assert result.exit_code == 0
        assert "--wiki-->" in result.output

    def test_not_found(self, cli_runner: CliRunner, notebook_root: Path) -> None:
        _seed(cli_runner, notebook_root)
        result = cli_runner.invoke(cli, ["graph", "Nobody", "--format", "dot"])
        assert result.exit_code == 1
        assert "ERROR" in result.output
