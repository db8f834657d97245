"""Shared pytest fixtures and test helpers for zettelhub tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from zettelhub.config.settings import ZhSettings
from zettelhub.infrastructure.database.engine import init_database
from zettelhub.infrastructure.vault import Vault
from zettelhub.services.telemetry import disable_telemetry


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's ZH_* environment out of the tests."""
    monkeypatch.delenv("ZH_CONFIG", raising=False)


@pytest.fixture(autouse=True)
def _restore_global_state() -> Generator[None]:
    """Undo logging and telemetry setup done by CLI invocations."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    zh_level = logging.getLogger("zettelhub").level
    yield
    root.handlers = handlers
    root.setLevel(level)
    logging.getLogger("zettelhub").setLevel(zh_level)
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def notebook_root(tmp_path: Path) -> Path:
    """Temporary notebook directory.

    All notebook fixtures (vault, _isolated_notebook) build on this one.
    """
    root = tmp_path / "notebook"
    root.mkdir()
    return root


def make_settings(root: Path, **overrides: Any) -> ZhSettings:
    """Settings for *root* with optional section overrides."""
    return ZhSettings(notebook_root=root, **overrides)


@pytest.fixture
def vault(notebook_root: Path) -> Generator[Vault]:
    """Vault over an empty temporary notebook."""
    v = Vault(make_settings(notebook_root))
    try:
        yield v
    finally:
        v.close()


@pytest.fixture
def _isolated_notebook(notebook_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp notebook so the CLI works on it.

    Use via ``@pytest.mark.usefixtures("_isolated_notebook")`` on command
    test classes.
    """
    monkeypatch.chdir(notebook_root)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def write_note(
    root: Path,
    rel_path: str,
    body: str = "",
    *,
    note_id: str | None = None,
    title: str | None = None,
    **frontmatter: Any,
) -> Path:
    """Write a note file with simple front matter and return its path."""
    lines: list[str] = []
    if note_id is not None:
        lines.append(f'id: "{note_id}"')
    if title is not None:
        lines.append(f"title: {title}")
    for key, value in frontmatter.items():
        if isinstance(value, list):
            lines.append(f"{key}:")
            lines.extend(f"  - {item}" for item in value)
        else:
            lines.append(f"{key}: {value}")
    header = "---\n" + "".join(f"{line}\n" for line in lines) + "---\n" if lines else ""
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(header + body, encoding="utf-8")
    return path


def reindex(vault: Vault) -> dict[str, Any]:
    """Run a full reindex, asserting success."""
    from zettelhub.services.index import IndexService

    result = IndexService(vault).reindex_all()
    assert result.ok, result.error
    return result.data
