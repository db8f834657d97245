"""Commands: rebuild the index or index a single file."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from zettelhub.commands._base import ZhCommand

if TYPE_CHECKING:
    from zettelhub.commands._context import AppContext


@click.command(
    cls=ZhCommand,
    examples="""\
  zh reindex
  zh --notebook ~/notes reindex
  zh --json reindex | jq .data.failures""",
)
@click.pass_obj
def reindex(app: AppContext) -> None:
    """Scan the notebook and rebuild the index from files.

    Files that fail to parse are reported and skipped; index entries
    whose file no longer exists are removed.
    """
    from zettelhub.services.index import IndexService

    with app.store_errors("reindex"):
        app.emit(IndexService(app.vault).reindex_all())


@click.command(
    cls=ZhCommand,
    examples="""\
  zh index notes/idea.md
  zh --json index notes/idea.md""",
)
@click.argument("path", type=click.Path(path_type=Path, dir_okay=False))
@click.pass_obj
def index(app: AppContext, path: Path) -> None:
    """Index (or re-index) one note file."""
    from zettelhub.services.index import IndexService

    with app.store_errors("index_file"):
        app.emit(IndexService(app.vault).index_file(path))
