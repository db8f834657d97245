"""Command: the link neighbourhood of a note."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from zettelhub.commands._base import ZhCommand

if TYPE_CHECKING:
    from zettelhub.commands._context import AppContext


@click.command(
    cls=ZhCommand,
    examples="""\
  zh graph 3fa9c2d1
  zh graph "Project Alpha" --depth 2
  zh graph alpha --format dot | dot -Tsvg > alpha.svg""",
)
@click.argument("reference")
@click.option(
    "--depth",
    default=None,
    type=click.IntRange(1, 5),
    help="Hops from the note (default from [graph] depth).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["ascii", "dot"]),
    default="ascii",
    help="Terminal listing or Graphviz DOT.",
)
@click.pass_obj
def graph(app: AppContext, reference: str, depth: int | None, fmt: str) -> None:
    """Show the notes linked to or from a note, up to --depth hops."""
    from zettelhub.services.graph import GraphService

    with app.store_errors("graph"):
        result = GraphService(app.read_vault).neighbourhood(
            reference, depth=depth or app.settings.graph.depth
        )
    if fmt == "dot" and result.ok and not app.settings.json_output:
        click.echo(result.data["dot"])
        return
    app.emit(result)
