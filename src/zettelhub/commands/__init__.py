"""Subcommand modules for zh.

:func:`register_commands` imports command modules lazily so
``zh --help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Attach every command to the root group."""
    # --- Indexing ---
    from zettelhub.commands.import_cmd import import_cmd
    from zettelhub.commands.indexing import index, reindex

    cli.add_command(reindex)
    cli.add_command(index)
    cli.add_command(import_cmd)

    # --- Editing ---
    from zettelhub.commands.tag import tag

    cli.add_command(tag)

    # --- Queries ---
    from zettelhub.commands.graph import graph
    from zettelhub.commands.query import backlinks, links, resolve, search, show, tags

    cli.add_command(resolve)
    cli.add_command(show)
    cli.add_command(links)
    cli.add_command(backlinks)
    cli.add_command(search)
    cli.add_command(tags)
    cli.add_command(graph)
