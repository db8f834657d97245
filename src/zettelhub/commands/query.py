"""Read-only commands over the index.

None of these create an index: without one they fail with
``INDEX_NOT_BUILT``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from zettelhub.commands._base import ZhCommand

if TYPE_CHECKING:
    from zettelhub.commands._context import AppContext


@click.command(
    cls=ZhCommand,
    examples="""\
  zh resolve 3fa9c2d1
  zh resolve "Project Alpha"
  zh -q resolve alpha""",
)
@click.argument("reference")
@click.pass_obj
def resolve(app: AppContext, reference: str) -> None:
    """Resolve an id, title, or alias to a note."""
    from zettelhub.services.query import QueryService

    with app.store_errors("resolve"):
        app.emit(QueryService(app.read_vault).resolve_reference(reference))


@click.command(
    cls=ZhCommand,
    examples="""\
  zh show 3fa9c2d1
  zh --json show 'Project Alpha'""",
)
@click.argument("reference")
@click.pass_obj
def show(app: AppContext, reference: str) -> None:
    """Show a note with its metadata, tags, and link counts."""
    from zettelhub.services.query import QueryService

    with app.store_errors("get"):
        app.emit(QueryService(app.read_vault).get(reference))


@click.command(
    cls=ZhCommand,
    examples="""\
  zh links 3fa9c2d1
  zh --json links 'Project Alpha'""",
)
@click.argument("reference")
@click.pass_obj
def links(app: AppContext, reference: str) -> None:
    """List a note's outgoing links, broken ones included."""
    from zettelhub.services.query import QueryService

    with app.store_errors("links"):
        app.emit(QueryService(app.read_vault).outgoing_links(reference))


@click.command(
    cls=ZhCommand,
    examples="""\
  zh backlinks 3fa9c2d1
  zh -q backlinks 'Project Alpha'""",
)
@click.argument("reference")
@click.pass_obj
def backlinks(app: AppContext, reference: str) -> None:
    """List the notes that link to a note."""
    from zettelhub.services.query import QueryService

    with app.store_errors("backlinks"):
        app.emit(QueryService(app.read_vault).incoming_links(reference))


@click.command(
    cls=ZhCommand,
    examples="""\
  zh search "graph database"
  zh search index --type reference --tag research
  zh search --date 2024-03
  zh search --date 2024-01-01:2024-06-30 --path projects/
  zh --json search '"exact phrase"' --limit 5""",
)
@click.argument("query", required=False, default="")
@click.option("--type", "note_type", default=None, help="Only notes of this type.")
@click.option("--tag", default=None, help="Only notes carrying this tag.")
@click.option("--date", default=None, help="YYYY-MM-DD, YYYY-MM, or START:END.")
@click.option("--path", "path_pattern", default=None, help="Path substring or * pattern.")
@click.option("--limit", default=None, type=click.IntRange(min=1), help="Maximum results.")
@click.pass_obj
def search(
    app: AppContext,
    query: str,
    note_type: str | None,
    tag: str | None,
    date: str | None,
    path_pattern: str | None,
    limit: int | None,
) -> None:
    """Full-text search, ranked by relevance.

    QUERY may be omitted when at least one filter is given.
    """
    from zettelhub.services.query import QueryService

    with app.store_errors("search"):
        app.emit(
            QueryService(app.read_vault).search(
                query,
                note_type=note_type,
                tag=tag,
                date=date,
                path=path_pattern,
                limit=limit,
            )
        )


@click.command(
    cls=ZhCommand,
    examples="""\
  zh tags
  zh tags --source frontmatter
  zh -q tags""",
)
@click.option(
    "--source",
    type=click.Choice(["frontmatter", "body"]),
    default=None,
    help="Only tags from front matter or from inline #hashtags.",
)
@click.pass_obj
def tags(app: AppContext, source: str | None) -> None:
    """List tags with their note counts."""
    from zettelhub.services.query import QueryService

    with app.store_errors("tags"):
        app.emit(QueryService(app.read_vault).list_tags(source=source))
