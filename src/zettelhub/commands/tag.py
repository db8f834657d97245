"""Commands: edit front matter tags.

Notes are found through the index, so these fail with
``INDEX_NOT_BUILT`` until ``zh reindex`` has run.  Edited files are
re-indexed straight away.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from zettelhub.commands._base import ZhGroup

if TYPE_CHECKING:
    from zettelhub.commands._context import AppContext


@click.group(
    cls=ZhGroup,
    examples="""\
  zh tag add work 3fa9c2d1
  zh tag remove work 'Project Alpha'
  zh tag rename old-tag new-tag
  zh --json tag rename Draft draft""",
)
def tag() -> None:
    """Add, remove, or rename front matter tags."""


@tag.command(
    examples="""\
  zh tag add work 3fa9c2d1
  zh tag add '#research' 'Project Alpha'""",
)
@click.argument("tag_name", metavar="TAG")
@click.argument("reference")
@click.pass_obj
def add(app: AppContext, tag_name: str, reference: str) -> None:
    """Add TAG to the note REFERENCE resolves to."""
    from zettelhub.services.tags import TagService

    with app.store_errors("tag_add"):
        app.emit(TagService(app.read_vault).add_tag(reference, tag_name))


@tag.command(
    examples="""\
  zh tag remove work 3fa9c2d1""",
)
@click.argument("tag_name", metavar="TAG")
@click.argument("reference")
@click.pass_obj
def remove(app: AppContext, tag_name: str, reference: str) -> None:
    """Remove TAG from the note REFERENCE resolves to."""
    from zettelhub.services.tags import TagService

    with app.store_errors("tag_remove"):
        app.emit(TagService(app.read_vault).remove_tag(reference, tag_name))


@tag.command(
    examples="""\
  zh tag rename old-tag new-tag
  zh -q tag rename project/alpha project/apollo""",
)
@click.argument("old")
@click.argument("new")
@click.pass_obj
def rename(app: AppContext, old: str, new: str) -> None:
    """Replace tag OLD with NEW in every note that has it in front matter.

    Inline #hashtags in note bodies are not rewritten.
    """
    from zettelhub.services.tags import TagService

    with app.store_errors("tag_rename"):
        app.emit(TagService(app.read_vault).rename_tag(old, new))
