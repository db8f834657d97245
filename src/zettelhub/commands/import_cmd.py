"""Command: import external notes with consistent id remapping."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click
from jinja2 import TemplateSyntaxError

from zettelhub.commands._base import ZhCommand

if TYPE_CHECKING:
    from zettelhub.commands._context import AppContext


@click.command(
    "import",
    cls=ZhCommand,
    examples="""\
  zh import ~/old-notes -r --dry-run
  zh import ~/old-notes -r --into archive
  zh import a.md b.md --template "{{ date }}/{{ slug }}.md"
  zh --json import ~/old-notes -r --dry-run""",
)
@click.argument(
    "paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@click.option("-r", "--recursive", is_flag=True, help="Descend into subdirectories.")
@click.option("--into", "target_dir", default=None, help="Destination directory in the notebook.")
@click.option(
    "--template", "path_template", default=None, help="Destination path template (Jinja2)."
)
@click.option("--dry-run", is_flag=True, help="Show the planned changes without writing.")
@click.pass_obj
def import_cmd(
    app: AppContext,
    paths: tuple[Path, ...],
    recursive: bool,
    target_dir: str | None,
    path_template: str | None,
    dry_run: bool,
) -> None:
    """Import note files, giving each a new id.

    Links between the imported files are rewritten to the new ids and
    paths.  Links to anything outside the batch are left as they are.

    Import is not idempotent: every run assigns fresh ids, so importing
    the same files twice creates duplicate notes.
    """
    from zettelhub.infrastructure.filesystem import collect_sources
    from zettelhub.services.importer import ImportService, TemplateDestinationRule

    cfg = app.settings.import_
    try:
        rule = TemplateDestinationRule(
            target_dir if target_dir is not None else cfg.target_dir,
            path_template or cfg.path_template,
            cfg.slug_replacement,
        )
    except TemplateSyntaxError as exc:
        raise click.BadParameter(str(exc), param_hint="--template") from exc
    sources = collect_sources(
        paths, recursive=recursive, extensions=app.settings.index.extensions
    )
    with app.store_errors("import"):
        app.emit(
            ImportService(app.vault).import_batch(
                sources, destination_rule=rule, dry_run=dry_run
            )
        )
