"""Root CLI group for zh with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from zettelhub import __version__
from zettelhub.commands import register_commands
from zettelhub.commands._context import AppContext
from zettelhub.config.settings import ZhSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="zh")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output (ids only).")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and timing details.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Config file to use.")
@click.option(
    "--notebook",
    "notebook_root",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Notebook root directory (default: config location or CWD).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    notebook_root: Path | None,
) -> None:
    """Index and search a folder of Markdown notes."""
    settings = ZhSettings.from_cli(
        config_path=config_path,
        notebook_root=notebook_root,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
