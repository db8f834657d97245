"""Rich Console factory and theme for zh output.

Consoles render into a StringIO buffer so renderers return plain
strings; Rich drops color codes when it is not writing to a terminal.
Markup is off: note titles and link text often contain brackets.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

ZH_THEME = Theme(
    {
        "zh.ok": "bold green",
        "zh.error": "bold red",
        "zh.warning": "bold yellow",
        "zh.op": "bold cyan",
        "zh.key": "dim",
        "zh.id": "bold blue",
        "zh.path": "dim",
        "zh.title": "bold",
        "zh.tag": "magenta",
        "zh.broken": "red",
        "zh.score": "magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Console writing to an in-memory buffer."""
    return Console(
        file=StringIO(),
        theme=ZH_THEME,
        no_color=no_color,
        highlight=False,
        markup=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
