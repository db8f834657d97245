"""Jinja2 environment for destination paths and generated sections."""

from __future__ import annotations

import re
import unicodedata
from typing import Any

from jinja2 import Environment, StrictUndefined

_NON_SLUG = re.compile(r"[^a-z0-9]+")

BACKLINKS_TEMPLATE = """\
## Backlinks

{% for item in backlinks -%}
- [{{ item.title | md_text }}]({{ item.href | md_href }})
{% endfor %}"""


def slugify(value: Any, replacement: str = "-") -> str:
    """ASCII slug of *value*.

    Examples:
        >>> slugify("Héllo, World!")
        'hello-world'
    """
    text = unicodedata.normalize("NFKD", str(value or "")).encode("ascii", "ignore").decode()
    slug = _NON_SLUG.sub(replacement, text.lower())
    return slug.strip(replacement) if replacement else slug


def _md_text(value: Any) -> str:
    return str(value).replace("\\", "\\\\").replace("]", "\\]")


def _md_href(value: Any) -> str:
    return str(value).replace("\\", "\\\\").replace(")", "\\)").replace(" ", "%20")


def build_template_environment(*, slug_replacement: str = "-") -> Environment:
    """Build the Jinja2 environment with the ``slugify`` and markdown filters.

    Undefined variables raise, so a typo in a configured path template
    fails loudly instead of producing an empty path segment.
    """
    env = Environment(
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters["slugify"] = lambda v, r=slug_replacement: slugify(v, r)
    env.filters["md_text"] = _md_text
    env.filters["md_href"] = _md_href
    return env


def render_backlinks_section(backlinks: list[dict[str, str]]) -> str:
    """Render a ``## Backlinks`` section from ``{title, href}`` items."""
    return build_template_environment().from_string(BACKLINKS_TEMPLATE).render(backlinks=backlinks)
