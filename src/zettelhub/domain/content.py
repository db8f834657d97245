"""Front matter parsing and rendering.

Front matter is kept as a ruamel.yaml round-trip mapping so that a
rewrite (id replacement, backlinks refresh) never disturbs key order,
comments, or quoting of keys the engine does not own.  Only a handful
of well-known keys are ever read: ``id``, ``title``, ``type``,
``tags``, ``aliases`` and ``description``.
"""

from __future__ import annotations

from datetime import date, datetime
from io import StringIO
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError
from ruamel.yaml.nodes import MappingNode, ScalarNode
from ruamel.yaml.scalarstring import DoubleQuotedScalarString

# Dynamic front matter value: scalars, sequences, and nested mappings.
type FrontmatterValue = (
    str | int | float | bool | date | datetime | None | list[FrontmatterValue]
    | dict[str, FrontmatterValue]
)
type Frontmatter = dict[str, FrontmatterValue]

_FRONTMATTER_DELIMITER = "---"


class ParseError(ValueError):
    """A note's structured header is malformed or the file is unreadable."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path

    @property
    def reason(self) -> str:
        return str(self.args[0]) if self.args else ""

    def __str__(self) -> str:
        base = super().__str__()
        return f"{self.path}: {base}" if self.path else base


# ---------------------------------------------------------------------------
# YAML parser (round-trip preserves comments and quote styles)
# ---------------------------------------------------------------------------


def _new_yaml() -> YAML:
    """Create a fresh round-trip YAML parser.

    ruamel.yaml's YAML object is stateful; a failed dump can leave a
    shared instance broken, so every call gets its own.
    """
    y = YAML()
    y.preserve_quotes = True
    y.default_flow_style = False
    y.width = 4096
    return y


# ---------------------------------------------------------------------------
# Parsing / rendering
# ---------------------------------------------------------------------------


def split_frontmatter(content: str) -> tuple[str | None, str]:
    """Split *content* into ``(yaml_block, body)`` without parsing YAML.

    Returns ``(None, content)`` when the document has no front matter
    block (no leading ``---`` line, or the block is never closed).
    CRLF line endings are normalized.
    """
    normalized = content.replace("\r\n", "\n")
    lines = normalized.split("\n")
    if not lines or lines[0].strip() != _FRONTMATTER_DELIMITER:
        return None, normalized

    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == _FRONTMATTER_DELIMITER:
            return "\n".join(lines[1:i]), "\n".join(lines[i + 1 :])
    return None, normalized


def parse_frontmatter(content: str) -> tuple[CommentedMap, str]:
    """Parse YAML front matter and body from markdown content.

    The body is returned verbatim (everything after the closing
    delimiter line), so :func:`render_frontmatter` reproduces the
    original document byte for byte when nothing changed.

    Raises:
        ParseError: If the YAML block is malformed or is not a mapping.
    """
    yaml_block, body = split_frontmatter(content)
    if yaml_block is None:
        return CommentedMap(), body

    try:
        loaded = _new_yaml().load(yaml_block)
    except YAMLError as exc:
        msg = f"malformed front matter: {exc}".splitlines()[0]
        raise ParseError(msg) from exc

    if loaded is None:
        return CommentedMap(), body
    if not isinstance(loaded, dict):
        msg = f"front matter must be a mapping, got {type(loaded).__name__}"
        raise ParseError(msg)
    return loaded, body


def frontmatter_scalar_text(content: str, key: str) -> str | None:
    """Source text of the top-level scalar *key* in the front matter of *content*.

    The loaded value of an unquoted scalar is typed by YAML, so
    ``12345e67`` comes back as a float and ``00001234`` as an int.  The
    composed node still holds the characters as written.  Returns None
    when there is no such key or its value is not a scalar.
    """
    yaml_block, _ = split_frontmatter(content)
    if yaml_block is None:
        return None
    try:
        root = _new_yaml().compose(yaml_block)
    except YAMLError:
        return None
    if not isinstance(root, MappingNode):
        return None
    for key_node, value_node in root.value:
        if isinstance(key_node, ScalarNode) and key_node.value == key:
            return value_node.value if isinstance(value_node, ScalarNode) else None
    return None


def render_frontmatter(frontmatter: dict[str, Any], body: str) -> str:
    """Render a front matter mapping and body text into markdown.

    Key order is taken from *frontmatter* as-is.  An empty mapping
    renders the body alone.
    """
    if not frontmatter:
        return body
    buf = StringIO()
    _new_yaml().dump(frontmatter, buf)
    return f"{_FRONTMATTER_DELIMITER}\n{buf.getvalue()}{_FRONTMATTER_DELIMITER}\n{body}"


def set_frontmatter_id(frontmatter: dict[str, Any], new_id: str) -> CommentedMap:
    """Return *frontmatter* with ``id`` set to *new_id*.

    An existing ``id`` key keeps its position; a missing one is inserted
    first.  The id is always written double-quoted so YAML never reads
    an all-digit id back as a number.
    """
    value = DoubleQuotedScalarString(new_id)
    if isinstance(frontmatter, CommentedMap):
        if "id" in frontmatter:
            frontmatter["id"] = value
        else:
            frontmatter.insert(0, "id", value)
        return frontmatter

    updated = CommentedMap()
    updated["id"] = value
    for key, val in frontmatter.items():
        if key != "id":
            updated[key] = val
    return updated


def to_plain(value: Any) -> FrontmatterValue:
    """Convert round-trip YAML values into JSON-serializable Python values.

    Dates become ISO strings; ruamel scalar subclasses become builtins.
    """
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bool):
        return bool(value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return float(value)
    if isinstance(value, str):
        return str(value)
    if value is None:
        return None
    return str(value)


def string_list(value: Any) -> list[str]:
    """Normalize a string-or-sequence front matter value to a list of strings.

    Empty entries are dropped; order is preserved; duplicates are removed.
    """
    if value is None:
        return []
    items = [value] if isinstance(value, (str, int, float)) else value
    if not isinstance(items, (list, tuple)):
        return []
    result: list[str] = []
    for item in items:
        if item is None or isinstance(item, (dict, list)):
            continue
        text = str(item).strip()
        if text and text not in result:
            result.append(text)
    return result
