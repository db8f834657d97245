"""Tag domain logic — front matter tags and inline hashtags."""

from __future__ import annotations

import re
from typing import Any, Literal

from ruamel.yaml.comments import CommentedSeq

from zettelhub.domain.content import string_list

TagSource = Literal["frontmatter", "body"]

# #tag, #project/sub-area, not headings, anchors, or URL fragments.
_HASHTAG_PATTERN = re.compile(r"(?<![\w#/&(\[])#([A-Za-z][\w/-]*)")
_FENCED_CODE = re.compile(r"^(```|~~~).*?^\1[ \t]*$", re.MULTILINE | re.DOTALL)
_INLINE_CODE = re.compile(r"`[^`\n]*`")
_MARKDOWN_TARGET = re.compile(r"\]\([^()]*\)")


def normalize_tag(tag: str) -> str:
    """Strip whitespace, a leading ``#``, and trailing ``/`` separators.

    Examples:
        >>> normalize_tag(" #project/alpha/ ")
        'project/alpha'
    """
    return tag.strip().lstrip("#").rstrip("/").strip()


def frontmatter_tags(value: Any) -> list[str]:
    """Normalize a ``tags`` front matter value (string or list) to unique tags."""
    result: list[str] = []
    for raw in string_list(value):
        tag = normalize_tag(raw)
        if tag and tag not in result:
            result.append(tag)
    return result


def extract_hashtags(body: str) -> list[str]:
    """Return unique inline ``#hashtags`` in order of first appearance.

    Fenced code blocks, inline code spans, and link targets are ignored.
    """
    text = _FENCED_CODE.sub("", body)
    text = _INLINE_CODE.sub("", text)
    text = _MARKDOWN_TARGET.sub("]()", text)
    result: list[str] = []
    for match in _HASHTAG_PATTERN.finditer(text):
        tag = normalize_tag(match.group(1))
        if tag and tag not in result:
            result.append(tag)
    return result


def collect_tags(metadata: dict[str, Any], body: str) -> list[tuple[str, TagSource]]:
    """All ``(tag, source)`` pairs for a note.

    A tag declared in front matter and also used inline yields two pairs.
    """
    pairs: list[tuple[str, TagSource]] = [
        (tag, "frontmatter") for tag in frontmatter_tags(metadata.get("tags"))
    ]
    pairs.extend((tag, "body") for tag in extract_hashtags(body))
    return pairs


def edit_tags(
    current: list[str], *, add: str | None = None, remove: str | None = None
) -> list[str]:
    """Return *current* with *remove* dropped and *add* appended.

    Matching is casefolded.  Replacing in place of the removed tag keeps
    its position, and an added tag already present is not repeated.

    Examples:
        >>> edit_tags(["a", "Old", "b"], remove="old", add="new")
        ['a', 'new', 'b']
        >>> edit_tags(["a", "new"], remove="old", add="NEW")
        ['a', 'new']
    """
    result: list[str] = []
    for tag in current:
        if remove is not None and tag.casefold() == remove.casefold():
            if add is not None:
                result.append(add)
                add = None
            continue
        result.append(tag)
    if add is not None:
        result.append(add)
    unique: list[str] = []
    for tag in result:
        if tag.casefold() not in {t.casefold() for t in unique}:
            unique.append(tag)
    return unique


def set_frontmatter_tags(frontmatter: dict[str, Any], values: list[str]) -> None:
    """Store *values* as the ``tags`` list, keeping a flow-style list flow style.

    An empty list removes the key.
    """
    if not values:
        frontmatter.pop("tags", None)
        return
    current = frontmatter.get("tags")
    seq = CommentedSeq(values)
    if isinstance(current, CommentedSeq) and current.fa.flow_style():
        seq.fa.set_flow_style()
    frontmatter["tags"] = seq
