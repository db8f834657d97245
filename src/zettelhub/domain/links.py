"""Link extraction — wiki links and markdown inline links in body text.

Pure functions, no infrastructure dependencies.  Extraction is purely
syntactic: it never resolves a reference and never fails; malformed
bracket sequences are simply not matched.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

LinkType = Literal["wiki", "markdown"]

# [[Reference]] or [[Reference|Display Text]]
_WIKILINK_PATTERN = re.compile(r"\[\[([^\[\]]+)\]\]")

# [text](target) but not ![alt](image)
_MARKDOWN_LINK_PATTERN = re.compile(r"(?<!!)\[([^\[\]]*)\]\(([^()]*)\)")

# A URI scheme (http:, mailto:, obsidian:, ...) marks an external target.
_SCHEME_PATTERN = re.compile(r"^[a-z][a-z0-9+.-]*:", re.IGNORECASE)

_BACKLINKS_HEADING = re.compile(r"^## Backlinks[ \t]*$", re.MULTILINE)

BACKLINKS_HEADING = "## Backlinks"


@dataclass(frozen=True)
class ExtractedLink:
    """A single link occurrence extracted from body text."""

    reference: str  # wiki: reference before "|"; markdown: path part of the target
    link_type: LinkType
    display: str | None = None


@dataclass(frozen=True)
class MarkdownTarget:
    """A markdown link target split into path, fragment, and title suffix."""

    path: str
    fragment: str = ""  # includes the leading "#"
    suffix: str = ""  # e.g. ' "Link title"'
    angle: bool = False  # target was written as <...>

    def render(self, path: str) -> str:
        """Re-assemble the target around a replacement *path*."""
        target = f"{path}{self.fragment}"
        if self.angle or " " in target:
            target = f"<{target}>"
        return f"{target}{self.suffix}"


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def split_wiki_inner(inner: str) -> tuple[str, str | None]:
    """Split ``Reference|Display`` into its parts.

    A leading ``@`` (person alias) is stripped from the reference.
    """
    parts = inner.split("|", 1)
    reference = parts[0].strip()
    if reference.startswith("@"):
        reference = reference[1:].strip()
    display = parts[1].strip() if len(parts) > 1 else None
    return reference, display


def parse_markdown_target(raw: str) -> MarkdownTarget | None:
    """Parse the parenthesized part of ``[text](target)``.

    Returns None for targets that are not note references: URLs with a
    scheme, same-document anchors, and empty targets.
    """
    raw = raw.strip()
    angle = False
    suffix = ""
    if raw.startswith("<") and ">" in raw:
        end = raw.index(">")
        target, suffix = raw[1:end], raw[end + 1 :]
        angle = True
    else:
        pieces = raw.split(None, 1)
        if not pieces:
            return None
        target = pieces[0]
        if len(pieces) > 1:
            suffix = raw[len(target) :]

    if not target or target.startswith("#") or _SCHEME_PATTERN.match(target):
        return None

    path, hash_sign, fragment = target.partition("#")
    if not path:
        return None
    return MarkdownTarget(
        path=path,
        fragment=f"{hash_sign}{fragment}",
        suffix=suffix,
        angle=angle,
    )


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_wikilinks(body: str) -> list[ExtractedLink]:
    """Extract all ``[[wiki links]]`` in document order."""
    results: list[ExtractedLink] = []
    for match in _WIKILINK_PATTERN.finditer(body):
        reference, display = split_wiki_inner(match.group(1))
        if reference:
            results.append(ExtractedLink(reference=reference, link_type="wiki", display=display))
    return results


def extract_markdown_links(body: str) -> list[ExtractedLink]:
    """Extract ``[text](target)`` links that point at local files."""
    results: list[ExtractedLink] = []
    for match in _MARKDOWN_LINK_PATTERN.finditer(body):
        target = parse_markdown_target(match.group(2))
        if target is None:
            continue
        results.append(
            ExtractedLink(reference=target.path, link_type="markdown", display=match.group(1))
        )
    return results


def extract_links(body: str) -> list[ExtractedLink]:
    """Extract every wiki link followed by every markdown link in *body*."""
    return extract_wikilinks(body) + extract_markdown_links(body)


# ---------------------------------------------------------------------------
# Rewriting
# ---------------------------------------------------------------------------


def rewrite_links(
    body: str,
    *,
    wiki: Callable[[str, str | None], str | None] | None = None,
    markdown: Callable[[MarkdownTarget], str | None] | None = None,
) -> str:
    """Rewrite link occurrences in *body* via callbacks.

    ``wiki(reference, display)`` returns the new inner text of a
    ``[[...]]`` link; ``markdown(target)`` returns the new parenthesized
    target.  A callback returning None leaves that occurrence verbatim.
    """
    if wiki is not None:

        def _wiki(match: re.Match[str]) -> str:
            reference, display = split_wiki_inner(match.group(1))
            if not reference:
                return match.group(0)
            replacement = wiki(reference, display)
            return match.group(0) if replacement is None else f"[[{replacement}]]"

        body = _WIKILINK_PATTERN.sub(_wiki, body)

    if markdown is not None:

        def _markdown(match: re.Match[str]) -> str:
            target = parse_markdown_target(match.group(2))
            if target is None:
                return match.group(0)
            replacement = markdown(target)
            if replacement is None:
                return match.group(0)
            return f"[{match.group(1)}]({replacement})"

        body = _MARKDOWN_LINK_PATTERN.sub(_markdown, body)

    return body


def strip_backlinks_section(body: str) -> str:
    """Remove a generated ``## Backlinks`` section (and all that follows)."""
    match = _BACKLINKS_HEADING.search(body)
    if match is None:
        return body
    kept = body[: match.start()].rstrip()
    return f"{kept}\n" if kept else ""
