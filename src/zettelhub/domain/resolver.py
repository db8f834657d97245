"""Reference resolution shared by live indexing and batch import.

:func:`resolve_reference` is written once against the
:class:`ReferenceLookup` protocol.  The index store implements it with
SQL lookups; the batch importer implements it with in-memory maps built
before any file is rewritten, so both paths resolve a reference the
same way.
"""

from __future__ import annotations

import posixpath
from typing import Protocol
from urllib.parse import unquote

NOTE_EXTENSION = ".md"


class ReferenceLookup(Protocol):
    """Lookups a reference resolver needs from its backing catalogue."""

    def known_id(self, reference: str) -> str | None: ...

    def id_for_title(self, title: str) -> str | None: ...

    def id_for_alias(self, alias: str) -> str | None: ...

    def id_for_title_casefold(self, folded_title: str) -> str | None: ...


def resolve_reference(reference: str, lookup: ReferenceLookup) -> str | None:
    """Resolve a wiki-style *reference* to a note id.

    Resolution order (first match wins):

    1. Exact id (the lookup decides which references can be ids)
    2. Exact title
    3. Exact alias
    4. Case-insensitive title

    Returns None for an unresolvable reference; a broken link is a
    normal outcome, not an error.
    """
    ref = reference.strip()
    if ref.startswith("@"):
        ref = ref[1:].strip()
    if not ref:
        return None

    return (
        lookup.known_id(ref)
        or lookup.id_for_title(ref)
        or lookup.id_for_alias(ref)
        or lookup.id_for_title_casefold(ref.casefold())
    )


# ---------------------------------------------------------------------------
# Path helpers (POSIX paths relative to the notebook root)
# ---------------------------------------------------------------------------


def extension_variants(path: str) -> list[str]:
    """*path* plus the variant with the note extension added or removed."""
    if path.lower().endswith(NOTE_EXTENSION):
        return [path, path[: -len(NOTE_EXTENSION)]]
    return [path, f"{path}{NOTE_EXTENSION}"]


def markdown_target_candidates(target: str, source_rel_path: str) -> list[str]:
    """Notebook-relative paths a markdown link *target* may refer to.

    The target is percent-decoded and normalized against the source
    note's directory; a leading ``/`` anchors it at the notebook root.
    Targets that escape the root yield no candidates.  A plain target
    (no ``..``) also tries the notebook root as a fallback.
    """
    decoded = unquote(target.strip())
    if not decoded:
        return []

    bases: list[str] = []
    if decoded.startswith("/"):
        bases.append(posixpath.normpath(decoded.lstrip("/")))
    else:
        source_dir = posixpath.dirname(source_rel_path)
        bases.append(posixpath.normpath(posixpath.join(source_dir, decoded)))
        if ".." not in decoded.split("/"):
            bases.append(posixpath.normpath(decoded))

    candidates: list[str] = []
    for base in bases:
        if base == "." or base == ".." or base.startswith("../"):
            continue
        for variant in extension_variants(base):
            if variant not in candidates:
                candidates.append(variant)
    return candidates


def relative_link(from_rel_path: str, to_rel_path: str) -> str:
    """Link text pointing from the note at *from_rel_path* to *to_rel_path*."""
    start = posixpath.dirname(from_rel_path) or "."
    return posixpath.relpath(to_rel_path, start)
