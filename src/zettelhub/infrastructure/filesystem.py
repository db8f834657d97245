"""Filesystem operations for notebook content.

INVARIANT: Files are truth. The filesystem is authoritative.
The DB is a derived index. ``zh reindex`` must always be able to
reconstruct the DB from files alone.

Pure parsing/rendering utilities live in :mod:`zettelhub.domain`
(correct dependency direction: infrastructure -> domain). This module
handles file discovery.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

DEFAULT_EXTENSIONS: tuple[str, ...] = (".md",)


def _is_excluded(rel_parts: tuple[str, ...], skip_dirs: frozenset[str]) -> bool:
    # Only directory components count; the file name itself is never excluded.
    return any(part in skip_dirs for part in rel_parts[:-1])


def find_note_files(
    root: Path,
    *,
    private_dir: str = ".zh",
    exclude_dirs: Iterable[str] = (),
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> list[Path]:
    """Discover all note files under *root*, sorted by path.

    The engine's private directory is always skipped, along with any
    directory named in *exclude_dirs* at any depth.
    """
    skip_dirs = frozenset({private_dir, *exclude_dirs})
    suffixes = {ext.lower() for ext in extensions}
    results: list[Path] = []
    for path in root.rglob("*"):
        if path.suffix.lower() not in suffixes or not path.is_file():
            continue
        if _is_excluded(path.relative_to(root).parts, skip_dirs):
            continue
        results.append(path)
    return sorted(results)


def collect_sources(
    paths: Iterable[Path],
    *,
    recursive: bool = True,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> list[Path]:
    """Expand files and directories into a de-duplicated list of note files.

    Order follows the arguments; files inside a directory are sorted.
    """
    suffixes = {ext.lower() for ext in extensions}
    seen: set[Path] = set()
    results: list[Path] = []

    def _add(path: Path) -> None:
        resolved = path.resolve()
        if resolved not in seen:
            seen.add(resolved)
            results.append(resolved)

    for path in paths:
        if path.is_dir():
            pattern = path.rglob("*") if recursive else path.glob("*")
            for child in sorted(pattern):
                if child.is_file() and child.suffix.lower() in suffixes:
                    _add(child)
        elif path.is_file():
            _add(path)
    return results

