"""Note identifiers: generation and validation.

A note id is a fixed-width lowercase hex string (8 digits, 32 bits of
randomness).  Ids are independent of path and title, so a note keeps
its id across renames and retitles.

INVARIANT: Ids are permanent. The indexer never changes an existing id;
only the batch importer assigns fresh ones.
"""

from __future__ import annotations

import re
import secrets

ID_LENGTH = 8
ID_PATTERN = re.compile(r"^[0-9a-f]{8}$")


def generate_id() -> str:
    """Return a new random note id."""
    return secrets.token_hex(ID_LENGTH // 2)


def normalize_id(value: object) -> str | None:
    """Return *value* as a canonical id, or None if it is not id-shaped.

    Surrounding whitespace is stripped and hex digits are lowercased.
    Integers (an unquoted all-digit id in YAML) are zero-padded back to
    the fixed width.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        text = f"{value:0{ID_LENGTH}d}"
    elif isinstance(value, str):
        text = value.strip().lower()
    else:
        return None
    return text if ID_PATTERN.match(text) else None


def validate_id(value: str) -> bool:
    """Check whether *value* is a well-formed note id (case-insensitive)."""
    return normalize_id(value) is not None
