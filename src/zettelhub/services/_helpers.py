"""Shared service-layer helper functions."""

from __future__ import annotations

import calendar
import re
from typing import Any

_DAY = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_MONTH = re.compile(r"^(\d{4})-(\d{2})$")


def _bound(value: str, *, end: bool) -> str:
    """Expand a day or month to an inclusive YYYY-MM-DD bound."""
    if m := _DAY.match(value):
        year, month, day = (int(g) for g in m.groups())
        if not 1 <= month <= 12 or not 1 <= day <= calendar.monthrange(year, month)[1]:
            msg = f"invalid date: {value!r}"
            raise ValueError(msg)
        return value
    if m := _MONTH.match(value):
        year, month = int(m.group(1)), int(m.group(2))
        if not 1 <= month <= 12:
            msg = f"invalid month: {value!r}"
            raise ValueError(msg)
        last = calendar.monthrange(year, month)[1] if end else 1
        return f"{year:04d}-{month:02d}-{last:02d}"
    msg = f"expected YYYY-MM-DD or YYYY-MM, got {value!r}"
    raise ValueError(msg)


def parse_date_filter(value: str) -> tuple[str | None, str | None]:
    """Parse a date filter into inclusive ``(from, to)`` day bounds.

    Accepted forms: ``YYYY-MM-DD`` (one day), ``YYYY-MM`` (one month),
    and ``START:END`` where either side may be a day or a month and
    either side may be empty for an open range.

    Examples:
        >>> parse_date_filter("2024-02")
        ('2024-02-01', '2024-02-29')
        >>> parse_date_filter("2024-01-15:")
        ('2024-01-15', None)

    Raises:
        ValueError: On any other form or an impossible date.
    """
    value = value.strip()
    if ":" in value:
        start, _, end = value.partition(":")
        start, end = start.strip(), end.strip()
        if not start and not end:
            msg = "date range needs at least one bound"
            raise ValueError(msg)
        lo = _bound(start, end=False) if start else None
        hi = _bound(end, end=True) if end else None
        if lo and hi and lo > hi:
            msg = f"date range is reversed: {value!r}"
            raise ValueError(msg)
        return lo, hi
    return _bound(value, end=False), _bound(value, end=True)


def failure_entry(path: str, reason: str) -> dict[str, Any]:
    return {"path": path, "reason": reason}


def bounded(items: list[Any], limit: int) -> tuple[list[Any], int]:
    """First *limit* items plus the count of items left out."""
    return items[:limit], max(0, len(items) - limit)
