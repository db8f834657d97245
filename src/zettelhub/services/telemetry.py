"""Timing spans for ``--verbose`` runs.

Service methods decorated with :func:`traced` open a root span; phases
inside them open child spans with :func:`trace_span` and record counts
with :func:`annotate`.  The finished tree lands in
``ServiceResult.meta["telemetry"]`` and each closed span is logged at
debug level.  While disabled every helper is a single ContextVar lookup.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from zettelhub.services.result import ServiceResult

_enabled: ContextVar[bool] = ContextVar("zh_telemetry_enabled", default=False)
_active: ContextVar[Span | None] = ContextVar("zh_active_span", default=None)

_log = structlog.get_logger("zettelhub.telemetry")


@dataclass
class Span:
    name: str
    children: list[Span] = field(default_factory=list)
    annotations: dict[str, Any] = field(default_factory=dict)
    started: float = field(default_factory=time.perf_counter)
    finished: float | None = None

    @property
    def duration_ms(self) -> float:
        if self.finished is None:
            return 0.0
        return (self.finished - self.started) * 1000

    def close(self, *, ok: bool = True) -> None:
        self.finished = time.perf_counter()
        _log.debug(
            "span.closed",
            span=self.name,
            duration_ms=round(self.duration_ms, 2),
            ok=ok,
            annotations=self.annotations,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            out["annotations"] = dict(self.annotations)
        if self.children:
            out["children"] = [child.to_dict() for child in self.children]
        return out


@contextmanager
def _opened(span: Span) -> Generator[Span]:
    token = _active.set(span)
    ok = False
    try:
        yield span
        ok = True
    finally:
        _active.reset(token)
        span.close(ok=ok)


@contextmanager
def trace_span(name: str, **annotations: Any) -> Generator[Span | None]:
    """Time a phase of the running service call.

    Yields None when telemetry is off or no :func:`traced` call is running.
    """
    parent = _active.get() if _enabled.get() else None
    if parent is None:
        yield None
        return
    child = Span(name=name, annotations=annotations)
    parent.children.append(child)
    with _opened(child):
        yield child


def annotate(**values: Any) -> None:
    """Record counts on the innermost open span, if any."""
    span = _active.get() if _enabled.get() else None
    if span is not None:
        span.annotations.update(values)


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Time a service method; the outermost call attaches the span tree to its result."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)

        parent = _active.get()
        span = Span(name=func.__qualname__)
        if parent is not None:
            parent.children.append(span)
        with _opened(span):
            result = func(*args, **kwargs)
        if parent is None and isinstance(result, ServiceResult):
            meta = {**(result.meta or {}), "telemetry": span.to_dict()}
            return result.model_copy(update={"meta": meta})  # type: ignore[return-value]
        return result

    return wrapper


def enable_telemetry() -> None:
    """Switch span collection on (``--verbose``)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)


def active_span() -> Span | None:
    """The innermost open span, or None when telemetry is off."""
    return _active.get() if _enabled.get() else None
