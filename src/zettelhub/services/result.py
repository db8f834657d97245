"""ServiceResult and ServiceError — the universal service contract.

INVARIANT: All service-layer methods return ServiceResult.
The CLI (and any future interface) consumes this type; services never
print, and never raise for per-file or per-reference failures.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(StrEnum):
    """Machine-readable error codes carried in :class:`ServiceError`."""

    NOT_FOUND = "NOT_FOUND"  # reference did not resolve to a note
    INDEX_NOT_BUILT = "INDEX_NOT_BUILT"  # no index database yet
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"  # index database unreadable or corrupt
    ROOT_NOT_FOUND = "ROOT_NOT_FOUND"
    OUTSIDE_ROOT = "OUTSIDE_ROOT"
    PARSE_ERROR = "PARSE_ERROR"
    EMPTY_QUERY = "EMPTY_QUERY"
    INVALID_QUERY = "INVALID_QUERY"
    INVALID_FILTER = "INVALID_FILTER"
    NO_SOURCES = "NO_SOURCES"
    IMPORT_FAILED = "IMPORT_FAILED"
    INVALID_TAG = "INVALID_TAG"


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"reindex"``).
        data: Operation-specific payload (also set on partial failure).
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (telemetry spans).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: ErrorCode,
        message: str,
        *,
        data: dict[str, Any] | None = None,
        **detail: Any,
    ) -> ServiceResult:
        """Build an ``ok=False`` result with a structured error."""
        return cls(
            ok=False,
            op=op,
            data=data or {},
            error=ServiceError(code=code.value, message=message, detail=detail),
        )
