"""Tests for ServiceResult and ServiceError."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from zettelhub.services.result import ErrorCode, ServiceError, ServiceResult


class TestServiceResult:
    def test_success_defaults(self) -> None:
        result = ServiceResult(ok=True, op="resolve", data={"id": "0000000a"})
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_failure_helper(self) -> None:
        result = ServiceResult.failure(
            "links", ErrorCode.NOT_FOUND, "No note matches 'x'", reference="x"
        )
        assert result.ok is False
        assert result.error == ServiceError(
            code="NOT_FOUND", message="No note matches 'x'", detail={"reference": "x"}
        )
        assert result.data == {}

    def test_failure_keeps_partial_data(self) -> None:
        result = ServiceResult.failure(
            "index_file", ErrorCode.PARSE_ERROR, "bad", data={"failures": [1]}
        )
        assert result.data == {"failures": [1]}

    def test_json_round_trip(self) -> None:
        result = ServiceResult(ok=True, op="tags", data={"count": 0}, warnings=["w"])
        parsed = json.loads(result.model_dump_json())
        assert parsed["op"] == "tags"
        assert parsed["warnings"] == ["w"]
        assert parsed["error"] is None

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="x")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]


class TestErrorCode:
    def test_not_found_and_not_built_differ(self) -> None:
        assert ErrorCode.NOT_FOUND != ErrorCode.INDEX_NOT_BUILT
        assert ErrorCode.INDEX_NOT_BUILT.value == "INDEX_NOT_BUILT"
