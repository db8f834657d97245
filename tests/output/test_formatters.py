"""Tests for the format_result dispatcher."""

import json

from zettelhub.output.formatters import format_result
from zettelhub.services.result import ServiceError, ServiceResult


def _ok(op: str = "test", **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _err(op: str = "test", msg: str = "fail") -> ServiceResult:
    return ServiceResult(ok=False, op=op, error=ServiceError(code="NOT_FOUND", message=msg))


class TestFormatResultJSON:
    def test_json_mode_returns_valid_json(self) -> None:
        output = format_result(_ok("resolve", id="0000000a"), json_output=True)
        data = json.loads(output)
        assert data["ok"] is True
        assert data["op"] == "resolve"
        assert data["data"]["id"] == "0000000a"

    def test_json_mode_error(self) -> None:
        data = json.loads(format_result(_err("resolve", "Bad"), json_output=True))
        assert data["ok"] is False
        assert data["error"] == {"code": "NOT_FOUND", "message": "Bad", "detail": {}}

    def test_json_wins_over_quiet(self) -> None:
        output = format_result(_ok("resolve", id="0000000a"), json_output=True, quiet=True)
        assert json.loads(output)["ok"] is True


class TestFormatResultQuiet:
    def test_quiet_single_id(self) -> None:
        assert format_result(_ok("resolve", id="0000000a"), quiet=True) == "0000000a"

    def test_quiet_error(self) -> None:
        assert format_result(_err("links", "gone"), quiet=True) == "ERROR: links: gone"


class TestFormatResultRich:
    def test_default_is_rich(self) -> None:
        output = format_result(_ok("resolve", id="0000000a", title="A", path="a.md"))
        assert output.startswith("OK  resolve")
        assert "title: A" in output
