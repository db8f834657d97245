"""Tests for the note reader."""

from __future__ import annotations

from pathlib import Path

import pytest

from zettelhub.domain.content import ParseError
from zettelhub.domain.ids import ID_PATTERN
from zettelhub.domain.notes import parse_note, read_note


class TestParseNote:
    def test_identity_from_frontmatter(self) -> None:
        doc = parse_note(
            '---\nid: "0a1b2c3d"\ntitle: Alpha\ntype: reference\naliases: [A, First]\n---\nBody',
            "notes/alpha.md",
        )
        assert doc.id == "0a1b2c3d"
        assert doc.title == "Alpha"
        assert doc.type == "reference"
        assert doc.aliases == ["A", "First"]
        assert doc.filename == "alpha.md"
        assert not doc.id_generated

    def test_missing_id_is_generated(self) -> None:
        doc = parse_note("---\ntitle: Alpha\n---\nBody", "alpha.md")
        assert doc.id_generated
        assert ID_PATTERN.match(doc.id)

    def test_unquoted_numeric_id(self) -> None:
        doc = parse_note("---\nid: 12345678\n---\n", "n.md")
        assert doc.id == "12345678"

    def test_unquoted_exponent_shaped_id_keeps_source_text(self) -> None:
        for raw in ("12345e67", "1234e567", "00000001"):
            doc = parse_note(f"---\nid: {raw}\n---\n", "n.md")
            assert doc.id == raw
            assert not doc.id_generated

    def test_lenient_id_keeps_source_text(self) -> None:
        doc = parse_note("---\nid: 20230101-a\n---\n", "a.md", strict_id=False)
        assert doc.source_id == "20230101-a"
        assert doc.id_generated
        assert ID_PATTERN.match(doc.id)

    def test_invalid_id_raises(self) -> None:
        with pytest.raises(ParseError, match="invalid note id") as excinfo:
            parse_note("---\nid: not-an-id\n---\n", "bad.md")
        assert excinfo.value.path == "bad.md"

    def test_malformed_frontmatter_carries_path(self) -> None:
        with pytest.raises(ParseError) as excinfo:
            parse_note("---\ntitle: [oops\n---\n", "bad.md")
        assert str(excinfo.value).startswith("bad.md: ")

    def test_title_falls_back_to_heading(self) -> None:
        doc = parse_note("Intro\n\n# The Heading #\n\nText", "n.md")
        assert doc.title == "The Heading"
        assert doc.type == "note"

    def test_no_title(self) -> None:
        assert parse_note("plain", "n.md").title == ""

    def test_backlinks_section_excluded_from_links(self) -> None:
        content = "---\nid: \"0a1b2c3d\"\n---\nSee [[Beta]].\n\n## Backlinks\n\n- [Gamma](g.md)\n"
        doc = parse_note(content, "n.md")
        assert [lnk.reference for lnk in doc.links()] == ["Beta"]
        assert "## Backlinks" in doc.raw_body

    def test_description_links_are_extracted(self) -> None:
        doc = parse_note("---\ndescription: see [[Gamma]]\n---\nBody [[Beta]]", "n.md")
        assert [lnk.reference for lnk in doc.links()] == ["Beta", "Gamma"]

    def test_plain_metadata_puts_effective_id_first(self) -> None:
        doc = parse_note("---\ntitle: A\ndate: 2024-01-05\n---\n", "n.md")
        plain = doc.plain_metadata()
        assert list(plain)[0] == "id"
        assert plain["id"] == doc.id
        assert plain["date"] == "2024-01-05"


class TestReadNote:
    def test_reads_relative_path(self, tmp_path: Path) -> None:
        (tmp_path / "sub").mkdir()
        path = tmp_path / "sub" / "n.md"
        path.write_text("---\ntitle: X\n---\n", encoding="utf-8")
        assert read_note(path, tmp_path).path == "sub/n.md"

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "bin.md"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(ParseError, match="UTF-8"):
            read_note(path, tmp_path)
