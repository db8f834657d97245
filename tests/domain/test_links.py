"""Tests for link extraction and rewriting."""

from __future__ import annotations

from zettelhub.domain.links import (
    ExtractedLink,
    MarkdownTarget,
    extract_links,
    extract_markdown_links,
    extract_wikilinks,
    parse_markdown_target,
    rewrite_links,
    strip_backlinks_section,
)

# ---------------------------------------------------------------------------
# extract_wikilinks
# ---------------------------------------------------------------------------


class TestExtractWikilinks:
    def test_single_link(self) -> None:
        links = extract_wikilinks("This relates to [[Transformer Architectures]].")
        assert links == [ExtractedLink("Transformer Architectures", "wiki")]

    def test_display_text(self) -> None:
        links = extract_wikilinks("Refer to [[a1b2c3d4|the original note]].")
        assert links[0].reference == "a1b2c3d4"
        assert links[0].display == "the original note"

    def test_strips_whitespace_and_at_sign(self) -> None:
        links = extract_wikilinks("See [[ @Ada Lovelace | Ada ]].")
        assert links[0].reference == "Ada Lovelace"
        assert links[0].display == "Ada"

    def test_document_order(self) -> None:
        links = extract_wikilinks("[[B]] then [[A]]\nand [[C]]")
        assert [lnk.reference for lnk in links] == ["B", "A", "C"]

    def test_ignores_single_brackets_and_empty(self) -> None:
        assert extract_wikilinks("[single] and [[ ]] and [[|x]]") == []


# ---------------------------------------------------------------------------
# extract_markdown_links
# ---------------------------------------------------------------------------


class TestExtractMarkdownLinks:
    def test_relative_link(self) -> None:
        links = extract_markdown_links("See [beta](notes/beta.md).")
        assert links == [ExtractedLink("notes/beta.md", "markdown", "beta")]

    def test_fragment_removed_from_reference(self) -> None:
        links = extract_markdown_links("[x](beta.md#section)")
        assert links[0].reference == "beta.md"

    def test_skips_urls_anchors_and_images(self) -> None:
        body = (
            "[web](https://example.com) [mail](mailto:a@b.c) [top](#top) "
            "![img](pic.png) [empty]()"
        )
        assert extract_markdown_links(body) == []

    def test_angle_bracket_target(self) -> None:
        links = extract_markdown_links("[x](<my note.md> \"Title\")")
        assert links[0].reference == "my note.md"


class TestExtractLinks:
    def test_wiki_then_markdown(self) -> None:
        links = extract_links("[m](m.md) and [[W]]")
        assert [(lnk.link_type, lnk.reference) for lnk in links] == [
            ("wiki", "W"),
            ("markdown", "m.md"),
        ]


# ---------------------------------------------------------------------------
# Targets and rewriting
# ---------------------------------------------------------------------------


class TestMarkdownTarget:
    def test_parse_and_render_keep_fragment_and_title(self) -> None:
        target = parse_markdown_target('old.md#part "Title"')
        assert target == MarkdownTarget("old.md", "#part", ' "Title"')
        assert target.render("new/place.md") == 'new/place.md#part "Title"'

    def test_render_wraps_spaces(self) -> None:
        assert MarkdownTarget("a.md").render("my note.md") == "<my note.md>"


class TestRewriteLinks:
    def test_wiki_callback(self) -> None:
        body = "[[Alpha]] and [[Beta|b]] and [[Gamma]]"
        result = rewrite_links(
            body, wiki=lambda ref, display: None if ref == "Gamma" else ref.lower()
        )
        assert result == "[[alpha]] and [[beta]] and [[Gamma]]"

    def test_markdown_callback(self) -> None:
        body = "[a](a.md#x) [web](https://x.org) [b](b.md)"
        result = rewrite_links(
            body, markdown=lambda t: t.render("z.md") if t.path == "a.md" else None
        )
        assert result == "[a](z.md#x) [web](https://x.org) [b](b.md)"

    def test_no_callbacks_is_identity(self) -> None:
        body = "[[A]] [b](b.md)"
        assert rewrite_links(body) == body


class TestStripBacklinksSection:
    def test_removes_section_and_rest(self) -> None:
        body = "Text\n\n## Backlinks\n\n- [A](a.md)\n"
        assert strip_backlinks_section(body) == "Text\n"

    def test_no_section(self) -> None:
        assert strip_backlinks_section("Text\n") == "Text\n"

    def test_only_section(self) -> None:
        assert strip_backlinks_section("## Backlinks\n- [A](a.md)\n") == ""
