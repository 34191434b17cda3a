"""Tests for inline run parsing and rendering."""

from __future__ import annotations

import itertools

import pytest

from markblocks.blocks.inline import MARK_ORDER, TextRun, from_markdown, normalize, to_markdown, to_plain_text

ALL_MARK_SETS = [marks for size in range(len(MARK_ORDER) + 1) for marks in itertools.combinations(MARK_ORDER, size)]


class TestRendering:
    def test_marks_wrap_in_fixed_order(self) -> None:
        run = TextRun("x", bold=True, italic=True, underline=True, strike=True, code=True, highlight=True)
        assert to_markdown(run) == "==`~~<u>***x***</u>~~`=="

    def test_link_wraps_outside_marks(self) -> None:
        run = TextRun("docs", bold=True, link="https://example.com")
        assert to_markdown(run) == "[**docs**](https://example.com)"

    def test_empty_run_renders_nothing(self) -> None:
        assert to_markdown(TextRun("", bold=True)) == ""

    def test_sequence_of_runs_concatenates(self) -> None:
        runs = [TextRun("plain "), TextRun("strong", bold=True), TextRun(" end")]
        assert to_markdown(runs) == "plain **strong** end"


class TestParsing:
    def test_empty_text_has_no_runs(self) -> None:
        assert from_markdown("") == []

    def test_plain_text_is_single_run(self) -> None:
        assert from_markdown("just words") == [TextRun("just words")]

    def test_mixed_marks_split_into_runs(self) -> None:
        runs = from_markdown("a **b** *c* <u>d</u> ~~e~~ `f` ==g==")
        styled = [(run.text, run.marks) for run in runs if run.marks]
        assert styled == [
            ("b", ("bold",)),
            ("c", ("italic",)),
            ("d", ("underline",)),
            ("e", ("strike",)),
            ("f", ("code",)),
            ("g", ("highlight",)),
        ]

    def test_link_carries_target(self) -> None:
        runs = from_markdown("see [the **guide**](https://example.com/guide) now")
        linked = [run for run in runs if run.link]
        assert [run.text for run in linked] == ["the ", "guide"]
        assert all(run.link == "https://example.com/guide" for run in linked)
        assert linked[1].bold

    def test_code_content_is_literal(self) -> None:
        runs = from_markdown("`a *b* c`")
        assert runs == [TextRun("a *b* c", code=True)]

    def test_triple_star_is_bold_italic(self) -> None:
        assert from_markdown("***both***") == [TextRun("both", bold=True, italic=True)]

    @pytest.mark.parametrize("marks", ALL_MARK_SETS, ids=lambda marks: "+".join(marks) or "plain")
    def test_rendered_run_parses_back(self, marks: tuple[str, ...]) -> None:
        run = TextRun("word", **{mark: True for mark in marks})
        assert from_markdown(to_markdown(run)) == [run]

    @pytest.mark.parametrize("marks", ALL_MARK_SETS, ids=lambda marks: "+".join(marks) or "plain")
    def test_linked_run_parses_back(self, marks: tuple[str, ...]) -> None:
        run = TextRun("word", link="https://example.com", **{mark: True for mark in marks})
        assert from_markdown(to_markdown(run)) == [run]


class TestNormalize:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "plain text",
            "a * b * c",
            "**unclosed bold",
            "*a**",
            "2*3*4",
            "`a`b`",
            "~~~unsupported~~~",
            "snake_case and ==half",
            "![image](a.png) inline",
            "[not a link] (x)",
            "<u>nested **bold**</u> tail",
            "**bold with *italic* inside**",
            "*italic with **bold** inside*",
            "[the **guide**](https://example.com) and more",
            "`==literal==`",
            "日本語の**太字**テキスト",
        ],
    )
    def test_normalize_is_identity(self, text: str) -> None:
        assert normalize(text) == text

    def test_ambiguous_nesting_settles_after_one_pass(self) -> None:
        once = normalize("**<u>a</u>**")
        assert once == "<u>**a**</u>"
        assert normalize(once) == once

    def test_neighbouring_runs_share_one_wrapper(self) -> None:
        runs = [TextRun("a ", bold=True), TextRun("b", bold=True, italic=True), TextRun(" c", bold=True)]
        assert to_markdown(runs) == "**a *b* c**"


def test_plain_text_drops_markup() -> None:
    assert to_plain_text("**Bold** and [link](https://x.test) `code`") == "Bold and link code"
