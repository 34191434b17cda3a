"""Tests for the Markdown to block parser."""

from __future__ import annotations

import logging

import pytest

from markblocks.blocks.models import BlockType, ListItem
from markblocks.blocks.parser import detect_provider, parse_markdown, split_table_row


def _types(markdown: str) -> list[str]:
    return [block.type for block in parse_markdown(markdown)]


class TestNativeBlocks:
    def test_heading_levels(self) -> None:
        document = parse_markdown("### Title")
        [block] = document.blocks
        assert block.type is BlockType.HEADING
        assert block.attributes.level == 3
        assert block.content == "Title"

    @pytest.mark.parametrize("line", ["#NoSpace", "####### seven"])
    def test_invalid_heading_is_paragraph(self, line: str) -> None:
        assert _types(line) == [BlockType.PARAGRAPH]

    def test_blank_lines_become_empty_paragraphs(self) -> None:
        document = parse_markdown("A\n\nB")
        assert [(block.type, block.content) for block in document] == [
            (BlockType.PARAGRAPH, "A"),
            (BlockType.PARAGRAPH, ""),
            (BlockType.PARAGRAPH, "B"),
        ]

    def test_consecutive_prose_lines_form_one_paragraph(self) -> None:
        [block] = parse_markdown("first line\nsecond line").blocks
        assert block.content == "first line\nsecond line"

    def test_crlf_is_normalized(self) -> None:
        assert [block.content for block in parse_markdown("A\r\n\r\nB")] == ["A", "", "B"]

    def test_checklist(self) -> None:
        [block] = parse_markdown("- [ ] task one\n- [x] task two").blocks
        assert block.type is BlockType.LIST
        assert block.attributes.ordered is False
        assert [(item.content, item.checked) for item in block.attributes.items] == [
            ("task one", False),
            ("task two", True),
        ]

    def test_ordered_list(self) -> None:
        [block] = parse_markdown("1. first\n2. second").blocks
        assert block.attributes.ordered is True
        assert [item.content for item in block.attributes.items] == ["first", "second"]

    def test_nested_list_items(self) -> None:
        [block] = parse_markdown("- parent\n  - child\n    - grandchild\n- sibling").blocks
        assert block.attributes.items == [
            ListItem("parent", children=[ListItem("child", children=[ListItem("grandchild")])]),
            ListItem("sibling"),
        ]

    def test_list_kind_change_starts_new_list(self) -> None:
        assert _types("- a\n1. b") == [BlockType.LIST, BlockType.LIST]

    def test_quote_with_citation(self) -> None:
        [block] = parse_markdown("> Stay hungry\n> — Someone").blocks
        assert block.type is BlockType.QUOTE
        assert block.content == "Stay hungry"
        assert block.attributes.citation == "Someone"

    def test_single_dash_line_quote_is_not_citation(self) -> None:
        [block] = parse_markdown("> — only line").blocks
        assert block.content == "— only line"
        assert block.attributes.citation is None

    @pytest.mark.parametrize("line", ["---", "***", "  ---  "])
    def test_divider(self, line: str) -> None:
        assert _types(line) == [BlockType.DIVIDER]

    def test_code_fence_is_opaque(self) -> None:
        [block] = parse_markdown("```python\n# not a heading\n- not a list\n**x**\n```").blocks
        assert block.type is BlockType.CODE
        assert block.attributes.language == "python"
        assert block.content == "# not a heading\n- not a list\n**x**"

    def test_pipe_table_with_header(self) -> None:
        [block] = parse_markdown("| a | b |\n| --- | :-: |\n| 1 | 2 \\| 3 |").blocks
        assert block.type is BlockType.TABLE
        assert block.attributes.header is True
        assert block.attributes.rows == [["a", "b"], ["1", "2 | 3"]]

    def test_pipe_table_without_separator_has_no_header(self) -> None:
        [block] = parse_markdown("| a | b |\n| c | d |").blocks
        assert block.attributes.header is False
        assert block.attributes.rows == [["a", "b"], ["c", "d"]]

    def test_split_table_row_keeps_escaped_pipes(self) -> None:
        assert split_table_row("| x \\| y | z |") == ["x | y", "z"]


class TestLinkAndImageLines:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("[video](https://cdn.test/clip)", BlockType.VIDEO),
            ("[Trailer](https://cdn.test/clip.mp4)", BlockType.VIDEO),
            ("[Song](https://cdn.test/track.mp3)", BlockType.AUDIO),
            ("[Report](https://cdn.test/report.pdf)", BlockType.FILE),
            ("[bookmark](https://example.com)", BlockType.BOOKMARK),
            ("[Talk](https://youtu.be/abc)", BlockType.EMBED),
            ("[Site](https://example.com)", BlockType.EMBED),
        ],
    )
    def test_link_only_line_classification(self, line: str, expected: BlockType) -> None:
        assert _types(line) == [expected]

    def test_file_link_keeps_caption_as_filename(self) -> None:
        [block] = parse_markdown("[file](https://cdn.test/docs/report.pdf)").blocks
        assert block.attributes.filename == "report.pdf"
        [block] = parse_markdown("[Quarterly report](https://cdn.test/docs/report.pdf)").blocks
        assert block.attributes.filename == "Quarterly report"

    def test_embed_provider_detection(self) -> None:
        [block] = parse_markdown("[Talk](https://www.youtube.com/watch?v=abc)").blocks
        assert block.attributes.provider == "youtube"
        assert block.content == "Talk"
        assert detect_provider("https://example.com") is None
        assert detect_provider("https://maps.google.com/?q=tokyo") == "googlemaps"
        assert detect_provider("https://www.google.com/maps/place/tokyo") == "googlemaps"
        assert detect_provider("https://dropbox.com/s/clip") is None

    def test_link_inside_prose_stays_paragraph(self) -> None:
        assert _types("see [docs](https://example.com) here") == [BlockType.PARAGRAPH]

    def test_image_with_caption(self) -> None:
        [block] = parse_markdown("![A cat](cat.png) Sleeping cat").blocks
        assert block.type is BlockType.IMAGE
        assert (block.attributes.src, block.attributes.alt) == ("cat.png", "A cat")
        assert block.content == "Sleeping cat"

    def test_image_without_caption(self) -> None:
        [block] = parse_markdown("![](cat.png)").blocks
        assert block.content == ""


class TestFragments:
    def test_callout(self) -> None:
        [block] = parse_markdown('<Callout type="warning" icon="⚠">\nMind the gap\n</Callout>').blocks
        assert block.type is BlockType.CALLOUT
        assert (block.attributes.type, block.attributes.icon) == ("warning", "⚠")
        assert block.content == "Mind the gap"

    def test_toggle_with_plain_body_keeps_content(self) -> None:
        [block] = parse_markdown('<Toggle summary="More">\nHidden text\n</Toggle>').blocks
        assert block.attributes.summary == "More"
        assert block.content == "Hidden text"
        assert block.children == []

    def test_toggle_with_structured_body_has_children(self) -> None:
        [block] = parse_markdown('<Toggle summary="Steps">\n## Setup\n- one\n- two\n</Toggle>').blocks
        assert [child.type for child in block.children] == [BlockType.HEADING, BlockType.LIST]

    def test_nested_toggles(self) -> None:
        markdown = '<Toggle summary="Outer">\n<Toggle summary="Inner">\ntext\n</Toggle>\n</Toggle>'
        [outer] = parse_markdown(markdown).blocks
        [inner] = outer.children
        assert inner.attributes.summary == "Inner"
        assert inner.content == "text"

    def test_media_fragments(self) -> None:
        markdown = "\n".join(
            [
                '<Video src="v.mp4" poster="p.png" controls autoplay>Clip</Video>',
                '<Audio src="a.mp3" />',
                '<File src="/f/r.pdf" name="r.pdf" />',
                '<Image src="a.png" alt="A &amp; B" width="320">Caption</Image>',
                '<Spacer height="48" />',
                "<TableOfContents />",
            ]
        )
        video, audio, file, image, spacer, toc = parse_markdown(markdown).blocks
        assert (video.attributes.poster, video.attributes.controls, video.attributes.autoplay) == ("p.png", True, True)
        assert video.content == "Clip"
        assert audio.attributes.controls is False
        assert file.attributes.filename == "r.pdf"
        assert (image.attributes.alt, image.attributes.width, image.attributes.height) == ("A & B", 320, None)
        assert spacer.attributes.height == 48
        assert toc.type is BlockType.TABLE_OF_CONTENTS

    def test_math_body_is_verbatim(self) -> None:
        [block] = parse_markdown("<Math>\n\\int_0^1 x^2 \\, dx\n</Math>").blocks
        assert block.type is BlockType.MATH
        assert block.content == "\\int_0^1 x^2 \\, dx"

    def test_table_fragment(self) -> None:
        [block] = parse_markdown("<Table>\n| h |\n| --- |\n| v |\n</Table>").blocks
        assert block.attributes.rows == [["h"], ["v"]]
        assert block.attributes.header is True

    def test_quote_fragment(self) -> None:
        [block] = parse_markdown('<Quote citation="Ada&#10;Lovelace">\n**Note:** kept as quote\n</Quote>').blocks
        assert block.type is BlockType.QUOTE
        assert block.content == "**Note:** kept as quote"
        assert block.attributes.citation == "Ada\nLovelace"

    def test_end_tag_inside_fenced_code_does_not_close_fragment(self) -> None:
        markdown = "<Callout>\n```html\n</Callout>\n```\n</Callout>\nafter"
        callout, paragraph = parse_markdown(markdown).blocks
        assert callout.content == "```html\n</Callout>\n```"
        assert paragraph.content == "after"

    def test_unknown_tag_is_paragraph(self) -> None:
        assert _types('<Widget size="2" />') == [BlockType.PARAGRAPH]


class TestLegacyForms:
    def test_legacy_callout(self) -> None:
        [block] = parse_markdown("> **Warning:** Be careful").blocks
        assert block.type is BlockType.CALLOUT
        assert block.attributes.type == "warning"
        assert block.content == "Be careful"

    def test_details_toggle(self) -> None:
        [block] = parse_markdown("<details>\n<summary>More info</summary>\nBody line\n</details>").blocks
        assert block.type is BlockType.TOGGLE
        assert block.attributes.summary == "More info"
        assert block.content == "Body line"

    def test_tab_separated_table(self) -> None:
        [block] = parse_markdown("<table>\na\tb\nc\td\n</table>").blocks
        assert block.attributes.rows == [["a", "b"], ["c", "d"]]
        assert block.attributes.header is False


class TestGracefulDegradation:
    def test_unterminated_fence_falls_back_to_paragraph(self) -> None:
        document = parse_markdown("```python\nprint(1)")
        assert [block.type for block in document] == [BlockType.PARAGRAPH]

    def test_unterminated_details_falls_back_to_paragraphs(self) -> None:
        types = _types("<details>\n<summary>x</summary>\nbody")
        assert types and all(block_type is BlockType.PARAGRAPH for block_type in types)

    def test_unclosed_fragment_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="markblocks.blocks.parser")
        document = parse_markdown('<Callout type="info">\nnever closed')
        assert [block.type for block in document] == [BlockType.PARAGRAPH]
        assert "Unclosed <Callout>" in caplog.text

    def test_unsupported_inline_syntax_is_kept(self) -> None:
        [block] = parse_markdown("~~~unsupported~~~").blocks
        assert block.type is BlockType.PARAGRAPH
        assert block.content == "~~~unsupported~~~"

    def test_empty_input_yields_single_blank_paragraph(self) -> None:
        [block] = parse_markdown("").blocks
        assert block.is_blank

    def test_reparse_yields_fresh_ids(self) -> None:
        first = parse_markdown("# Title\n\nBody")
        second = parse_markdown("# Title\n\nBody")
        assert first == second
        assert [block.id for block in first] != [block.id for block in second]
