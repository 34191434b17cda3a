"""Render a block document back to Markdown."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, Optional, Union

from . import fragments, inline
from .models import ATTRIBUTE_TYPES, Block, BlockType, Document, ListItem, NoAttributes
from .parser import CITATION_PREFIX, is_legacy_callout

logger = logging.getLogger(__name__)


def serialize_document(document: Union[Document, Iterable[Block]]) -> str:
    """Render blocks as Markdown.

    Adjacent blocks are separated by one blank line. Empty paragraphs are
    themselves rendered as blank lines and replace that separator, which keeps
    ``"A\\n\\nB"`` stable across parse and serialize.
    """

    lines: list[str] = []
    previous: Optional[Block] = None
    for block in document:
        if previous is not None and not previous.is_blank and not block.is_blank:
            lines.append("")
        lines.append(render_block(block))
        previous = block
    return "\n".join(lines)


def render_block(block: Block) -> str:
    renderer = _RENDERERS.get(block.type)  # type: ignore[call-overload]
    if renderer is None:
        logger.debug("No renderer for block type %r, emitting raw content", block.type)
        return block.content
    expected = ATTRIBUTE_TYPES.get(block.type, NoAttributes)  # type: ignore[call-overload]
    if not isinstance(block.attributes, expected):
        # Rebuild from whatever the caller supplied; missing values take defaults.
        block = replace(block, attributes=_as_mapping(block.attributes))
    return renderer(block)


def _as_mapping(attributes: Any) -> dict[str, Any]:
    if isinstance(attributes, dict):
        return attributes
    if hasattr(attributes, "to_dict"):
        return attributes.to_dict()
    return {}


# ----------------------------------------------------------------------
# Native Markdown
# ----------------------------------------------------------------------
def _render_paragraph(block: Block) -> str:
    return "\n".join(inline.normalize(line) for line in block.content.split("\n"))


def _render_heading(block: Block) -> str:
    try:
        level = int(block.attributes.level)
    except (TypeError, ValueError):
        level = 1
    prefix = "#" * min(max(level, 1), 6)
    content = inline.normalize(block.content)
    return f"{prefix} {content}" if content else prefix


def _render_list(block: Block) -> str:
    return "\n".join(render_list_items(block.attributes.items, ordered=bool(block.attributes.ordered)))


def render_list_items(items: list[ListItem], *, ordered: bool, depth: int = 0) -> list[str]:
    lines: list[str] = []
    for index, item in enumerate(items, start=1):
        parts = [f"{index}." if ordered else "-"]
        if item.checked is not None:
            parts.append("[x]" if item.checked else "[ ]")
        if item.content:
            parts.append(inline.normalize(item.content))
        lines.append("  " * depth + " ".join(parts))
        if item.children:
            lines.extend(render_list_items(item.children, ordered=ordered, depth=depth + 1))
    return lines


def _render_quote(block: Block) -> str:
    content = block.content.split("\n")
    citation = block.attributes.citation
    if _quote_is_ambiguous(content, citation):
        return fragments.block("Quote", [("citation", citation or None)], block.content)
    lines = [f"> {line}" if line else ">" for line in content]
    if citation:
        lines.append(f"> {CITATION_PREFIX}{citation}")
    return "\n".join(lines)


def _quote_is_ambiguous(content: list[str], citation: Optional[str]) -> bool:
    """Whether the native ``>`` form would read back as something else."""

    if is_legacy_callout(f"> {content[0]}"):
        return True
    if citation:
        return "\n" in citation
    return len(content) > 1 and content[-1].startswith(CITATION_PREFIX)


def _render_divider(block: Block) -> str:
    return "---"


def _render_code(block: Block) -> str:
    language = block.attributes.language or ""
    return f"```{language}\n{block.content}\n```"


# ----------------------------------------------------------------------
# Tagged fragments
# ----------------------------------------------------------------------
def _render_callout(block: Block) -> str:
    attributes = block.attributes
    return fragments.block("Callout", [("type", attributes.type or "info"), ("icon", attributes.icon or "!")], block.content)


def _render_toggle(block: Block) -> str:
    body = serialize_document(block.children) if block.children else block.content
    return fragments.block("Toggle", [("summary", block.attributes.summary)], body)


def _render_table(block: Block) -> str:
    return fragments.block("Table", [], "\n".join(render_pipe_table(block.attributes.rows, header=block.attributes.header)))


def render_pipe_table(rows: list[list[str]], *, header: bool) -> list[str]:
    lines: list[str] = []
    for index, row in enumerate(rows):
        cells = [str(cell).replace("|", "\\|") for cell in row]
        lines.append("| " + " | ".join(cells) + " |")
        if index == 0 and header:
            lines.append("| " + " | ".join("---" for _ in cells) + " |")
    return lines


def _render_image(block: Block) -> str:
    attributes = block.attributes
    return fragments.inline(
        "Image",
        [("src", attributes.src), ("alt", attributes.alt), ("width", attributes.width), ("height", attributes.height)],
        block.content,
    )


def _render_video(block: Block) -> str:
    attributes = block.attributes
    return fragments.inline(
        "Video",
        [
            ("src", attributes.src),
            ("poster", attributes.poster),
            ("controls", bool(attributes.controls)),
            ("autoplay", bool(attributes.autoplay)),
        ],
        block.content,
    )


def _render_audio(block: Block) -> str:
    attributes = block.attributes
    return fragments.self_closing(
        "Audio",
        [("src", attributes.src), ("controls", bool(attributes.controls)), ("autoplay", bool(attributes.autoplay))],
    )


def _render_file(block: Block) -> str:
    return fragments.self_closing("File", [("src", block.attributes.src), ("name", block.attributes.filename)])


def _render_bookmark(block: Block) -> str:
    return fragments.inline("Bookmark", [("url", block.attributes.url), ("title", block.attributes.title)], block.content)


def _render_embed(block: Block) -> str:
    return fragments.inline("Embed", [("url", block.attributes.url), ("provider", block.attributes.provider)], block.content)


def _render_spacer(block: Block) -> str:
    try:
        height = int(block.attributes.height)
    except (TypeError, ValueError):
        height = 24
    return fragments.self_closing("Spacer", [("height", height)])


def _render_table_of_contents(block: Block) -> str:
    return fragments.self_closing("TableOfContents")


def _body_fragment(name: str) -> Callable[[Block], str]:
    def _render(block: Block) -> str:
        return fragments.block(name, [], block.content)

    return _render


_RENDERERS: dict[BlockType, Callable[[Block], str]] = {
    BlockType.PARAGRAPH: _render_paragraph,
    BlockType.HEADING: _render_heading,
    BlockType.LIST: _render_list,
    BlockType.QUOTE: _render_quote,
    BlockType.DIVIDER: _render_divider,
    BlockType.CODE: _render_code,
    BlockType.CALLOUT: _render_callout,
    BlockType.TOGGLE: _render_toggle,
    BlockType.TABLE: _render_table,
    BlockType.IMAGE: _render_image,
    BlockType.VIDEO: _render_video,
    BlockType.AUDIO: _render_audio,
    BlockType.FILE: _render_file,
    BlockType.BOOKMARK: _render_bookmark,
    BlockType.EMBED: _render_embed,
    BlockType.SPACER: _render_spacer,
    BlockType.TABLE_OF_CONTENTS: _render_table_of_contents,
    BlockType.MATH: _body_fragment("Math"),
    BlockType.HTML: _body_fragment("Html"),
    BlockType.GALLERY: _body_fragment("Gallery"),
    BlockType.BOARD: _body_fragment("Board"),
    BlockType.CALENDAR: _body_fragment("Calendar"),
}
