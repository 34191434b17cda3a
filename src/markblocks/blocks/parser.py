"""Parse Markdown into a block document.

The parser is a single forward pass over lines. Each position is offered to
the block readers in precedence order; the first reader that recognizes the
line consumes it (and any continuation lines) and returns a block. Lines no
reader accepts become paragraph text. Malformed constructs never raise: an
unterminated fence or fragment leaves its opening line to the paragraph
reader.
"""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Callable, Optional
from urllib.parse import urlparse

from . import fragments, inline
from .models import (
    AudioAttributes,
    Block,
    BlockType,
    BookmarkAttributes,
    CalloutAttributes,
    CodeAttributes,
    Document,
    EmbedAttributes,
    FileAttributes,
    HeadingAttributes,
    ImageAttributes,
    ListAttributes,
    ListItem,
    QuoteAttributes,
    SpacerAttributes,
    TableAttributes,
    ToggleAttributes,
    VideoAttributes,
)

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^(#{1,6})(?: (.*))?$")
_LIST_ITEM_RE = re.compile(r"^(?P<indent> *)(?P<marker>[-*]|\d+\.)(?: (?P<rest>.*))?$")
_CHECKBOX_RE = re.compile(r"^\[(?P<mark>[ xX])\](?: (?P<content>.*))?$")
_LINK_LINE_RE = re.compile(r"^\[([^\[\]]*)\]\(([^()\s]*)\)$")
_IMAGE_LINE_RE = re.compile(r"^!\[([^\[\]]*)\]\(([^()\s]*)\)(.*)$")
_LEGACY_CALLOUT_RE = re.compile(r"^> \*\*(Note|Info|Tip|Warning|Success|Danger):\*\* ?(.*)$")
_SUMMARY_RE = re.compile(r"^\s*<summary>(.*)</summary>\s*$")
_TABLE_SEPARATOR_CELL_RE = re.compile(r"^:?-+:?$")
_CELL_SPLIT_RE = re.compile(r"(?<!\\)\|")

CITATION_PREFIX = "— "

LEGACY_CALLOUT_TYPES = {
    "Note": "info",
    "Info": "info",
    "Tip": "success",
    "Success": "success",
    "Warning": "warning",
    "Danger": "danger",
}

FRAGMENT_TYPES: dict[str, BlockType] = {
    "Callout": BlockType.CALLOUT,
    "Quote": BlockType.QUOTE,
    "Toggle": BlockType.TOGGLE,
    "Math": BlockType.MATH,
    "Html": BlockType.HTML,
    "Table": BlockType.TABLE,
    "Gallery": BlockType.GALLERY,
    "Board": BlockType.BOARD,
    "Calendar": BlockType.CALENDAR,
    "Image": BlockType.IMAGE,
    "Video": BlockType.VIDEO,
    "Bookmark": BlockType.BOOKMARK,
    "Embed": BlockType.EMBED,
    "Audio": BlockType.AUDIO,
    "File": BlockType.FILE,
    "Spacer": BlockType.SPACER,
    "TableOfContents": BlockType.TABLE_OF_CONTENTS,
}

VIDEO_EXTENSIONS = {".mp4", ".webm", ".mov", ".m4v", ".ogv", ".mkv"}
AUDIO_EXTENSIONS = {".mp3", ".wav", ".ogg", ".oga", ".m4a", ".flac", ".aac"}
FILE_EXTENSIONS = {
    ".pdf", ".zip", ".gz", ".tar", ".doc", ".docx", ".xls", ".xlsx",
    ".ppt", ".pptx", ".csv", ".txt", ".json", ".rtf",
}

EMBED_PROVIDERS = (
    ("youtube", ("youtube.com", "youtu.be")),
    ("vimeo", ("vimeo.com",)),
    ("dailymotion", ("dailymotion.com", "dai.ly")),
    ("twitter", ("twitter.com", "x.com")),
    ("discord", ("discord.com",)),
    ("googlemaps", ("google.com/maps", "maps.google.com", "goo.gl/maps")),
)


def parse_markdown(markdown: str) -> Document:
    """Parse Markdown text into a :class:`Document`."""

    return Document(blocks=MarkdownParser(markdown).parse())


class MarkdownParser:
    """Line-oriented Markdown scanner producing blocks."""

    def __init__(self, markdown: str) -> None:
        self._lines = markdown.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        self._pos = 0
        self._readers: tuple[Callable[[str], Optional[Block]], ...] = (
            self._read_blank,
            self._read_heading,
            self._read_list,
            self._read_legacy_callout,
            self._read_quote,
            self._read_divider,
            self._read_code_fence,
            self._read_pipe_table,
            self._read_legacy_table,
            self._read_details,
            self._read_fragment,
            self._read_link_line,
            self._read_image_line,
        )

    def parse(self) -> list[Block]:
        blocks: list[Block] = []
        while self._pos < len(self._lines):
            blocks.append(self._next_block())
        return blocks

    def _next_block(self) -> Block:
        line = self._lines[self._pos]
        for reader in self._readers:
            block = reader(line)
            if block is not None:
                return block
        return self._read_paragraph(line)

    # ------------------------------------------------------------------
    # Line classification
    # ------------------------------------------------------------------
    def _starts_block(self, index: int) -> bool:
        """Whether ``lines[index]`` would be claimed by a non-paragraph reader."""

        line = self._lines[index]
        stripped = line.strip()
        if not stripped:
            return True
        if _HEADING_RE.match(line) or _LIST_ITEM_RE.match(line):
            return True
        if line == ">" or line.startswith("> "):
            return True
        if stripped in ("---", "***") or line.startswith("```"):
            return True
        if stripped.startswith("|") or stripped in ("<table>", "<details>"):
            return True
        if fragments.read_fragment(self._lines, index, FRAGMENT_TYPES) is not None:
            return True
        return bool(_LINK_LINE_RE.match(stripped) or _IMAGE_LINE_RE.match(stripped))

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------
    def _read_blank(self, line: str) -> Optional[Block]:
        if line.strip():
            return None
        self._pos += 1
        return Block(BlockType.PARAGRAPH)

    def _read_heading(self, line: str) -> Optional[Block]:
        match = _HEADING_RE.match(line)
        if not match:
            return None
        self._pos += 1
        return Block(
            BlockType.HEADING,
            inline.normalize(match.group(2) or ""),
            HeadingAttributes(level=len(match.group(1))),
        )

    def _read_list(self, line: str) -> Optional[Block]:
        first = _LIST_ITEM_RE.match(line)
        if not first:
            return None
        ordered = first.group("marker")[0].isdigit()
        items: list[ListItem] = []
        # stack[depth] is the most recent item at that depth
        stack: list[ListItem] = []

        while self._pos < len(self._lines):
            match = _LIST_ITEM_RE.match(self._lines[self._pos])
            if not match:
                break
            depth = min(len(match.group("indent")) // 2, len(stack))
            if depth == 0 and stack and match.group("marker")[0].isdigit() != ordered:
                break
            item = _list_item(match.group("rest") or "")
            del stack[depth:]
            (stack[-1].children if stack else items).append(item)
            stack.append(item)
            self._pos += 1

        return Block(BlockType.LIST, attributes=ListAttributes(ordered=ordered, items=items))

    def _read_legacy_callout(self, line: str) -> Optional[Block]:
        match = _LEGACY_CALLOUT_RE.match(line)
        if not match:
            return None
        self._pos += 1
        return Block(
            BlockType.CALLOUT,
            inline.normalize(match.group(2)),
            CalloutAttributes(type=LEGACY_CALLOUT_TYPES[match.group(1)]),
        )

    def _read_quote(self, line: str) -> Optional[Block]:
        if not _is_quote_line(line):
            return None
        quoted: list[str] = []
        while self._pos < len(self._lines) and _is_quote_line(self._lines[self._pos]):
            quoted.append(self._lines[self._pos][2:])
            self._pos += 1

        citation = None
        if len(quoted) > 1 and quoted[-1].startswith(CITATION_PREFIX):
            citation = quoted.pop()[len(CITATION_PREFIX):]
        content = "\n".join(inline.normalize(text) for text in quoted)
        return Block(BlockType.QUOTE, content, QuoteAttributes(citation=citation))

    def _read_divider(self, line: str) -> Optional[Block]:
        if line.strip() not in ("---", "***"):
            return None
        self._pos += 1
        return Block(BlockType.DIVIDER)

    def _read_code_fence(self, line: str) -> Optional[Block]:
        if not line.startswith("```"):
            return None
        end = fragments.closing_fence(self._lines, self._pos)
        if end is not None:
            body = "\n".join(self._lines[self._pos + 1 : end])
            self._pos = end + 1
            return Block(BlockType.CODE, body, CodeAttributes(language=line[3:].strip()))
        logger.debug("Unterminated code fence at line %d treated as paragraph", self._pos + 1)
        return None

    def _read_pipe_table(self, line: str) -> Optional[Block]:
        if not line.strip().startswith("|"):
            return None
        rows: list[str] = []
        while self._pos < len(self._lines) and self._lines[self._pos].strip().startswith("|"):
            rows.append(self._lines[self._pos])
            self._pos += 1
        return Block(BlockType.TABLE, attributes=parse_pipe_table(rows))

    def _read_legacy_table(self, line: str) -> Optional[Block]:
        if line.strip() != "<table>":
            return None
        for index in range(self._pos + 1, len(self._lines)):
            if self._lines[index].strip() == "</table>":
                rows = [row.split("\t") for row in self._lines[self._pos + 1 : index]]
                self._pos = index + 1
                return Block(BlockType.TABLE, attributes=TableAttributes(rows=rows, header=False))
        logger.debug("Unterminated <table> at line %d treated as paragraph", self._pos + 1)
        return None

    def _read_details(self, line: str) -> Optional[Block]:
        if line.strip() != "<details>":
            return None
        for index in range(self._pos + 1, len(self._lines)):
            if self._lines[index].strip() != "</details>":
                continue
            inner = self._lines[self._pos + 1 : index]
            summary = "Details"
            if inner:
                match = _SUMMARY_RE.match(inner[0])
                if match:
                    summary = match.group(1)
                    inner = inner[1:]
            self._pos = index + 1
            return Block(BlockType.TOGGLE, "\n".join(inner), ToggleAttributes(summary=summary))
        logger.debug("Unterminated <details> at line %d treated as paragraph", self._pos + 1)
        return None

    def _read_fragment(self, line: str) -> Optional[Block]:
        if not line.startswith("<"):
            return None
        fragment = fragments.read_fragment(self._lines, self._pos, FRAGMENT_TYPES)
        if fragment is None:
            opening = fragments.match_open_tag(line.rstrip(), FRAGMENT_TYPES)
            if opening is not None:
                logger.debug("Unclosed <%s> at line %d treated as paragraph", opening.group("name"), self._pos + 1)
            return None
        self._pos += fragment.line_count
        return block_from_fragment(fragment)

    def _read_link_line(self, line: str) -> Optional[Block]:
        match = _LINK_LINE_RE.match(line.strip())
        if not match:
            return None
        self._pos += 1
        return block_from_link(match.group(1), match.group(2))

    def _read_image_line(self, line: str) -> Optional[Block]:
        match = _IMAGE_LINE_RE.match(line.strip())
        if not match:
            return None
        self._pos += 1
        return Block(
            BlockType.IMAGE,
            match.group(3).strip(),
            ImageAttributes(src=match.group(2), alt=match.group(1)),
        )

    def _read_paragraph(self, line: str) -> Block:
        collected = [line]
        self._pos += 1
        while self._pos < len(self._lines) and not self._starts_block(self._pos):
            collected.append(self._lines[self._pos])
            self._pos += 1
        return Block(BlockType.PARAGRAPH, "\n".join(inline.normalize(text) for text in collected))


# ----------------------------------------------------------------------
# Helpers shared with the serializer and the fragment mapping
# ----------------------------------------------------------------------
def _is_quote_line(line: str) -> bool:
    return line == ">" or line.startswith("> ")


def is_legacy_callout(line: str) -> bool:
    return _LEGACY_CALLOUT_RE.match(line) is not None


def _list_item(rest: str) -> ListItem:
    checkbox = _CHECKBOX_RE.match(rest)
    if checkbox:
        return ListItem(
            content=inline.normalize(checkbox.group("content") or ""),
            checked=checkbox.group("mark") in "xX",
        )
    return ListItem(content=inline.normalize(rest))


def split_table_row(line: str) -> list[str]:
    row = line.strip()
    if row.startswith("|"):
        row = row[1:]
    if row.endswith("|") and not row.endswith("\\|"):
        row = row[:-1]
    return [cell.strip().replace("\\|", "|") for cell in _CELL_SPLIT_RE.split(row)]


def parse_pipe_table(lines: list[str]) -> TableAttributes:
    rows = [split_table_row(line) for line in lines if line.strip()]
    if not rows:
        return TableAttributes()
    header = len(rows) > 1 and all(_TABLE_SEPARATOR_CELL_RE.match(cell) for cell in rows[1])
    if header:
        del rows[1]
    return TableAttributes(rows=rows, header=header)


def _as_optional_int(value: object) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def detect_provider(url: str) -> Optional[str]:
    parsed = urlparse(url.lower())
    host = parsed.netloc.rsplit("@", 1)[-1].split(":", 1)[0]
    for provider, markers in EMBED_PROVIDERS:
        for marker in markers:
            domain, _, prefix = marker.partition("/")
            if host != domain and not host.endswith("." + domain):
                continue
            if not prefix or parsed.path.startswith(f"/{prefix}"):
                return provider
    return None


def block_from_link(text: str, url: str) -> Block:
    """Classify a line holding only ``[text](url)`` as a media block."""

    keyword = text.strip().lower()
    extension = posixpath.splitext(urlparse(url).path)[1].lower()
    caption = "" if keyword in ("video", "audio", "file", "embed", "bookmark") else text

    if keyword == "video" or extension in VIDEO_EXTENSIONS:
        return Block(BlockType.VIDEO, caption, VideoAttributes(src=url))
    if keyword == "audio" or extension in AUDIO_EXTENSIONS:
        return Block(BlockType.AUDIO, attributes=AudioAttributes(src=url))
    if keyword == "file" or extension in FILE_EXTENSIONS:
        filename = caption or posixpath.basename(urlparse(url).path)
        return Block(BlockType.FILE, attributes=FileAttributes(src=url, filename=filename))
    if keyword == "bookmark":
        return Block(BlockType.BOOKMARK, attributes=BookmarkAttributes(url=url))
    return Block(BlockType.EMBED, caption, EmbedAttributes(url=url, provider=detect_provider(url)))


def block_from_fragment(fragment: fragments.Fragment) -> Block:
    block_type = FRAGMENT_TYPES[fragment.name]
    body = fragment.body or ""

    if block_type == BlockType.CALLOUT:
        return Block(
            block_type,
            body,
            CalloutAttributes(type=fragment.get("type", "info"), icon=fragment.get("icon", "!")),
        )
    if block_type == BlockType.QUOTE:
        return Block(block_type, body, QuoteAttributes(citation=fragment.get("citation") or None))
    if block_type == BlockType.TOGGLE:
        return _toggle_from_body(fragment.get("summary", "Details"), body)
    if block_type == BlockType.TABLE:
        return Block(block_type, attributes=parse_pipe_table(body.split("\n")))
    if block_type == BlockType.IMAGE:
        return Block(
            block_type,
            body,
            ImageAttributes(
                src=fragment.get("src"),
                alt=fragment.get("alt"),
                width=_as_optional_int(fragment.attributes.get("width")),
                height=_as_optional_int(fragment.attributes.get("height")),
            ),
        )
    if block_type == BlockType.VIDEO:
        return Block(
            block_type,
            body,
            VideoAttributes(
                src=fragment.get("src"),
                poster=fragment.get("poster") or None,
                controls=fragment.flag("controls"),
                autoplay=fragment.flag("autoplay"),
            ),
        )
    if block_type == BlockType.AUDIO:
        return Block(
            block_type,
            body,
            AudioAttributes(
                src=fragment.get("src"),
                controls=fragment.flag("controls"),
                autoplay=fragment.flag("autoplay"),
            ),
        )
    if block_type == BlockType.FILE:
        return Block(block_type, body, FileAttributes(src=fragment.get("src"), filename=fragment.get("name")))
    if block_type == BlockType.BOOKMARK:
        return Block(block_type, body, BookmarkAttributes(url=fragment.get("url"), title=fragment.get("title")))
    if block_type == BlockType.EMBED:
        return Block(block_type, body, EmbedAttributes(url=fragment.get("url"), provider=fragment.get("provider") or None))
    if block_type == BlockType.SPACER:
        height = _as_optional_int(fragment.attributes.get("height"))
        return Block(block_type, attributes=SpacerAttributes(height=24 if height is None else height))
    return Block(block_type, body)


def _toggle_from_body(summary: str, body: str) -> Block:
    # Plain-text bodies stay as content; anything structured becomes children.
    children = MarkdownParser(body).parse() if body else []
    attributes = ToggleAttributes(summary=summary)
    if all(child.type == BlockType.PARAGRAPH for child in children):
        return Block(BlockType.TOGGLE, body, attributes)
    return Block(BlockType.TOGGLE, attributes=attributes, children=children)
