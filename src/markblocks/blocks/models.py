"""Typed models for the block representation of a Markdown page."""

from __future__ import annotations

import copy
import uuid
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Iterable, Iterator, Optional, Union

from .inline import to_plain_text


class BlockType(str, Enum):
    """Closed vocabulary of block kinds understood by the editors."""

    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST = "list"
    QUOTE = "quote"
    CALLOUT = "callout"
    DIVIDER = "divider"
    SPACER = "spacer"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    BOOKMARK = "bookmark"
    EMBED = "embed"
    CODE = "code"
    MATH = "math"
    TOGGLE = "toggle"
    TABLE = "table"
    TABLE_OF_CONTENTS = "tableOfContents"
    GALLERY = "gallery"
    BOARD = "board"
    CALENDAR = "calendar"
    HTML = "html"


def new_id(length: int = 8) -> str:
    """Return a fresh opaque identifier."""

    return uuid.uuid4().hex[:length]


def _as_list(value: Any, *, wrap: bool = False) -> list[Any]:
    """Return ``value`` if it is a list; otherwise an empty list, or ``[value]`` with ``wrap``."""

    if isinstance(value, list):
        return value
    if wrap and value is not None:
        return [value]
    return []


# ----------------------------------------------------------------------
# Attribute variants
# ----------------------------------------------------------------------
class _Attributes:
    __slots__ = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "_Attributes":
        known = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class NoAttributes(_Attributes):
    """Attribute set of block types that carry nothing besides content."""


@dataclass(slots=True)
class HeadingAttributes(_Attributes):
    level: int = 2


@dataclass(slots=True)
class ListItem:
    """Single entry of a list block.

    ``checked`` is tri-state: ``None`` for a plain item, ``True``/``False`` for
    checklist items.
    """

    content: str = ""
    checked: Optional[bool] = None
    children: list["ListItem"] = field(default_factory=list)
    id: str = field(default_factory=lambda: new_id(6), compare=False)

    @classmethod
    def from_dict(cls, data: Any) -> "ListItem":
        if not isinstance(data, dict):
            data = {"content": "" if data is None else str(data)}
        checked = data.get("checked")
        return cls(
            content=str(data.get("content") or ""),
            checked=None if checked is None else bool(checked),
            children=[cls.from_dict(child) for child in _as_list(data.get("children"))],
            id=str(data.get("id") or new_id(6)),
        )

    def iter_subtree(self) -> Iterator["ListItem"]:
        yield self
        for child in self.children:
            yield from child.iter_subtree()


@dataclass(slots=True)
class ListAttributes(_Attributes):
    ordered: bool = False
    items: list[ListItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.items:
            self.items = [ListItem()]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ListAttributes":
        return cls(
            ordered=bool(data.get("ordered", False)),
            items=[ListItem.from_dict(item) for item in _as_list(data.get("items"))],
        )

    def iter_items(self) -> Iterator[ListItem]:
        """Yield every item, nested ones included, in document order."""

        for item in self.items:
            yield from item.iter_subtree()

    def find_item(self, item_id: str) -> Optional[ListItem]:
        for item in self.iter_items():
            if item.id == item_id:
                return item
        return None

    def add_item(self, content: str = "", *, after: Optional[str] = None, checked: Optional[bool] = None) -> ListItem:
        """Insert a sibling after ``after`` (or append at top level)."""

        item = ListItem(content=content, checked=checked)
        if after is None:
            self.items.append(item)
            return item
        siblings = self._siblings_of(after)
        if siblings is None:
            raise ValueError(f"Unknown list item id {after!r}")
        index = next(i for i, sibling in enumerate(siblings) if sibling.id == after)
        siblings.insert(index + 1, item)
        return item

    def remove_item(self, item_id: str) -> None:
        siblings = self._siblings_of(item_id)
        if siblings is None:
            raise ValueError(f"Unknown list item id {item_id!r}")
        siblings[:] = [item for item in siblings if item.id != item_id]
        if not self.items:
            self.items.append(ListItem())

    def _siblings_of(self, item_id: str) -> Optional[list[ListItem]]:
        pending = [self.items]
        while pending:
            group = pending.pop()
            for item in group:
                if item.id == item_id:
                    return group
                pending.append(item.children)
        return None


@dataclass(slots=True)
class QuoteAttributes(_Attributes):
    citation: Optional[str] = None


@dataclass(slots=True)
class CalloutAttributes(_Attributes):
    type: str = "info"
    icon: str = "!"


@dataclass(slots=True)
class SpacerAttributes(_Attributes):
    height: int = 24


@dataclass(slots=True)
class ImageAttributes(_Attributes):
    src: str = ""
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(slots=True)
class VideoAttributes(_Attributes):
    src: str = ""
    poster: Optional[str] = None
    controls: bool = True
    autoplay: bool = False


@dataclass(slots=True)
class AudioAttributes(_Attributes):
    src: str = ""
    controls: bool = True
    autoplay: bool = False


@dataclass(slots=True)
class FileAttributes(_Attributes):
    src: str = ""
    filename: str = ""


@dataclass(slots=True)
class BookmarkAttributes(_Attributes):
    url: str = ""
    title: str = ""


@dataclass(slots=True)
class EmbedAttributes(_Attributes):
    url: str = ""
    provider: Optional[str] = None


@dataclass(slots=True)
class CodeAttributes(_Attributes):
    language: str = ""


@dataclass(slots=True)
class ToggleAttributes(_Attributes):
    summary: str = "Details"


@dataclass(slots=True)
class TableAttributes(_Attributes):
    rows: list[list[str]] = field(default_factory=list)
    header: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TableAttributes":
        rows = [[str(cell) for cell in _as_list(row, wrap=True)] for row in _as_list(data.get("rows"))]
        return cls(rows=rows, header=bool(data.get("header", True)))


BlockAttributes = Union[
    NoAttributes,
    HeadingAttributes,
    ListAttributes,
    QuoteAttributes,
    CalloutAttributes,
    SpacerAttributes,
    ImageAttributes,
    VideoAttributes,
    AudioAttributes,
    FileAttributes,
    BookmarkAttributes,
    EmbedAttributes,
    CodeAttributes,
    ToggleAttributes,
    TableAttributes,
]

ATTRIBUTE_TYPES: dict[BlockType, type] = {
    BlockType.HEADING: HeadingAttributes,
    BlockType.LIST: ListAttributes,
    BlockType.QUOTE: QuoteAttributes,
    BlockType.CALLOUT: CalloutAttributes,
    BlockType.SPACER: SpacerAttributes,
    BlockType.IMAGE: ImageAttributes,
    BlockType.VIDEO: VideoAttributes,
    BlockType.AUDIO: AudioAttributes,
    BlockType.FILE: FileAttributes,
    BlockType.BOOKMARK: BookmarkAttributes,
    BlockType.EMBED: EmbedAttributes,
    BlockType.CODE: CodeAttributes,
    BlockType.TOGGLE: ToggleAttributes,
    BlockType.TABLE: TableAttributes,
}


def attributes_for(block_type: Union[BlockType, str], data: Optional[dict[str, Any]] = None) -> BlockAttributes:
    """Build the attribute variant of ``block_type``, ignoring unknown keys."""

    cls = ATTRIBUTE_TYPES.get(block_type, NoAttributes)  # type: ignore[arg-type]
    return cls.from_dict(data or {})


def _coerce_type(value: Union[BlockType, str]) -> Union[BlockType, str]:
    if isinstance(value, BlockType):
        return value
    try:
        return BlockType(value)
    except ValueError:
        return value


# ----------------------------------------------------------------------
# Blocks
# ----------------------------------------------------------------------
@dataclass(slots=True)
class Block:
    """One structural unit of a page."""

    type: Union[BlockType, str]
    content: str = ""
    attributes: Any = None
    children: list["Block"] = field(default_factory=list)
    id: str = field(default_factory=new_id, compare=False)

    def __post_init__(self) -> None:
        self.type = _coerce_type(self.type)
        if self.attributes is None:
            self.attributes = attributes_for(self.type)
        elif isinstance(self.attributes, dict):
            self.attributes = attributes_for(self.type, self.attributes)

    @property
    def is_blank(self) -> bool:
        """True for the empty paragraphs that stand for blank lines."""

        return self.type == BlockType.PARAGRAPH and self.content == "" and not self.children

    def iter_subtree(self) -> Iterator["Block"]:
        yield self
        for child in self.children:
            yield from child.iter_subtree()

    def iter_ids(self) -> Iterator[str]:
        for block in self.iter_subtree():
            yield block.id
            if isinstance(block.attributes, ListAttributes):
                for item in block.attributes.iter_items():
                    yield item.id

    def clone(self) -> "Block":
        """Deep copy with fresh ids for the block, its children and list items."""

        duplicate = copy.deepcopy(self)
        for block in duplicate.iter_subtree():
            block.id = new_id()
            if isinstance(block.attributes, ListAttributes):
                for item in block.attributes.iter_items():
                    item.id = new_id(6)
        return duplicate

    def to_dict(self) -> dict[str, Any]:
        type_name = self.type.value if isinstance(self.type, BlockType) else self.type
        data: dict[str, Any] = {
            "id": self.id,
            "type": type_name,
            "content": self.content,
            "attributes": self.attributes.to_dict(),
        }
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Block":
        if not isinstance(data, dict):
            return cls(BlockType.PARAGRAPH, "" if data is None else str(data))
        block_type = data.get("type")
        attributes = data.get("attributes")
        return cls(
            type=block_type if isinstance(block_type, str) and block_type else BlockType.PARAGRAPH,
            content=str(data.get("content") or ""),
            attributes=dict(attributes) if isinstance(attributes, dict) else {},
            children=[cls.from_dict(child) for child in _as_list(data.get("children"))],
            id=str(data.get("id") or new_id()),
        )


def create_empty_block(block_type: Union[BlockType, str]) -> Block:
    """Return a new block carrying the editor defaults for ``block_type``."""

    block_type = _coerce_type(block_type)
    block = Block(type=block_type)
    if block_type == BlockType.CODE:
        block.attributes.language = "plaintext"
    return block


@dataclass(slots=True)
class OutlineEntry:
    """Heading reference used to render a table of contents."""

    block_id: str
    level: int
    title: str


@dataclass(slots=True)
class Document:
    """Ordered sequence of blocks; list position is display order."""

    blocks: list[Block] = field(default_factory=list)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for block in self.blocks:
            self._claim_ids(block, seen)

    def __iter__(self) -> Iterator[Block]:
        return iter(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)

    def __getitem__(self, index: int) -> Block:
        return self.blocks[index]

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def walk(self) -> Iterator[Block]:
        """Yield every block depth-first, nested toggle children included."""

        for block in self.blocks:
            yield from block.iter_subtree()

    def get(self, block_id: str) -> Optional[Block]:
        for block in self.walk():
            if block.id == block_id:
                return block
        return None

    def index_of(self, block_id: str) -> int:
        for index, block in enumerate(self.blocks):
            if block.id == block_id:
                return index
        raise ValueError(f"Unknown block id {block_id!r}")

    def outline(self) -> list[OutlineEntry]:
        return [
            OutlineEntry(block_id=block.id, level=block.attributes.level, title=to_plain_text(block.content))
            for block in self.walk()
            if block.type == BlockType.HEADING
        ]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def insert(self, index: int, block: Block) -> Block:
        seen = set(self._all_ids())
        self._claim_ids(block, seen)
        self.blocks.insert(index, block)
        return block

    def append(self, block: Block) -> Block:
        return self.insert(len(self.blocks), block)

    def extend(self, blocks: Iterable[Block]) -> None:
        for block in blocks:
            self.append(block)

    def remove(self, block_id: str) -> Block:
        return self.blocks.pop(self.index_of(block_id))

    def move(self, block_id: str, new_index: int) -> None:
        block = self.remove(block_id)
        new_index = max(0, min(new_index, len(self.blocks)))
        self.blocks.insert(new_index, block)

    def duplicate(self, block_id: str) -> Block:
        index = self.index_of(block_id)
        duplicate = self.blocks[index].clone()
        self.blocks.insert(index + 1, duplicate)
        return duplicate

    def reset(self) -> None:
        self.blocks.clear()

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {"blocks": [block.to_dict() for block in self.blocks]}

    @classmethod
    def from_dict(cls, data: Union[dict[str, Any], list[Any]]) -> "Document":
        raw_blocks = data.get("blocks") if isinstance(data, dict) else data
        raw_blocks = _as_list(raw_blocks)
        return cls(blocks=[Block.from_dict(item) for item in raw_blocks])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _all_ids(self) -> Iterator[str]:
        for block in self.blocks:
            yield from block.iter_ids()

    @staticmethod
    def _claim_ids(block: Block, seen: set[str]) -> None:
        for identifier in block.iter_ids():
            if identifier in seen:
                raise ValueError(f"Duplicate id {identifier!r} in document")
            seen.add(identifier)
