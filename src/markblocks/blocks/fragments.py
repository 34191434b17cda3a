"""Tagged-fragment extension syntax for blocks with no native Markdown form.

Version 1 of the grammar knows three shapes, all starting at column zero::

    <Spacer height="24" />                      self-closing
    <Image src="a.png" alt="A">caption</Image>  inline, single line
    <Callout type="info" icon="!">              block, closed by a line
    body                                        holding only the end tag
    </Callout>

Attribute values are double-quoted and HTML-escaped, line breaks included.
Boolean attributes are written as a bare name when true and omitted when
false.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Union

FRAGMENT_VERSION = 1

AttributeValue = Union[str, bool]

_OPEN_TAG_RE = re.compile(
    r"^<(?P<name>[A-Z][A-Za-z]*)"
    r"(?P<attrs>(?:\s+[A-Za-z][\w-]*(?:=\"[^\"]*\")?)*)"
    r"\s*(?P<slash>/?)>(?P<rest>.*)$"
)
_ATTRIBUTE_RE = re.compile(r"([A-Za-z][\w-]*)(?:=\"([^\"]*)\")?")


@dataclass(slots=True)
class Fragment:
    """A parsed fragment and the number of source lines it spans."""

    name: str
    attributes: dict[str, AttributeValue] = field(default_factory=dict)
    body: Optional[str] = None
    line_count: int = 1

    def get(self, key: str, default: str = "") -> str:
        value = self.attributes.get(key)
        if value is None or isinstance(value, bool):
            return default
        return value

    def flag(self, key: str) -> bool:
        return key in self.attributes and self.attributes[key] is not False


# ----------------------------------------------------------------------
# Writing
# ----------------------------------------------------------------------
def format_attributes(attributes: Iterable[tuple[str, object]]) -> str:
    parts: list[str] = []
    for name, value in attributes:
        if value is None or value is False:
            continue
        if value is True:
            parts.append(f" {name}")
        else:
            escaped = html.escape(str(value), quote=True).replace("\n", "&#10;")
            parts.append(f' {name}="{escaped}"')
    return "".join(parts)


def self_closing(name: str, attributes: Iterable[tuple[str, object]] = ()) -> str:
    return f"<{name}{format_attributes(attributes)} />"


def inline(name: str, attributes: Iterable[tuple[str, object]], content: str) -> str:
    """Single-line fragment; content holding line breaks moves to block form."""

    if "\n" in content:
        return block(name, attributes, content)
    return f"<{name}{format_attributes(attributes)}>{content}</{name}>"


def block(name: str, attributes: Iterable[tuple[str, object]], body: str) -> str:
    return f"<{name}{format_attributes(attributes)}>\n{body}\n</{name}>"


# ----------------------------------------------------------------------
# Reading
# ----------------------------------------------------------------------
def parse_attributes(raw: str) -> dict[str, AttributeValue]:
    attributes: dict[str, AttributeValue] = {}
    for match in _ATTRIBUTE_RE.finditer(raw):
        name, value = match.group(1), match.group(2)
        attributes[name] = True if value is None else html.unescape(value)
    return attributes


def match_open_tag(line: str, names: Optional[Iterable[str]] = None) -> Optional[re.Match]:
    match = _OPEN_TAG_RE.match(line)
    if match is None:
        return None
    if names is not None and match.group("name") not in names:
        return None
    return match


def read_fragment(lines: Sequence[str], start: int, names: Iterable[str]) -> Optional[Fragment]:
    """Read the fragment opening at ``lines[start]``.

    Returns ``None`` when the line is not an opening tag of ``names`` or when
    the fragment is never closed.
    """

    match = match_open_tag(lines[start].rstrip(), names)
    if match is None:
        return None
    name = match.group("name")
    attributes = parse_attributes(match.group("attrs"))
    rest = match.group("rest")
    closer = f"</{name}>"

    if match.group("slash"):
        if rest.strip():
            return None
        return Fragment(name=name, attributes=attributes)

    if rest:
        if not rest.endswith(closer):
            return None
        return Fragment(name=name, attributes=attributes, body=rest[: -len(closer)])

    depth = 0
    index = start + 1
    while index < len(lines):
        candidate = lines[index].rstrip()
        if candidate.startswith("```"):
            fence_end = closing_fence(lines, index)
            if fence_end is not None:
                # Tags inside fenced code are literal text.
                index = fence_end + 1
                continue
        if candidate == closer:
            if depth == 0:
                body = "\n".join(lines[start + 1 : index])
                return Fragment(name=name, attributes=attributes, body=body, line_count=index - start + 1)
            depth -= 1
        else:
            nested = match_open_tag(candidate, (name,))
            if nested is not None and not nested.group("slash") and not nested.group("rest"):
                depth += 1
        index += 1
    return None


def closing_fence(lines: Sequence[str], start: int) -> Optional[int]:
    """Index of the line closing the code fence opened at ``lines[start]``, if any."""

    for index in range(start + 1, len(lines)):
        if lines[index].strip().startswith("```"):
            return index
    return None
