"""Conversion between styled text runs and Markdown inline syntax.

A run is a piece of text carrying style flags. A single run is wrapped in a
fixed order (bold, italic, underline, strike, code, highlight, then the
link), so ``==`~~<u>***text***</u>~~`==`` is the fully marked form. A sequence
of runs wraps each mark once around the longest stretch of neighbours that
share it, which keeps nested source such as ``**a *b* c**`` intact.

Parsing tokenizes outermost-first: at each position the code, link,
underline, bold, strike, highlight and italic syntaxes are tried in that
order and a matched wrapper is stripped recursively. ``normalize`` is
therefore idempotent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Union


MARK_ORDER = ("bold", "italic", "underline", "strike", "code", "highlight")

_WRAPPERS = {
    "bold": ("**", "**"),
    "italic": ("*", "*"),
    "underline": ("<u>", "</u>"),
    "strike": ("~~", "~~"),
    "code": ("`", "`"),
    "highlight": ("==", "=="),
}

_LINK_RE = re.compile(r"\[([^\[\]]+)\]\(([^()\s]*)\)")

# Wrapping layers from outermost to innermost.
_LAYERS = ("link",) + tuple(reversed(MARK_ORDER))

# Marks a code span may cover and still round-trip.
_CODE_COVERABLE = ("bold", "italic", "underline", "strike")


@dataclass(slots=True, frozen=True)
class TextRun:
    """Text with inline style flags."""

    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    code: bool = False
    highlight: bool = False
    link: Optional[str] = None

    @property
    def marks(self) -> tuple[str, ...]:
        return tuple(mark for mark in MARK_ORDER if getattr(self, mark))


def run_to_markdown(run: TextRun) -> str:
    return to_markdown([run])


def to_markdown(runs: Union[TextRun, Iterable[TextRun]]) -> str:
    """Render one run or a sequence of runs as Markdown inline text."""

    if isinstance(runs, TextRun):
        runs = [runs]
    return _render([(run.text, _active_layers(run)) for run in runs if run.text])


def from_markdown(text: str) -> list[TextRun]:
    """Split Markdown inline text into styled runs."""

    if not text:
        return []
    return _tokenize(text, TextRun(""))


def normalize(text: str) -> str:
    return to_markdown(from_markdown(text))


def to_plain_text(text: str) -> str:
    """Drop inline markup, keeping only the visible text."""

    return "".join(run.text for run in from_markdown(text))


# ----------------------------------------------------------------------
# Renderer
# ----------------------------------------------------------------------
def _active_layers(run: TextRun) -> dict[str, object]:
    layers: dict[str, object] = {mark: True for mark in run.marks}
    if run.link is not None:
        layers["link"] = run.link
    return layers


def _render(items: list[tuple[str, dict[str, object]]]) -> str:
    parts: list[str] = []
    index = 0
    while index < len(items):
        text, layers = items[index]
        if not layers:
            parts.append(text)
            index += 1
            continue
        # Wrap the layer shared by the longest stretch of neighbours; ties keep the outermost.
        chosen, end = "", index
        for layer in _LAYERS:
            if layer not in layers:
                continue
            stop = index + 1
            while stop < len(items) and items[stop][1].get(layer) == layers[layer]:
                stop += 1
            if stop > end:
                chosen, end = layer, stop
        inner = _render(
            [(item_text, {key: value for key, value in item_layers.items() if key != chosen})
             for item_text, item_layers in items[index:end]]
        )
        if chosen == "link":
            parts.append(f"[{inner}]({layers['link']})")
        else:
            opener, closer = _WRAPPERS[chosen]
            parts.append(f"{opener}{inner}{closer}")
        index = end
    return "".join(parts)


# ----------------------------------------------------------------------
# Tokenizer
# ----------------------------------------------------------------------
def _tokenize(text: str, style: TextRun) -> list[TextRun]:
    runs: list[TextRun] = []
    plain: list[str] = []
    index = 0

    def _flush() -> None:
        if plain:
            runs.append(replace(style, text="".join(plain)))
            plain.clear()

    while index < len(text):
        span = _match_span(text, index)
        if span is None:
            plain.append(text[index])
            index += 1
            continue
        _flush()
        kind, inner, end, target = span
        if kind == "link":
            runs.extend(_tokenize(inner, replace(style, link=target)))
        elif kind == "code":
            code_style = replace(style, code=True)
            covering = _match_span(inner, 0)
            if covering is not None and covering[0] in _CODE_COVERABLE and covering[2] == len(inner):
                runs.extend(_tokenize(inner, code_style))
            else:
                runs.append(replace(code_style, text=inner))
        else:
            runs.extend(_tokenize(inner, replace(style, **{kind: True})))
        index = end
    _flush()
    return runs


def _match_span(text: str, index: int) -> Optional[tuple[str, str, int, Optional[str]]]:
    """Return ``(kind, inner, end, link_target)`` for a span opening at ``index``."""

    char = text[index]
    if char == "`":
        close = text.find("`", index + 2)
        if close != -1:
            return "code", text[index + 1 : close], close + 1, None
    if char == "[" and (index == 0 or text[index - 1] != "!"):
        match = _LINK_RE.match(text, index)
        if match:
            return "link", match.group(1), match.end(), match.group(2)
    if text.startswith("<u>", index):
        close = text.find("</u>", index + 4)
        if close != -1:
            return "underline", text[index + 3 : close], close + 4, None
    for kind, delimiter in (("bold", "**"), ("strike", "~~"), ("highlight", "==")):
        if text.startswith(delimiter, index):
            close = _find_double_closer(text, delimiter, index + 3)
            if close != -1:
                return kind, text[index + 2 : close], close + 2, None
    if char == "*":
        close = _find_single_star(text, index + 2)
        if close != -1:
            return "italic", text[index + 1 : close], close + 1, None
    return None


def _find_double_closer(text: str, delimiter: str, start: int) -> int:
    # A run of three or more delimiter characters closes on its last pair.
    close = text.find(delimiter, start)
    while close != -1 and text[close + 2 : close + 3] == delimiter[0]:
        close = text.find(delimiter, close + 1)
    return close


def _find_single_star(text: str, start: int) -> int:
    close = text.find("*", start)
    while close != -1:
        if text[close - 1] != "*" and text[close + 1 : close + 2] != "*":
            return close
        close = text.find("*", close + 1)
    return -1
