"""Utilities for mapping page titles to slugs and file names."""

from __future__ import annotations

import re


_NON_WORD_RE = re.compile(r"[^\w]+", re.UNICODE)


def slugify(value: str, *, fallback: str = "page") -> str:
    """Return a URL- and filesystem-safe slug derived from ``value``.

    Letters outside ASCII are kept so Japanese titles still produce readable
    slugs; everything else collapses into single hyphens.
    """

    value = value.lower().strip()
    value = _NON_WORD_RE.sub("-", value).replace("_", "-")
    value = re.sub(r"-{2,}", "-", value).strip("-")
    if not value:
        return fallback
    return value[:120]
