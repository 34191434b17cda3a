"""Dataclasses representing markdown pages checked out into a local workspace."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from markblocks.storage.models import MarkdownPage


@dataclass(slots=True)
class LocalPageMetadata:
    """Metadata persisted in the frontmatter of a local page file."""

    slug: str
    page_id: Optional[str] = None
    content_id: Optional[str] = None
    status: str = "draft"
    version: Optional[int] = None
    lang: Optional[str] = None
    frontmatter: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class LocalPage:
    """Representation of a page stored on disk."""

    path: Path
    metadata: LocalPageMetadata
    body: str

    @property
    def title(self) -> str:
        return str(self.metadata.frontmatter.get("title") or self.metadata.slug)

    @property
    def page_id(self) -> Optional[str]:
        return self.metadata.page_id

    def to_remote(self, *, content_id: Optional[str] = None) -> MarkdownPage:
        return MarkdownPage(
            id=self.metadata.page_id or "",
            slug=self.metadata.slug,
            body=self.body,
            content_id=content_id or self.metadata.content_id,
            frontmatter=dict(self.metadata.frontmatter),
            status=self.metadata.status,
            version=self.metadata.version,
            lang=self.metadata.lang,
        )
