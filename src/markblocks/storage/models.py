"""Typed models for the content storage API payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(slots=True)
class ContentSummary:
    """Entry of the content index (one content space)."""

    id: str
    title: str
    summary: Optional[str] = None
    lang: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    tags: list[str] = field(default_factory=list)


@dataclass(slots=True)
class MarkdownPage:
    """Persisted form of a document: frontmatter plus Markdown body."""

    id: str
    slug: str
    body: str = ""
    content_id: Optional[str] = None
    frontmatter: dict[str, Any] = field(default_factory=dict)
    status: str = "draft"
    version: Optional[int] = None
    lang: Optional[str] = None
    path: Optional[str] = None
    html_cache: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    published_at: Optional[str] = None

    @property
    def title(self) -> str:
        return str(self.frontmatter.get("title") or self.slug)

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase request body accepted by the API."""

        payload: dict[str, Any] = {
            "slug": self.slug,
            "frontmatter": self.frontmatter,
            "body": self.body,
            "status": self.status,
        }
        if self.id:
            payload["id"] = self.id
        optional = {
            "contentId": self.content_id,
            "lang": self.lang,
            "path": self.path,
            "htmlCache": self.html_cache,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload


@dataclass(slots=True)
class MediaItem:
    """Media stored alongside a content space."""

    id: str
    filename: str
    mime_type: str
    size: int = 0
    content_id: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    alt: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(slots=True)
class MutationResult:
    """Acknowledgement returned by create/update/delete calls."""

    ok: bool
    id: Optional[str] = None
    slug: Optional[str] = None
