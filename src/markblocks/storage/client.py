"""HTTP client wrapper for the content storage REST API."""

from __future__ import annotations

import base64
import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .models import ContentSummary, MarkdownPage, MediaItem, MutationResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3020"


class StorageApiError(RuntimeError):
    """Raised when the storage API rejects a request or answers garbage."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class StorageClient:
    """Thin wrapper above the editor-home storage API."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "StorageClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401 - standard context manager signature
        self.close()

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------
    def _request(self, method: str, url: str, *, params: Optional[dict] = None, **kwargs) -> Any:
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        logger.debug("%s %s params=%s", method, url, params)
        response = self._client.request(method, url, params=params, **kwargs)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageApiError(
                f"Request to {exc.request.url} failed with status {response.status_code}",
                status_code=response.status_code,
                details=_response_details(response),
            ) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise StorageApiError(
                f"Failed to parse JSON response from {response.request.url}",
                status_code=response.status_code,
                details=response.text,
            ) from exc

    # ------------------------------------------------------------------
    # Parsers
    # ------------------------------------------------------------------
    @staticmethod
    def _to_content_summary(data: dict) -> ContentSummary:
        return ContentSummary(
            id=str(data["id"]),
            title=data.get("title", ""),
            summary=data.get("summary"),
            lang=data.get("lang"),
            status=data.get("status"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            tags=list(data.get("tags") or []),
        )

    @staticmethod
    def _to_markdown_page(data: dict) -> MarkdownPage:
        version = data.get("version")
        return MarkdownPage(
            id=str(data["id"]),
            slug=data.get("slug", ""),
            body=data.get("body") or "",
            content_id=data.get("contentId"),
            frontmatter=dict(data.get("frontmatter") or {}),
            status=data.get("status") or "draft",
            version=int(version) if version is not None else None,
            lang=data.get("lang"),
            path=data.get("path"),
            html_cache=data.get("htmlCache"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            published_at=data.get("publishedAt"),
        )

    @staticmethod
    def _to_media_item(data: dict) -> MediaItem:
        return MediaItem(
            id=str(data["id"]),
            filename=data.get("filename", ""),
            mime_type=data.get("mimeType", "application/octet-stream"),
            size=int(data.get("size") or 0),
            content_id=data.get("contentId"),
            width=data.get("width"),
            height=data.get("height"),
            alt=data.get("alt"),
            description=data.get("description"),
            tags=list(data.get("tags") or []),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    @staticmethod
    def _to_mutation_result(data: dict) -> MutationResult:
        return MutationResult(
            ok=bool(data.get("ok", False)),
            id=_as_optional_str(data.get("id")),
            slug=data.get("slug"),
        )

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------
    def list_contents(self) -> list[ContentSummary]:
        return [self._to_content_summary(item) for item in self._request("GET", "/api/contents")]

    def get_content(self, content_id: str) -> Optional[ContentSummary]:
        data = self._request("GET", "/api/contents", params={"id": content_id})
        if not data:
            return None
        return self._to_content_summary(data)

    # ------------------------------------------------------------------
    # Markdown pages
    # ------------------------------------------------------------------
    def list_markdown_pages(self, content_id: Optional[str] = None) -> list[MarkdownPage]:
        """List pages; the API omits bodies from listings."""

        data = self._request("GET", "/api/markdown", params={"contentId": content_id})
        return [self._to_markdown_page(item) for item in data]

    def get_markdown_page(self, id_or_slug: str) -> MarkdownPage:
        data = self._request("GET", "/api/markdown", params={"id": id_or_slug})
        return self._to_markdown_page(data)

    def create_markdown_page(self, page: MarkdownPage) -> MutationResult:
        data = self._request("POST", "/api/markdown", json=page.to_payload())
        return self._to_mutation_result(data)

    def update_markdown_page(self, page: MarkdownPage) -> MutationResult:
        if not page.id:
            raise ValueError("Updating a markdown page requires its id")
        data = self._request("PUT", "/api/markdown", json=page.to_payload())
        return self._to_mutation_result(data)

    def delete_markdown_page(self, id_or_slug: str) -> MutationResult:
        data = self._request("DELETE", "/api/markdown", params={"id": id_or_slug})
        return self._to_mutation_result(data)

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------
    def list_media(self, content_id: str) -> list[MediaItem]:
        data = self._request("GET", "/api/media", params={"contentId": content_id})
        return [self._to_media_item(item) for item in data]

    def get_media(self, content_id: str, media_id: str) -> MediaItem:
        data = self._request("GET", "/api/media", params={"contentId": content_id, "id": media_id})
        return self._to_media_item(data)

    def upload_media(
        self,
        content_id: str,
        path: Path,
        *,
        mime_type: Optional[str] = None,
        alt: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> MutationResult:
        if mime_type is None:
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        payload: dict[str, Any] = {
            "contentId": content_id,
            "filename": path.name,
            "mimeType": mime_type,
            "base64Data": base64.b64encode(path.read_bytes()).decode("ascii"),
        }
        extras = {"alt": alt, "description": description, "tags": tags}
        payload.update({key: value for key, value in extras.items() if value is not None})
        data = self._request("POST", "/api/media", json=payload)
        return self._to_mutation_result(data)

    def delete_media(self, content_id: str, media_id: str) -> MutationResult:
        data = self._request("DELETE", "/api/media", params={"contentId": content_id, "id": media_id})
        return self._to_mutation_result(data)

    def media_url(self, content_id: str, media_id: str) -> str:
        return f"{self.base_url}/api/media/{quote(content_id, safe='')}/{quote(media_id, safe='')}"


def create_client(*, base_url: str, timeout: float = 30.0) -> StorageClient:
    return StorageClient(base_url=base_url, timeout=timeout)


def _response_details(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _as_optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    return str(value)
