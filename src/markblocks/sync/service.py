"""High-level synchronization workflows between the storage API and a local workspace."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from markblocks.local.models import LocalPage
from markblocks.local.repository import LocalRepository
from markblocks.storage.client import StorageClient
from markblocks.storage.models import MarkdownPage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncResult:
    """Report produced after a synchronization operation."""

    processed_pages: int
    created_pages: int = 0
    updated_pages: int = 0


class SyncService:
    """Coordinate page transfers between the storage API and the local workspace."""

    def __init__(self, client: StorageClient, repository: LocalRepository) -> None:
        self.client = client
        self.repository = repository

    # ------------------------------------------------------------------
    # Pull (API -> local)
    # ------------------------------------------------------------------
    def pull(self, *, content_id: Optional[str] = None) -> SyncResult:
        """Fetch every page of a content space and store it locally."""

        summaries = self.client.list_markdown_pages(content_id)
        # Listings carry no body, so each page is fetched individually.
        pages = [self.client.get_markdown_page(summary.id) for summary in summaries]
        written = self.repository.write_pages(pages)
        logger.info("Pulled %d page(s) into %s", len(written), self.repository.root)
        return SyncResult(processed_pages=len(written))

    # ------------------------------------------------------------------
    # Push (local -> API)
    # ------------------------------------------------------------------
    def push(self, *, content_id: Optional[str] = None) -> SyncResult:
        """Upload local pages, creating new ones and updating known ones."""

        created = 0
        updated = 0
        pages = self.repository.read_pages()
        for page in pages:
            if page.page_id:
                self._update_remote_page(page, content_id)
                updated += 1
            else:
                self._create_remote_page(page, content_id)
                created += 1
        return SyncResult(processed_pages=len(pages), created_pages=created, updated_pages=updated)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _prepare(self, page: LocalPage, content_id: Optional[str]) -> MarkdownPage:
        converter = self.repository.converter
        page.body = converter.normalize_markdown(page.body)
        remote = page.to_remote(content_id=content_id)
        remote.html_cache = converter.markdown_to_html(remote.body)
        return remote

    def _create_remote_page(self, page: LocalPage, content_id: Optional[str]) -> None:
        remote = self._prepare(page, content_id)
        result = self.client.create_markdown_page(remote)
        if not result.ok or not result.id:
            raise RuntimeError(f"Storage API did not confirm creation of page {page.metadata.slug!r}")
        logger.info("Created page %s (%s)", result.slug or page.metadata.slug, result.id)
        page.metadata.page_id = result.id
        page.metadata.slug = result.slug or page.metadata.slug
        page.metadata.content_id = remote.content_id
        self._refresh(page)

    def _update_remote_page(self, page: LocalPage, content_id: Optional[str]) -> None:
        remote = self._prepare(page, content_id)
        result = self.client.update_markdown_page(remote)
        if not result.ok:
            raise RuntimeError(f"Storage API did not confirm update of page {page.metadata.slug!r}")
        logger.info("Updated page %s", page.page_id)
        self._refresh(page)

    def _refresh(self, page: LocalPage) -> None:
        # The API bumps the version on every write; record what it now holds.
        stored = self.client.get_markdown_page(page.page_id or page.metadata.slug)
        page.metadata.version = stored.version
        page.metadata.status = stored.status
        self.repository.save_page(page)
