"""Local filesystem workspace of markdown pages."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator, Optional

import frontmatter

from .models import LocalPage, LocalPageMetadata
from .naming import slugify

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from markblocks.storage.models import MarkdownPage
    from markblocks.sync.converters import ContentConverter


PAGE_SUFFIX = ".md"
# frontmatter strips the body; edge whitespace is kept under these keys
LEADING_KEY = "leading_whitespace"
TRAILING_KEY = "trailing_whitespace"


class LocalRepository:
    """Persist markdown pages as ``<slug>.md`` files with YAML frontmatter."""

    def __init__(self, root: Path, *, converter: "ContentConverter") -> None:
        self.root = root
        self.converter = converter

    # ------------------------------------------------------------------
    # Download helpers (remote -> disk)
    # ------------------------------------------------------------------
    def write_pages(self, pages: Iterable["MarkdownPage"]) -> list[LocalPage]:
        """Persist remote pages, reusing the file already holding each page id."""

        self.root.mkdir(parents=True, exist_ok=True)
        existing = self._collect_existing_files()
        written: list[LocalPage] = []
        for page in pages:
            path = existing.get(page.id) or self._allocate_file(page.slug or page.title)
            local = LocalPage(
                path=path,
                metadata=LocalPageMetadata(
                    slug=page.slug,
                    page_id=page.id,
                    content_id=page.content_id,
                    status=page.status,
                    version=page.version,
                    lang=page.lang,
                    frontmatter=dict(page.frontmatter),
                ),
                body=self.converter.normalize_markdown(page.body),
            )
            self.save_page(local)
            written.append(local)
        return written

    def _allocate_file(self, title: str) -> Path:
        base = slugify(title)
        candidate = self.root / f"{base}{PAGE_SUFFIX}"
        counter = 2
        while candidate.exists():
            candidate = self.root / f"{base}-{counter}{PAGE_SUFFIX}"
            counter += 1
        return candidate

    # ------------------------------------------------------------------
    # Upload helpers (disk -> models)
    # ------------------------------------------------------------------
    def read_pages(self) -> list[LocalPage]:
        """Load all local pages from disk into memory."""

        if not self.root.exists():
            raise FileNotFoundError(f"Workspace directory {self.root} does not exist")
        return [self.read_page(path) for path in self.iter_page_files()]

    def read_page(self, path: Path) -> LocalPage:
        post = frontmatter.load(path)
        metadata = LocalPageMetadata(
            slug=str(post.metadata.get("slug") or path.stem),
            page_id=_as_optional_str(post.metadata.get("page_id")),
            content_id=_as_optional_str(post.metadata.get("content_id")),
            status=str(post.metadata.get("status") or "draft"),
            version=_as_optional_int(post.metadata.get("version")),
            lang=_as_optional_str(post.metadata.get("lang")),
            frontmatter=dict(post.metadata.get("frontmatter") or {}),
        )
        body = post.content.strip()
        leading = post.metadata.get(LEADING_KEY)
        trailing = post.metadata.get(TRAILING_KEY)
        if isinstance(leading, str) and not leading.strip():
            body = leading + body
        if isinstance(trailing, str) and not trailing.strip():
            body = body + trailing
        return LocalPage(path=path, metadata=metadata, body=body)

    def save_page(self, page: LocalPage) -> None:
        """Persist modifications made to a local page."""

        leading, core, trailing = _split_edge_whitespace(page.body)
        post = frontmatter.Post(core)
        post.metadata.update(
            {
                "slug": page.metadata.slug,
                "page_id": page.metadata.page_id,
                "content_id": page.metadata.content_id,
                "status": page.metadata.status,
                "version": page.metadata.version,
                "lang": page.metadata.lang,
                "frontmatter": page.metadata.frontmatter,
            }
        )
        if leading:
            post.metadata[LEADING_KEY] = leading
        if trailing:
            post.metadata[TRAILING_KEY] = trailing
        with page.path.open("w", encoding="utf-8") as handle:
            frontmatter.dump(post, handle)

    def create_page(self, title: str, *, body: str = "", content_id: Optional[str] = None) -> LocalPage:
        """Create a new, not yet uploaded page file."""

        self.root.mkdir(parents=True, exist_ok=True)
        slug = slugify(title)
        page = LocalPage(
            path=self._allocate_file(slug),
            metadata=LocalPageMetadata(slug=slug, content_id=content_id, frontmatter={"title": title}),
            body=body,
        )
        self.save_page(page)
        return page

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------
    def iter_page_files(self) -> Iterator[Path]:
        for candidate in sorted(self.root.glob(f"*{PAGE_SUFFIX}")):
            if candidate.is_file():
                yield candidate

    def _collect_existing_files(self) -> dict[str, Path]:
        mapping: dict[str, Path] = {}
        for path in self.iter_page_files():
            page_id = frontmatter.load(path).metadata.get("page_id")
            if page_id:
                mapping[str(page_id)] = path
        return mapping


def _as_optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _as_optional_int(value: object) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _split_edge_whitespace(body: str) -> tuple[str, str, str]:
    """Split ``body`` into leading whitespace, stripped text and trailing whitespace."""

    core = body.strip()
    if not core:
        return body, "", ""
    leading = body[: len(body) - len(body.lstrip())]
    trailing = body[len(body.rstrip()) :]
    return leading, core, trailing
