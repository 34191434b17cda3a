"""Content conversion helpers between stored Markdown, block documents and HTML."""

from __future__ import annotations

from markdown_it import MarkdownIt

from markblocks.blocks.models import Document
from markblocks.blocks.parser import parse_markdown
from markblocks.blocks.serializer import serialize_document


class ContentConverter:
    """Translate between a page's Markdown body, its block document and HTML."""

    def __init__(self) -> None:
        self._markdown = MarkdownIt("commonmark", {"html": True}).enable(["table", "strikethrough"])

    def markdown_to_document(self, markdown: str) -> Document:
        return parse_markdown(markdown)

    def document_to_markdown(self, document: Document) -> str:
        return serialize_document(document)

    def normalize_markdown(self, markdown: str) -> str:
        """Return the body as the editors will save it back."""

        return self.document_to_markdown(self.markdown_to_document(markdown))

    def markdown_to_html(self, markdown: str) -> str:
        return self._markdown.render(markdown)
