from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any

import httpx
import pytest

from markblocks.storage.client import StorageClient


class FakeStorageApi:
    """In-memory stand-in for the markdown endpoints of the storage API."""

    def __init__(self) -> None:
        self.pages: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self._counter = 0

    def add_page(self, **page: Any) -> dict[str, Any]:
        self.pages[page["id"]] = page
        return page

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path != "/api/markdown":
            return httpx.Response(404, json={"error": "Not found"})

        params = request.url.params
        if request.method == "GET":
            if "id" in params:
                page = self.pages.get(params["id"])
                if page is None:
                    return httpx.Response(404, json={"error": "Page not found"})
                return httpx.Response(200, json=page)
            content_id = params.get("contentId")
            listing = [
                {key: value for key, value in page.items() if key != "body"}
                for page in self.pages.values()
                if content_id is None or page.get("contentId") == content_id
            ]
            return httpx.Response(200, json=listing)

        payload = json.loads(request.content)
        if request.method == "POST":
            self._counter += 1
            page_id = f"page-{self._counter}"
            self.pages[page_id] = {**payload, "id": page_id, "version": 1}
            return httpx.Response(200, json={"ok": True, "id": page_id, "slug": payload["slug"]})
        if request.method == "PUT":
            stored = self.pages.get(payload.get("id"))
            if stored is None:
                return httpx.Response(404, json={"error": "Page not found"})
            stored.update(payload)
            stored["version"] = int(stored.get("version") or 0) + 1
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(405, json={"error": "Method not allowed"})


@pytest.fixture
def fake_api() -> FakeStorageApi:
    return FakeStorageApi()


@pytest.fixture
def storage_client(fake_api: FakeStorageApi) -> Iterator[StorageClient]:
    client = StorageClient(base_url="http://storage.test", transport=httpx.MockTransport(fake_api.handler))
    try:
        yield client
    finally:
        client.close()
