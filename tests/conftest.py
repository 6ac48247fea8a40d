"""Shared pytest fixtures for agents-registry tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from agent_registry.config import RegistrySource, create_config
from agent_registry.registry.fetcher import Fetcher

REGISTRY_URL = "https://registry.test/r"

_CATEGORY_BY_TYPE = {
    "registry:agent": "agents",
    "registry:tool": "tools",
    "registry:prompt": "prompts",
    "registry:lib": "tools",
}


def make_item(
    name: str,
    type: str = "registry:tool",
    *,
    files: list[dict[str, Any]] | None = None,
    content: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Build an item document with one main file unless *files* is given."""
    if files is None:
        category = _CATEGORY_BY_TYPE[type]
        files = [
            {
                "path": f"{category}/{name}.ts",
                "type": type,
                "content": content if content is not None else f"// {name}\n",
            }
        ]
    return {"name": name, "type": type, "files": files, **fields}


class MockRegistry:
    """In-memory registry served through ``httpx.MockTransport``.

    Example:
        registry.add_item("read", "tools")
        fetcher = registry.fetcher()
    """

    def __init__(self) -> None:
        self.documents: dict[str, tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, document: Any, status: int = 200) -> None:
        self.documents[url] = (status, document)

    def add_item(
        self,
        item: dict[str, Any],
        kind: str = "tools",
        base_url: str = REGISTRY_URL,
    ) -> str:
        url = f"{base_url}/{kind}/{item['name']}.json"
        self.add(url, item)
        return url

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url not in self.documents:
            return httpx.Response(404, json={"error": "Not found"})
        status, document = self.documents[url]
        if isinstance(document, (bytes, str)):
            return httpx.Response(status, content=document)
        return httpx.Response(status, json=document)

    def request_count(self, url: str) -> int:
        return sum(1 for r in self.requests if str(r.url) == url)

    def fetcher(self, **kwargs: Any) -> Fetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return Fetcher(client=client, **kwargs)


@pytest.fixture(autouse=True)
def registry_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point the built-in registry and the cache root at test locations."""
    monkeypatch.setenv("AGENT_REGISTRY_URL", REGISTRY_URL)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))


@pytest.fixture
def registry() -> MockRegistry:
    return MockRegistry()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty consuming project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def config(project: Path):
    """Config for *project* with two extra namespaced registries."""
    return create_config(
        project,
        registries={
            "@x": RegistrySource(url="https://x.test/{type}/{name}.json"),
            "@y": RegistrySource(url="https://y.test/{type}/{name}.json"),
        },
    )


@pytest.fixture
def local_item(tmp_path: Path) -> Path:
    """An item document on disk."""
    path = tmp_path / "local" / "helper.json"
    path.parent.mkdir()
    path.write_text(json.dumps(make_item("helper")))
    return path
