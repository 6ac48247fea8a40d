"""
Item fetching over HTTP and from the local filesystem.

Headers are passed explicitly with every request; nothing about a previous
request is remembered except (optionally) the parsed response body.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import httpx

from agent_registry.config import Config
from agent_registry.errors import RegistryError, RegistryParseError
from agent_registry.logging import get_logger
from agent_registry.registry.locator import FetchTarget, LocalFile, locate
from agent_registry.registry.schema import Registry, RegistryItem, parse_item, parse_registry

logger = get_logger("registry.fetcher")


class Fetcher:
    """
    Fetches and validates registry documents.

    Example:
        async with Fetcher() as fetcher:
            items = await fetcher.fetch_items(["read", "@acme/grep"], "tools", config)

    Args:
        client: HTTP client to use. One is created (and owned) if omitted.
        use_cache: Remember successful responses by URL for the lifetime
            of this fetcher.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        use_cache: bool = True,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self.use_cache = use_cache
        self._responses: dict[str, Any] = {}

    async def __aenter__(self) -> Fetcher:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True, timeout=None)
        return self._client

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    async def fetch_remote(self, url: str, headers: dict[str, str] | None = None) -> Any:
        """GET *url* and return the decoded JSON body.

        Raises:
            RegistryError: On a non-success status or transport failure.
        """
        if self.use_cache and url in self._responses:
            logger.debug("Cache hit: %s", url)
            return self._responses[url]

        logger.debug("Fetching %s", url)
        try:
            response = await self.client.get(url, headers=headers or {})
        except httpx.HTTPError as e:
            raise RegistryError(f"Failed to fetch from {url}. {e}", e) from e

        if not response.is_success:
            raise RegistryError(_status_message(url, response))

        try:
            data = response.json()
        except ValueError as e:
            raise RegistryParseError(url, e) from e

        if self.use_cache:
            self._responses[url] = data
        return data

    async def read_local(self, path: str) -> Any:
        """Read and decode a JSON document from disk."""
        file_path = Path(path.removeprefix("file://")).expanduser()
        logger.debug("Reading local item %s", file_path)
        try:
            text = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        except OSError as e:
            raise RegistryError(f"Failed to read local registry item at {file_path}. {e}", e) from e
        try:
            return json.loads(text)
        except ValueError as e:
            raise RegistryParseError(path, e) from e

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    async def fetch_item(self, reference: str, kind: str, config: Config) -> RegistryItem:
        """Fetch and validate one item document."""
        target = locate(reference, kind, config)
        if isinstance(target, LocalFile):
            data = await self.read_local(target.path)
        else:
            data = await self.fetch_target(target)
        return parse_item(data, reference)

    async def fetch_target(self, target: FetchTarget) -> Any:
        return await self.fetch_remote(target.url, target.headers)

    async def fetch_items(
        self,
        references: list[str],
        kind: str,
        config: Config,
    ) -> list[RegistryItem]:
        """Fetch a batch of items concurrently.

        Results keep the order of *references*. If any single fetch fails
        the whole batch fails with that error.
        """
        return list(
            await asyncio.gather(
                *(self.fetch_item(reference, kind, config) for reference in references)
            )
        )

    async def fetch_registry(self, target: FetchTarget, reference: str) -> Registry:
        """Fetch a registry index document."""
        data = await self.fetch_target(target)
        return parse_registry(data, reference)


def _status_message(url: str, response: httpx.Response) -> str:
    status = response.status_code
    if status == 401:
        return (
            f"You are not authorized to access the item at {url}. "
            "If this is a remote registry, you may need to authenticate."
        )
    if status == 403:
        return f"You do not have access to the item at {url}. Check your registry credentials."
    if status == 404:
        return f"The item at {url} was not found. It may not exist at the registry."

    detail = ""
    try:
        body = response.json()
        if isinstance(body, dict):
            detail = body.get("error") or body.get("message") or ""
    except ValueError:
        pass
    message = f"Failed to fetch from {url}. HTTP {status} {response.reason_phrase}".rstrip()
    return f"{message}. {detail}" if detail else message
