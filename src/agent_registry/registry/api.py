"""High-level registry entry points used by the commands."""

from __future__ import annotations

from agent_registry.config import Config, config_with_defaults
from agent_registry.errors import RegistryInvalidNamespaceError
from agent_registry.registry.fetcher import Fetcher
from agent_registry.registry.locator import FetchTarget, is_url, locate
from agent_registry.registry.resolver import ensure_fetcher, resolve_tree
from agent_registry.registry.schema import Registry, RegistryItem, ResolvedTree


async def get_registry(
    name: str,
    kind: str,
    config: Config | None = None,
    fetcher: Fetcher | None = None,
) -> Registry:
    """Fetch a registry index.

    *name* is either a URL or a registry name such as ``@acme``; for the
    latter the index is served at the ``registry`` item of that registry.
    """
    async with ensure_fetcher(fetcher) as f:
        if is_url(name):
            return await f.fetch_registry(FetchTarget(url=name), name)

        if not name.startswith("@"):
            raise RegistryInvalidNamespaceError(name)

        registry_name = name if name.endswith("/registry") else f"{name}/registry"
        target = locate(registry_name, kind, config_with_defaults(config))
        if not isinstance(target, FetchTarget):
            raise RegistryInvalidNamespaceError(name)
        return await f.fetch_registry(target, registry_name)


async def get_registry_items(
    references: list[str],
    kind: str,
    config: Config | None = None,
    fetcher: Fetcher | None = None,
) -> list[RegistryItem]:
    """Fetch items without following their dependencies."""
    async with ensure_fetcher(fetcher) as f:
        return await f.fetch_items(references, kind, config_with_defaults(config))


async def resolve_registry_items(
    references: list[str],
    kind: str,
    config: Config | None = None,
    fetcher: Fetcher | None = None,
) -> ResolvedTree:
    """Fetch items and all of their registry dependencies."""
    return await resolve_tree(references, kind, config_with_defaults(config), fetcher)


async def search_registry(
    name: str,
    kind: str,
    query: str | None = None,
    config: Config | None = None,
    fetcher: Fetcher | None = None,
) -> list[RegistryItem]:
    """Items of a registry index whose name or description contains *query*.

    Matching is case-insensitive; without a query every item is returned.
    """
    registry = await get_registry(name, kind, config, fetcher)
    if not query:
        return list(registry.items)

    needle = query.lower()
    return [
        item
        for item in registry.items
        if needle in item.name.lower() or needle in (item.description or "").lower()
    ]
