"""
Dependency resolution.

Walks ``registryDependencies`` from a set of requested items to a flat list
of every item they need, fetching each reference string at most once.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from agent_registry.config import Config
from agent_registry.errors import RegistryError, RegistryNotConfiguredError
from agent_registry.logging import get_logger
from agent_registry.registry.fetcher import Fetcher
from agent_registry.registry.graph import merge_items, sort_items
from agent_registry.registry.locator import Bare, Namespaced, classify
from agent_registry.registry.schema import RegistryItem, ResolvedTree

logger = get_logger("registry.resolver")


@dataclass(frozen=True)
class ResolvedItem:
    """An item together with the reference string it was fetched by."""

    item: RegistryItem
    source: str


@dataclass
class Resolution:
    """Output of one resolution walk, in resolution order."""

    items: list[ResolvedItem] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)


class DependencyResolver:
    """
    Resolves requested items and everything they transitively depend on.

    One resolver instance performs one walk; the set of already-seen
    references is not shared between calls to :meth:`resolve`.

    Root items must all fetch successfully. Namespaced, URL and local-file
    dependencies must fetch successfully too; a bare-name dependency that
    fails is logged and left out.
    """

    def __init__(self, fetcher: Fetcher, kind: str, config: Config) -> None:
        self.fetcher = fetcher
        self.kind = kind
        self.config = config

    async def resolve(self, names: list[str]) -> Resolution:
        roots = list(dict.fromkeys(names))
        items = await self.fetcher.fetch_items(roots, self.kind, self.config)

        result = Resolution(
            items=[ResolvedItem(item=item, source=ref) for ref, item in zip(roots, items)]
        )
        seen: set[str] = set(roots)
        # Roots whose dependencies have not been walked yet
        pending = {root.source: root for root in result.items}

        for ref in roots:
            root = pending.pop(ref, None)
            if root is not None:
                await self._walk(root, [ref], seen, pending, result)

        logger.debug(
            "Resolved %d item(s) from %d root(s)",
            len(result.items),
            len(roots),
        )
        return result

    async def _walk(
        self,
        node: ResolvedItem,
        path: list[str],
        seen: set[str],
        pending: dict[str, ResolvedItem],
        result: Resolution,
    ) -> None:
        dependencies = node.item.registry_dependencies
        self._check_registries(dependencies)

        for dep in dependencies:
            if dep in path:
                cycle = [*path[path.index(dep):], dep]
                logger.warning("Circular registry dependency: %s", " -> ".join(cycle))
                result.cycles.append(cycle)
                continue
            if dep in seen:
                root = pending.pop(dep, None)
                if root is not None:
                    await self._walk(root, [*path, dep], seen, pending, result)
                else:
                    logger.debug("Skipping %s (already resolved)", dep)
                continue
            seen.add(dep)

            if isinstance(classify(dep), Bare):
                try:
                    item = await self.fetcher.fetch_item(dep, self.kind, self.config)
                except RegistryError as e:
                    logger.warning("Skipping dependency %s of %s: %s", dep, node.item.name, e)
                    continue
            else:
                item = await self.fetcher.fetch_item(dep, self.kind, self.config)

            child = ResolvedItem(item=item, source=dep)
            result.items.append(child)
            await self._walk(child, [*path, dep], seen, pending, result)

    def _check_registries(self, dependencies: tuple[str, ...]) -> None:
        for dep in dependencies:
            ref = classify(dep)
            if isinstance(ref, Namespaced) and ref.registry not in self.config.registries:
                raise RegistryNotConfiguredError(ref.registry)


@asynccontextmanager
async def ensure_fetcher(fetcher: Fetcher | None) -> AsyncIterator[Fetcher]:
    """Yield *fetcher*, or a temporary one that is closed afterwards."""
    if fetcher is not None:
        yield fetcher
        return
    async with Fetcher() as owned:
        yield owned


async def resolve_items(
    names: list[str],
    kind: str,
    config: Config,
    fetcher: Fetcher | None = None,
) -> list[ResolvedItem]:
    """Resolve *names* to a flat, unsorted, de-duplicated item list."""
    async with ensure_fetcher(fetcher) as f:
        resolution = await DependencyResolver(f, kind, config).resolve(names)
    return resolution.items


async def resolve_tree(
    names: list[str],
    kind: str,
    config: Config,
    fetcher: Fetcher | None = None,
) -> ResolvedTree:
    """Resolve *names* and merge the ordered result into one tree.

    Example:
        tree = await resolve_tree(["coding-agent"], "agents", config)
        for file in tree.files:
            print(file.path)
    """
    items = await resolve_items(names, kind, config, fetcher)
    ordered = sort_items(items)
    return merge_items(ordered, resolution_order=items)
