"""Registry access: locating, fetching and resolving items."""

from agent_registry.registry.api import (
    get_registry,
    get_registry_items,
    resolve_registry_items,
    search_registry,
)
from agent_registry.registry.fetcher import Fetcher
from agent_registry.registry.graph import item_hash, merge_items, sort_items
from agent_registry.registry.locator import (
    Bare,
    FetchTarget,
    LocalFile,
    Namespaced,
    Url,
    classify,
    locate,
)
from agent_registry.registry.resolver import (
    DependencyResolver,
    ResolvedItem,
    resolve_items,
    resolve_tree,
)
from agent_registry.registry.schema import (
    Registry,
    RegistryItem,
    RegistryItemFile,
    ResolvedTree,
    parse_item,
)

__all__ = [
    "Bare",
    "DependencyResolver",
    "FetchTarget",
    "Fetcher",
    "LocalFile",
    "Namespaced",
    "Registry",
    "RegistryItem",
    "RegistryItemFile",
    "ResolvedItem",
    "ResolvedTree",
    "Url",
    "classify",
    "get_registry",
    "get_registry_items",
    "item_hash",
    "locate",
    "merge_items",
    "parse_item",
    "resolve_items",
    "resolve_registry_items",
    "resolve_tree",
    "search_registry",
    "sort_items",
]
