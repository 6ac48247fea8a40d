"""
Ordering and merging of resolved items.

Items are nodes keyed by a short digest of ``name`` and the reference they
were fetched by, so two same-named items from different registries stay
separate. Edges run from a dependency to its dependents.
"""

from __future__ import annotations

import hashlib
from collections import deque
from dataclasses import replace
from typing import TYPE_CHECKING

from agent_registry.errors import RegistryInvalidNamespaceError
from agent_registry.logging import get_logger
from agent_registry.registry.locator import reference_basename
from agent_registry.registry.schema import ResolvedTree

if TYPE_CHECKING:
    from agent_registry.registry.resolver import ResolvedItem

logger = get_logger("registry.graph")


def item_hash(name: str, source: str | None = None) -> str:
    """Node identity: ``name::<8 hex chars of sha256(source or name)>``."""
    digest = hashlib.sha256((source or name).encode("utf-8")).hexdigest()[:8]
    return f"{name}::{digest}"


def node_id(node: ResolvedItem) -> str:
    return item_hash(node.item.name, node.source)


def sort_items(items: list[ResolvedItem]) -> list[ResolvedItem]:
    """Topologically sort *items* so dependencies come before dependents.

    Nodes stuck in a cycle are appended after the sorted prefix in their
    original order, and a warning names them.
    """
    nodes: dict[str, ResolvedItem] = {}
    for node in items:
        nodes.setdefault(node_id(node), node)

    # name and source both point at a node
    lookup: dict[str, list[str]] = {}
    for key, node in nodes.items():
        lookup.setdefault(node.item.name, []).append(key)
        if node.source != node.item.name:
            lookup.setdefault(node.source, []).append(key)

    in_degree = dict.fromkeys(nodes, 0)
    dependents: dict[str, list[str]] = {key: [] for key in nodes}

    for key, node in nodes.items():
        for dep in node.item.registry_dependencies:
            dep_key = _match_dependency(dep, lookup)
            if dep_key is None:
                continue
            dependents[dep_key].append(key)
            in_degree[key] += 1

    queue = deque(key for key, degree in in_degree.items() if degree == 0)
    ordered: list[str] = []
    while queue:
        key = queue.popleft()
        ordered.append(key)
        for dependent in dependents[key]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(ordered) < len(nodes):
        placed = set(ordered)
        stuck = [key for key in nodes if key not in placed]
        logger.warning(
            "Circular dependencies detected. Some items may not be sorted correctly: %s",
            ", ".join(stuck),
        )
        ordered.extend(stuck)

    return [nodes[key] for key in ordered]


def _match_dependency(dep: str, lookup: dict[str, list[str]]) -> str | None:
    matches = lookup.get(dep)
    if matches:
        # ambiguous matches pick the first candidate
        return matches[0]
    try:
        name = reference_basename(dep)
    except RegistryInvalidNamespaceError:
        return None
    matches = lookup.get(name)
    return matches[0] if matches else None


def merge_items(
    ordered: list[ResolvedItem],
    resolution_order: list[ResolvedItem] | None = None,
) -> ResolvedTree:
    """Merge dependency lists, files and docs of *ordered* items.

    Dependency lists are concatenated as-is. Files are de-duplicated by
    ``target or path``; when two items ship the same target, the copy of
    the item resolved first (roots before their dependencies) wins. The
    surviving files keep the sorted order.
    """
    winners = _file_winners(resolution_order or ordered)

    tree = ResolvedTree()
    emitted: set[str] = set()
    for node in ordered:
        item = node.item
        tree.dependencies.extend(item.dependencies)
        tree.dev_dependencies.extend(item.dev_dependencies)
        for file in item.files:
            if file.key in emitted or winners.get(file.key, node_id(node)) != node_id(node):
                continue
            emitted.add(file.key)
            tree.files.append(replace(file, source=node.source))

    tree.docs = "\n".join(node.item.docs for node in ordered if node.item.docs)
    return tree


def _file_winners(items: list[ResolvedItem]) -> dict[str, str]:
    winners: dict[str, str] = {}
    for node in items:
        for file in node.item.files:
            winners.setdefault(file.key, node_id(node))
    return winners
