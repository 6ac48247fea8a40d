"""
Local execution cache for remote registry items.

``prepare_sync`` computes, without touching the cache, which requested items
are missing or out of date. The returned ``sync`` callable performs the
writes and is only meant to run after the plan has been approved.

Cache layout::

    <cache>/agents/...
    <cache>/tools/...
    <cache>/prompts/...
    <cache>/package.json     # aggregated dependencies
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agent_registry.config import Config, ResolvedPaths, config_with_defaults
from agent_registry.errors import RegistryError
from agent_registry.file_type import get_relative_path, get_target_dir
from agent_registry.logging import get_logger
from agent_registry.registry.fetcher import Fetcher
from agent_registry.registry.resolver import ensure_fetcher, resolve_tree
from agent_registry.registry.schema import CATEGORIES, RegistryItemFile, ResolvedTree

logger = get_logger("sync.cache")

APP_NAME = "agents-registry"
MANIFEST_FILE = "package.json"
MAIN_FILE_SUFFIXES = (".ts", ".tsx")

_SCOPED_DEP_RE = re.compile(r"^(@[^@]+)@(.+)$")


@dataclass(frozen=True)
class RemoteItem:
    """An item requested for the cache."""

    name: str
    kind: str


@dataclass(frozen=True)
class SyncItem:
    """One item the plan will download (``is_new``) or update."""

    name: str
    kind: str
    is_new: bool


@dataclass
class SyncPlan:
    """What a sync would change. Recomputed on every call, never stored."""

    to_sync: list[SyncItem] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    dev_dependencies: list[str] = field(default_factory=list)

    @property
    def needs_sync(self) -> bool:
        return len(self.to_sync) > 0


@dataclass
class PreparedSync:
    """A plan plus the commit step. Only await ``sync()`` after approval."""

    plan: SyncPlan
    sync: Callable[[], Awaitable[None]]


def get_local_cache_path() -> Path:
    """Cache root, honouring ``XDG_CACHE_HOME``."""
    xdg_cache = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(xdg_cache) / APP_NAME / "local"


def get_cached_item_paths(cache_path: Path | None = None) -> dict[str, Path]:
    """Per-category cache directories."""
    root = cache_path or get_local_cache_path()
    return {category: root / category for category in CATEGORIES}


def get_cache_config(cache_path: Path) -> Config:
    """Config whose output directories point into the cache."""
    return config_with_defaults(
        Config(
            resolved_paths=ResolvedPaths(
                cwd=str(cache_path),
                agents=str(cache_path / "agents"),
                tools=str(cache_path / "tools"),
                prompts=str(cache_path / "prompts"),
            )
        )
    )


def content_hash(content: str) -> str:
    """Truncated sha256, used only to detect changes."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def cached_file_path(cache_path: Path, file: RegistryItemFile, kind: str) -> Path:
    return cache_path / get_target_dir(file, kind) / get_relative_path(file.path)


async def prepare_sync(
    items: list[RemoteItem],
    *,
    cache_path: Path | None = None,
    fetcher: Fetcher | None = None,
    config: Config | None = None,
) -> PreparedSync:
    """Resolve *items* and compare them with the local cache.

    A requested item that fails to resolve is logged and left out of the
    plan; it does not stop the other items from being planned.

    Example:
        prepared = await prepare_sync([RemoteItem("coding-agent", "agents")])
        if prepared.plan.needs_sync and approved:
            await prepared.sync()
    """
    cache_path = cache_path or get_local_cache_path()
    config = config or get_cache_config(cache_path)

    async with ensure_fetcher(fetcher) as f:
        trees = await asyncio.gather(*(_resolve(item, config, f) for item in items))

    fetched = list(zip(items, trees))

    dependencies: dict[str, None] = {}
    dev_dependencies: dict[str, None] = {}
    for _, tree in fetched:
        if tree is None:
            continue
        dependencies.update(dict.fromkeys(tree.dependencies))
        dev_dependencies.update(dict.fromkeys(tree.dev_dependencies))

    checks = await asyncio.gather(
        *(_check_item(item, tree, cache_path) for item, tree in fetched)
    )
    plan = SyncPlan(
        to_sync=[check for check in checks if check is not None],
        dependencies=list(dependencies),
        dev_dependencies=list(dev_dependencies),
    )
    logger.info(
        "Sync plan: %d of %d item(s) need syncing",
        len(plan.to_sync),
        len(items),
    )

    async def sync() -> None:
        selected = {(i.kind, i.name) for i in plan.to_sync}
        to_write = [
            (item, tree)
            for item, tree in fetched
            if tree is not None and (item.kind, item.name) in selected
        ]
        await write_cache_files(cache_path, to_write)
        await asyncio.to_thread(
            update_cache_manifest, cache_path, plan.dependencies, plan.dev_dependencies
        )

    return PreparedSync(plan=plan, sync=sync)


async def _resolve(item: RemoteItem, config: Config, fetcher: Fetcher) -> ResolvedTree | None:
    try:
        return await resolve_tree([item.name], item.kind, config, fetcher)
    except RegistryError as e:
        logger.warning("Could not resolve %s (%s): %s", item.name, item.kind, e)
        return None


async def _check_item(
    item: RemoteItem,
    tree: ResolvedTree | None,
    cache_path: Path,
) -> SyncItem | None:
    if tree is None or not tree.files:
        return None

    expected = {f"{item.kind}/{item.name}{suffix}" for suffix in MAIN_FILE_SUFFIXES}
    main_file = next((f for f in tree.files if f.path in expected), None)
    if main_file is None:
        logger.debug("No main file for %s in resolved tree", item.name)
        return None

    if await _read_text(cached_file_path(cache_path, main_file, item.kind)) is None:
        return SyncItem(name=item.name, kind=item.kind, is_new=True)

    changed = await asyncio.gather(
        *(_is_changed(cached_file_path(cache_path, f, item.kind), f.content) for f in tree.files)
    )
    if any(changed):
        return SyncItem(name=item.name, kind=item.kind, is_new=False)
    return None


async def _is_changed(path: Path, content: str) -> bool:
    cached = await _read_text(path)
    return cached is None or content_hash(cached) != content_hash(content)


async def _read_text(path: Path) -> str | None:
    try:
        return await asyncio.to_thread(path.read_text, encoding="utf-8")
    except OSError:
        return None


async def write_cache_files(
    cache_path: Path,
    fetched: list[tuple[RemoteItem, ResolvedTree]],
) -> list[Path]:
    """Write the files of *fetched* items that differ from the cache.

    A file shared by several items is written at most once, and not at all
    if the cached copy already has the same content.
    """
    for directory in get_cached_item_paths(cache_path).values():
        directory.mkdir(parents=True, exist_ok=True)

    pending: dict[Path, str] = {}
    for item, tree in fetched:
        for file in tree.files:
            path = cached_file_path(cache_path, file, item.kind)
            if path not in pending:
                pending[path] = file.content

    changed = await asyncio.gather(*(_is_changed(p, c) for p, c in pending.items()))
    writes = [(p, c) for (p, c), is_changed in zip(pending.items(), changed) if is_changed]

    await asyncio.gather(*(asyncio.to_thread(_write_text, p, c) for p, c in writes))
    logger.debug("Wrote %d cache file(s)", len(writes))
    return [p for p, _ in writes]


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def parse_dependency(dep: str) -> tuple[str, str]:
    """Split ``name@version``; a bare name maps to ``latest``.

    >>> parse_dependency("@scope/pkg@1.2.0")
    ('@scope/pkg', '1.2.0')
    >>> parse_dependency("zod")
    ('zod', 'latest')
    """
    if dep.startswith("@"):
        match = _SCOPED_DEP_RE.match(dep)
        if match:
            return match.group(1), match.group(2)
        return dep, "latest"

    name, sep, version = dep.rpartition("@")
    if sep and name:
        return name, version
    return dep, "latest"


def update_cache_manifest(
    cache_path: Path,
    dependencies: list[str],
    dev_dependencies: list[str],
) -> dict[str, Any] | None:
    """Merge dependency pairs into the cache manifest; new entries win."""
    if not dependencies and not dev_dependencies:
        return None

    manifest_path = cache_path / MANIFEST_FILE
    manifest: dict[str, Any] = {
        "name": f"{APP_NAME}-local-cache",
        "version": "0.0.0",
        "private": True,
        "type": "module",
    }
    if manifest_path.is_file():
        try:
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        except ValueError as e:
            logger.warning("Ignoring unreadable cache manifest %s: %s", manifest_path, e)

    deps = dict(manifest.get("dependencies", {}))
    dev_deps = dict(manifest.get("devDependencies", {}))
    for dep in dependencies:
        name, version = parse_dependency(dep)
        deps[name] = version
    for dep in dev_dependencies:
        name, version = parse_dependency(dep)
        dev_deps[name] = version

    manifest["dependencies"] = deps
    manifest["devDependencies"] = dev_deps

    cache_path.mkdir(parents=True, exist_ok=True)
    manifest_path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    return manifest
