"""Tests for the high-level registry API and the add flow."""

from __future__ import annotations

from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from agent_registry.add import add_items
from agent_registry.errors import RegistryInvalidNamespaceError
from agent_registry.project import get_alias_prefix, get_project_info
from agent_registry.registry.api import (
    get_registry,
    get_registry_items,
    resolve_registry_items,
    search_registry,
)

from conftest import REGISTRY_URL, MockRegistry, make_item


def registry_index(*names: str) -> dict:
    return {
        "name": "agents",
        "homepage": "https://agents.test",
        "items": [make_item(name) for name in names],
    }


class TestGetRegistry:
    """Tests for get_registry()."""

    @pytest.mark.asyncio
    async def test_builtin_by_name(self, registry: MockRegistry, config) -> None:
        """Should fetch the built-in registry index by name."""
        registry.add(f"{REGISTRY_URL}/tools/registry.json", registry_index("read", "write"))

        index = await get_registry("@agents", "tools", config, registry.fetcher())

        assert [item.name for item in index.items] == ["read", "write"]

    @pytest.mark.asyncio
    async def test_configured_registry(self, registry: MockRegistry, config) -> None:
        """Should fetch the index of a configured registry."""
        registry.add("https://x.test/agents/registry.json", registry_index("coder"))

        index = await get_registry("@x", "agents", config, registry.fetcher())

        assert index.items[0].name == "coder"

    @pytest.mark.asyncio
    async def test_url(self, registry: MockRegistry, config) -> None:
        """Should fetch an index from a URL."""
        registry.add("https://index.test/all.json", registry_index("read"))

        index = await get_registry("https://index.test/all.json", "tools", config, registry.fetcher())

        assert index.homepage == "https://agents.test"

    @pytest.mark.asyncio
    async def test_name_without_at(self, registry: MockRegistry, config) -> None:
        """Should reject a registry name without a leading @."""
        with pytest.raises(RegistryInvalidNamespaceError):
            await get_registry("acme", "tools", config, registry.fetcher())


class TestSearchRegistry:
    """Tests for search_registry()."""

    @pytest.mark.asyncio
    async def test_filters_by_name_and_description(self, registry: MockRegistry, config) -> None:
        """Should match names and descriptions case-insensitively."""
        registry.add(
            f"{REGISTRY_URL}/tools/registry.json",
            {
                "name": "agents",
                "homepage": "https://agents.test",
                "items": [
                    make_item("Reader"),
                    make_item("grep", description="Find text in files"),
                    make_item("write"),
                ],
            },
        )

        items = await search_registry("@agents", "tools", "READ", config, registry.fetcher())
        by_description = await search_registry("@agents", "tools", "text", config, registry.fetcher())

        assert [item.name for item in items] == ["Reader"]
        assert [item.name for item in by_description] == ["grep"]

    @pytest.mark.asyncio
    async def test_empty_query_returns_everything(self, registry: MockRegistry, config) -> None:
        """Should return every item without a query."""
        registry.add(f"{REGISTRY_URL}/tools/registry.json", registry_index("read", "write"))

        items = await search_registry("@agents", "tools", None, config, registry.fetcher())

        assert [item.name for item in items] == ["read", "write"]


class TestItems:
    """Tests for get_registry_items() and resolve_registry_items()."""

    @pytest.mark.asyncio
    async def test_get_items_does_not_follow_dependencies(self, registry: MockRegistry) -> None:
        """Should fetch only the requested items."""
        registry.add_item(make_item("a", registryDependencies=["b"]))
        url_b = registry.add_item(make_item("b"))

        items = await get_registry_items(["a"], "tools", fetcher=registry.fetcher())

        assert [item.name for item in items] == ["a"]
        assert registry.request_count(url_b) == 0

    @pytest.mark.asyncio
    async def test_resolve_follows_dependencies(self, registry: MockRegistry) -> None:
        """Should include registry dependencies in the tree."""
        registry.add_item(make_item("a", registryDependencies=["b"]))
        registry.add_item(make_item("b"))

        tree = await resolve_registry_items(["a"], "tools", fetcher=registry.fetcher())

        assert [f.path for f in tree.files] == ["tools/b.ts", "tools/a.ts"]


class TestAddItems:
    """Tests for add_items()."""

    @pytest.mark.asyncio
    async def test_writes_files_and_reports(
        self, registry: MockRegistry, config, project: Path
    ) -> None:
        """Should write files and report dependencies and docs."""
        registry.add_item(
            make_item("read", registryDependencies=["fs"], dependencies=["zod"], docs="Needs FS access.")
        )
        registry.add_item(make_item("fs", devDependencies=["@types/node"]))
        console = Console(file=StringIO(), width=200)

        result = await add_items(["read"], "tools", config, yes=True, fetcher=registry.fetcher(), console=console)

        assert result.created == ["tools/fs.ts", "tools/read.ts"]
        assert (project / "tools" / "read.ts").is_file()
        text = console.file.getvalue()
        assert "Dependencies required: zod, @types/node" in text
        assert "Needs FS access." in text

    @pytest.mark.asyncio
    async def test_no_dependencies_listed_when_nothing_changed(
        self, registry: MockRegistry, config
    ) -> None:
        """Should not list dependencies when every file is unchanged."""
        registry.add_item(make_item("read", dependencies=["zod"]))
        fetcher = registry.fetcher()
        await add_items(["read"], "tools", config, silent=True, fetcher=fetcher)
        console = Console(file=StringIO(), width=200)

        result = await add_items(["read"], "tools", config, fetcher=fetcher, console=console)

        assert result.skipped == ["tools/read.ts"]
        assert "Dependencies required" not in console.file.getvalue()

    @pytest.mark.asyncio
    async def test_nothing_requested(self, config) -> None:
        """Should do nothing for an empty request."""
        result = await add_items([], "tools", config)
        assert not result.changed


class TestProjectInfo:
    """Tests for project layout detection."""

    def test_plain_project(self, project: Path) -> None:
        """Should detect a plain project without tsconfig."""
        info = get_project_info(project)
        assert not info.is_src_dir
        assert not info.is_tsx
        assert info.alias_prefix is None

    def test_src_typescript_project(self, project: Path) -> None:
        """Should detect a src/ layout, TypeScript and the alias prefix."""
        (project / "src").mkdir()
        (project / "tsconfig.json").write_text('{"compilerOptions": {"paths": {"@/*": ["./src/*"]}}}')

        info = get_project_info(project)

        assert info.is_src_dir
        assert info.is_tsx
        assert info.alias_prefix == "@"

    def test_exact_alias_prefix(self, project: Path) -> None:
        """Should strip the trailing slash from an exact alias key."""
        (project / "jsconfig.json").write_text('{"compilerOptions": {"paths": {"#lib/": ["./lib"]}}}')
        assert get_alias_prefix(project) == "#lib"

    def test_tsconfig_read_on_demand(self, project: Path, caplog: pytest.LogCaptureFixture) -> None:
        """Should read tsconfig only when the alias prefix is asked for."""
        (project / "tsconfig.json").write_text("{ broken")

        info = get_project_info(project)

        assert info.is_tsx
        assert not info.is_src_dir
        assert "Could not parse" not in caplog.text
        assert info.alias_prefix is None
        assert "Could not parse" in caplog.text
