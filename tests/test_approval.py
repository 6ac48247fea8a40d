"""Tests for the interactive cache sync flow."""

from __future__ import annotations

from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from agent_registry.sync import cache as cache_module
from agent_registry.sync.approval import perform_remote_sync, show_remote_approval
from agent_registry.sync.cache import RemoteItem, SyncItem, SyncPlan

from conftest import MockRegistry, make_item


@pytest.fixture
def console() -> Console:
    return Console(file=StringIO(), width=120)


@pytest.fixture
def cache_path(tmp_path: Path) -> Path:
    return tmp_path / "cache"


def output(console: Console) -> str:
    return console.file.getvalue()


class TestShowRemoteApproval:
    """Tests for the plan display."""

    def test_lists_new_and_updated_items(self, console: Console) -> None:
        """Should list new and updated items with the dependency count."""
        plan = SyncPlan(
            to_sync=[
                SyncItem(name="coder", kind="agents", is_new=True),
                SyncItem(name="read", kind="tools", is_new=False),
            ],
            dependencies=["zod", "ai"],
        )

        approved = show_remote_approval(plan, console, lambda _: True)

        text = output(console)
        assert approved
        assert "New items to download (1)" in text
        assert "+ coder (agent)" in text
        assert "Items with updates available (1)" in text
        assert "~ read (tool)" in text
        assert "Dependencies to install: 2" in text

    def test_yes_skips_prompt(self, console: Console) -> None:
        """Should approve silently with yes."""
        plan = SyncPlan(to_sync=[SyncItem(name="coder", kind="agents", is_new=True)])

        def confirm(message: str) -> bool:
            raise AssertionError("should not ask")

        assert show_remote_approval(plan, console, confirm, yes=True)
        assert output(console) == ""

    def test_nothing_to_do(self, console: Console) -> None:
        """Should approve when everything is up to date."""
        assert show_remote_approval(SyncPlan(), console, lambda _: False)
        assert "already cached and up-to-date" in output(console)


class TestPerformRemoteSync:
    """Tests for perform_remote_sync()."""

    @pytest.mark.asyncio
    async def test_approved(
        self, registry: MockRegistry, cache_path: Path, console: Console
    ) -> None:
        """Should write the cache after approval."""
        registry.add_item(make_item("foo"))

        result = await perform_remote_sync(
            [RemoteItem("foo", "tools")],
            confirm=lambda _: True,
            console=console,
            cache_path=cache_path,
            fetcher=registry.fetcher(),
        )

        assert result.success
        assert not result.cancelled
        assert (cache_path / "tools" / "foo.ts").is_file()
        assert "Remote sync complete: 1 downloaded" in output(console)

    @pytest.mark.asyncio
    async def test_declined(
        self, registry: MockRegistry, cache_path: Path, console: Console
    ) -> None:
        """Should write nothing when the sync is declined."""
        registry.add_item(make_item("foo"))

        result = await perform_remote_sync(
            [RemoteItem("foo", "tools")],
            confirm=lambda _: False,
            console=console,
            cache_path=cache_path,
            fetcher=registry.fetcher(),
        )

        assert not result.success
        assert result.cancelled
        assert result.plan.needs_sync
        assert not (cache_path / "tools" / "foo.ts").exists()

    @pytest.mark.asyncio
    async def test_up_to_date(
        self, registry: MockRegistry, cache_path: Path, console: Console
    ) -> None:
        """Should succeed without writing when nothing changed."""
        registry.add_item(make_item("foo"))
        await perform_remote_sync(
            [RemoteItem("foo", "tools")],
            yes=True,
            silent=True,
            console=console,
            cache_path=cache_path,
            fetcher=registry.fetcher(),
        )

        result = await perform_remote_sync(
            [RemoteItem("foo", "tools")],
            confirm=lambda _: False,
            console=console,
            cache_path=cache_path,
            fetcher=registry.fetcher(),
        )

        assert result.success
        assert not result.plan.needs_sync

    @pytest.mark.asyncio
    async def test_write_failure_reported(
        self,
        registry: MockRegistry,
        cache_path: Path,
        console: Console,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Should report a failed write instead of raising."""
        registry.add_item(make_item("foo"))

        def fail(path: Path, content: str) -> None:
            raise PermissionError(f"denied: {path}")

        monkeypatch.setattr(cache_module, "_write_text", fail)

        result = await perform_remote_sync(
            [RemoteItem("foo", "tools")],
            yes=True,
            console=console,
            cache_path=cache_path,
            fetcher=registry.fetcher(),
        )

        assert not result.success
        assert not result.cancelled
        assert "Remote sync failed" in output(console)
