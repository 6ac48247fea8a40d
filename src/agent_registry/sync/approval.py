"""Interactive approval around a cache sync."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm

from agent_registry.logging import get_logger
from agent_registry.registry.fetcher import Fetcher
from agent_registry.sync.cache import RemoteItem, SyncPlan, prepare_sync

logger = get_logger("sync.approval")


@dataclass
class PerformSyncResult:
    success: bool
    cancelled: bool
    plan: SyncPlan


def show_remote_approval(
    plan: SyncPlan,
    console: Console,
    confirm: Callable[[str], bool],
    *,
    yes: bool = False,
    silent: bool = False,
) -> bool:
    """Print the plan and ask whether to proceed."""
    if yes:
        return True

    if not plan.needs_sync:
        if not silent:
            console.print("All remote items are already cached and up-to-date.")
        return True

    to_download = [i for i in plan.to_sync if i.is_new]
    to_update = [i for i in plan.to_sync if not i.is_new]

    console.print("\n[bold cyan]Remote Registry Sync[/bold cyan]\n")

    if to_download:
        console.print(f"[green]New items to download ({len(to_download)}):[/green]")
        for item in to_download:
            console.print(f"  [green]+[/green] {item.name} [dim]({item.kind[:-1]})[/dim]")
        console.print()

    if to_update:
        console.print(f"[yellow]Items with updates available ({len(to_update)}):[/yellow]")
        for item in to_update:
            console.print(f"  [yellow]~[/yellow] {item.name} [dim]({item.kind[:-1]})[/dim]")
        console.print()

    total_deps = len(plan.dependencies) + len(plan.dev_dependencies)
    if total_deps:
        console.print(f"Dependencies to install: [cyan]{total_deps}[/cyan]")
        if len(plan.dependencies) <= 10:
            console.print(f"  [dim]{', '.join(plan.dependencies)}[/dim]")
        console.print()

    return confirm("Proceed with sync?")


async def perform_remote_sync(
    items: list[RemoteItem],
    *,
    yes: bool = False,
    silent: bool = False,
    confirm: Callable[[str], bool] | None = None,
    console: Console | None = None,
    cache_path: Path | None = None,
    fetcher: Fetcher | None = None,
) -> PerformSyncResult:
    """Prepare, approve and run a cache sync.

    A failure while writing the cache is reported and returned as
    ``success=False`` rather than raised.
    """
    console = console or Console()
    confirm = confirm or (lambda message: Confirm.ask(message, default=True, console=console))

    prepared = await prepare_sync(items, cache_path=cache_path, fetcher=fetcher)
    plan = prepared.plan

    if not show_remote_approval(plan, console, confirm, yes=yes, silent=silent):
        return PerformSyncResult(success=False, cancelled=True, plan=plan)

    if not plan.needs_sync:
        return PerformSyncResult(success=True, cancelled=False, plan=plan)

    try:
        await prepared.sync()
    except OSError as e:
        logger.debug("Sync failed", exc_info=True)
        if not silent:
            console.print(f"[red]Remote sync failed: {e}[/red]")
        return PerformSyncResult(success=False, cancelled=False, plan=plan)

    if not silent:
        downloaded = sum(1 for i in plan.to_sync if i.is_new)
        updated = len(plan.to_sync) - downloaded
        parts = []
        if downloaded:
            parts.append(f"{downloaded} downloaded")
        if updated:
            parts.append(f"{updated} updated")
        console.print(f"[green]Remote sync complete: {', '.join(parts)}[/green]")

    return PerformSyncResult(success=True, cancelled=False, plan=plan)
