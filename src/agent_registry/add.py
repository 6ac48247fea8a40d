"""The "add to project" flow: resolve, then materialize."""

from __future__ import annotations

from collections.abc import Callable

from rich.console import Console

from agent_registry.config import Config, config_with_defaults
from agent_registry.logging import get_logger
from agent_registry.materialize import MaterializeResult, materialize
from agent_registry.registry.fetcher import Fetcher
from agent_registry.registry.resolver import resolve_tree

logger = get_logger("add")


async def add_items(
    names: list[str],
    kind: str,
    config: Config,
    *,
    overwrite: bool = False,
    silent: bool = False,
    yes: bool = False,
    path: str | None = None,
    fetcher: Fetcher | None = None,
    confirm: Callable[[str], bool] | None = None,
    console: Console | None = None,
) -> MaterializeResult:
    """Resolve *names* with their dependencies and write them into the project."""
    console = console or Console()
    if not names:
        return MaterializeResult()

    if not silent:
        console.print("[dim]Checking registry.[/dim]")
    tree = await resolve_tree(names, kind, config_with_defaults(config), fetcher)
    logger.info("Resolved %d file(s) for %s", len(tree.files), ", ".join(names))

    result = materialize(
        tree.files,
        kind,
        config,
        overwrite=overwrite,
        silent=silent,
        yes=yes,
        path=path,
        confirm=confirm,
        console=console,
    )

    if result.changed and (tree.dependencies or tree.dev_dependencies) and not silent:
        deps = list(dict.fromkeys([*tree.dependencies, *tree.dev_dependencies]))
        console.print(f"\nDependencies required: [cyan]{', '.join(deps)}[/cyan]")

    if tree.docs and not silent:
        console.print(tree.docs)

    return result
