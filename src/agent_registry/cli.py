"""
Command-line interface for the registry client.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from agent_registry.add import add_items
from agent_registry.config import (
    Config,
    config_with_defaults,
    create_config,
    default_raw_config,
    find_config_file,
    get_config,
    get_raw_config,
    load_env_files,
    write_config_file,
)
from agent_registry.errors import RegistryError
from agent_registry.logging import disable, enable, setup_logging
from agent_registry.materialize import is_content_same, render_diff, resolve_file_path
from agent_registry.project import get_project_info
from agent_registry.registry.api import get_registry, get_registry_items, search_registry
from agent_registry.registry.schema import CATEGORIES
from agent_registry.sync import RemoteItem, get_local_cache_path, perform_remote_sync
from agent_registry.transform import transform_imports

console = Console()


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Add agents, tools and prompts from registries to your project",
        prog="agents",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (debug logging)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init
    init_parser = subparsers.add_parser("init", help="Initialize your project and write agents.json")
    init_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")
    init_parser.add_argument(
        "-d", "--defaults", action="store_true", help="Use the default configuration"
    )
    init_parser.add_argument("-s", "--silent", action="store_true", help="Mute output")
    _add_cwd_argument(init_parser)

    # add
    add_parser = subparsers.add_parser("add", help="Add an agent, tool, or prompt to your project")
    add_parser.add_argument("items", nargs="*", help="Names of items to add")
    add_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")
    add_parser.add_argument(
        "-o", "--overwrite", action="store_true", help="Overwrite existing files"
    )
    add_parser.add_argument("-s", "--silent", action="store_true", help="Mute output")
    add_parser.add_argument("-p", "--path", help="Write files to this directory instead")
    kind_group = add_parser.add_mutually_exclusive_group()
    kind_group.add_argument("--tool", action="store_true", help="Add a tool (default: agent)")
    kind_group.add_argument("--prompt", action="store_true", help="Add a prompt (default: agent)")
    _add_cwd_argument(add_parser)

    # view
    view_parser = subparsers.add_parser("view", help="View item details from the registry")
    view_parser.add_argument("items", nargs="+", help="The item names to view")
    _add_type_argument(view_parser)
    _add_cwd_argument(view_parser)

    # list
    list_parser = subparsers.add_parser("list", help="List available items from a registry")
    list_parser.add_argument(
        "-r", "--registry", default="@agents", help="Registry name or URL (default: @agents)"
    )
    _add_type_argument(list_parser, default="agents")
    _add_cwd_argument(list_parser)

    # search
    search_parser = subparsers.add_parser("search", help="Search items in a registry")
    search_parser.add_argument("-q", "--query", help="Match against item names and descriptions")
    search_parser.add_argument(
        "-r", "--registry", default="@agents", help="Registry name or URL (default: @agents)"
    )
    _add_type_argument(search_parser, default="agents")
    _add_cwd_argument(search_parser)

    # diff
    diff_parser = subparsers.add_parser("diff", help="Check for updates against the registry")
    diff_parser.add_argument("item", help="The item name")
    _add_type_argument(diff_parser)
    _add_cwd_argument(diff_parser)

    # sync
    sync_parser = subparsers.add_parser("sync", help="Sync remote items into the local cache")
    sync_parser.add_argument("items", nargs="+", help="The item names to cache")
    sync_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")
    sync_parser.add_argument("-s", "--silent", action="store_true", help="Mute output")
    _add_type_argument(sync_parser, default="agents")

    # config
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    show_parser = config_subparsers.add_parser("show", help="Show the resolved configuration")
    _add_cwd_argument(show_parser)
    path_parser = config_subparsers.add_parser("path", help="Show config and cache paths")
    _add_cwd_argument(path_parser)

    args = parser.parse_args(argv)

    enable()
    if getattr(args, "verbose", False):
        setup_logging("DEBUG")
    else:
        setup_logging("WARNING")
    if getattr(args, "silent", False):
        disable()

    try:
        if args.command == "init":
            cmd_init(args)
        elif args.command == "add":
            asyncio.run(cmd_add(args))
        elif args.command == "view":
            asyncio.run(cmd_view(args))
        elif args.command == "list":
            asyncio.run(cmd_list(args))
        elif args.command == "search":
            asyncio.run(cmd_search(args))
        elif args.command == "diff":
            asyncio.run(cmd_diff(args))
        elif args.command == "sync":
            asyncio.run(cmd_sync(args))
        elif args.command == "config":
            cmd_config(args)
        else:
            parser.print_help()
    except RegistryError as e:
        handle_error(e)


def _add_cwd_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--cwd",
        default=str(Path.cwd()),
        help="The working directory (defaults to the current directory)",
    )


def _add_type_argument(parser: argparse.ArgumentParser, default: str | None = None) -> None:
    parser.add_argument(
        "-t",
        "--type",
        choices=list(CATEGORIES),
        default=default,
        help="The type of item (agents, tools, prompts)",
    )


def handle_error(error: RegistryError) -> None:
    """Print a single-line error and exit non-zero."""
    console.print(f"[red]Error:[/red] {escape(error.message)}")
    sys.exit(1)


def _load_config(cwd: str) -> Config:
    """Load the project config, falling back to defaults when there is none."""
    root = Path(cwd).resolve()
    load_env_files(root)
    config = get_config(root)
    if config is None:
        config = create_config(root)
    return config


def _require_type(args: argparse.Namespace) -> str:
    if not args.type:
        console.print("[red]Please specify the type using --type (agents, tools, or prompts).[/red]")
        sys.exit(1)
    return args.type


def cmd_init(args: argparse.Namespace) -> None:
    """Write agents.json for the project in ``--cwd``."""
    root = Path(args.cwd).resolve()
    if not root.is_dir():
        console.print(f"[red]The path {escape(str(root))} does not exist.[/red]")
        sys.exit(1)

    existing = get_raw_config(root)
    project = get_project_info(root)
    tsx = project.is_tsx or not (root / "jsconfig.json").is_file()
    raw = default_raw_config(tsx=tsx, alias_prefix=project.alias_prefix or "@")
    if existing is not None:
        aliases = raw["aliases"] if args.defaults else existing["aliases"]
        raw = {**existing, "aliases": aliases}

    if not args.defaults:
        raw = _prompt_for_config(raw, ask_tsx=existing is None)

    if not args.yes and not Confirm.ask(
        "Write configuration to [cyan]agents.json[/cyan]. Proceed?",
        default=True,
        console=console,
    ):
        return

    write_config_file(root, raw)
    if not args.silent:
        console.print(
            "[green]Success![/green] Project initialization completed.\n"
            "You may now add agents, tools, and prompts."
        )


def _prompt_for_config(raw: dict, ask_tsx: bool) -> dict:
    if ask_tsx:
        raw = {
            **raw,
            "tsx": Confirm.ask(
                "Would you like to use [cyan]TypeScript[/cyan] (recommended)?",
                default=raw["tsx"],
                console=console,
            ),
        }
    aliases = {
        category: Prompt.ask(
            f"Configure the import alias for [cyan]{category}[/cyan]",
            default=raw["aliases"][category],
            console=console,
        )
        for category in CATEGORIES
    }
    return {**raw, "aliases": aliases}


async def cmd_add(args: argparse.Namespace) -> None:
    """Add items and their dependencies to the project."""
    if not args.items:
        console.print("[red]Please specify at least one item to add.[/red]")
        sys.exit(1)

    kind = "tools" if args.tool else "prompts" if args.prompt else "agents"
    config = _load_config(args.cwd)

    await add_items(
        args.items,
        kind,
        config,
        overwrite=args.overwrite,
        silent=args.silent,
        yes=args.yes,
        path=args.path,
        console=console,
    )


async def cmd_view(args: argparse.Namespace) -> None:
    """Print item documents as JSON."""
    kind = _require_type(args)
    config = _load_config(args.cwd)
    items = await get_registry_items(args.items, kind, config)
    console.print_json(json.dumps([item.to_dict() for item in items], indent=2))


async def cmd_list(args: argparse.Namespace) -> None:
    """Print the items a registry serves."""
    config = _load_config(args.cwd)
    registry = await get_registry(args.registry, args.type, config)
    console.print_json(json.dumps([item.to_dict() for item in registry.items], indent=2))


async def cmd_search(args: argparse.Namespace) -> None:
    """Print the items of a registry that match ``--query``."""
    config = _load_config(args.cwd)
    items = await search_registry(args.registry, args.type, args.query, config)
    console.print_json(json.dumps([item.to_dict() for item in items], indent=2))


async def cmd_diff(args: argparse.Namespace) -> None:
    """Show how local copies of an item differ from the registry."""
    kind = _require_type(args)
    config = _load_config(args.cwd)
    [item] = await get_registry_items([args.item], kind, config)

    project = get_project_info(config.resolved_paths.cwd)
    for file in item.files:
        file_path = resolve_file_path(file, kind, config, project)
        if not file_path.exists():
            console.print(f"File {file_path} does not exist locally.")
            continue

        local = file_path.read_text(encoding="utf-8")
        remote = transform_imports(file.path, file.content, config)
        if not is_content_same(local, remote):
            console.print(f"\nFile: [cyan]{escape(file.path)}[/cyan]")
            console.print(render_diff(local, remote))


async def cmd_sync(args: argparse.Namespace) -> None:
    """Download or update items in the local execution cache."""
    items = [RemoteItem(name=name, kind=args.type) for name in args.items]
    result = await perform_remote_sync(items, yes=args.yes, silent=args.silent, console=console)
    if not result.success:
        sys.exit(1)


def cmd_config(args: argparse.Namespace) -> None:
    """Configuration management commands."""
    if args.config_command == "show":
        _config_show(args.cwd)
    elif args.config_command == "path":
        _config_path(args.cwd)
    else:
        console.print("[yellow]Usage: agents config <show|path>[/yellow]")


def _config_show(cwd: str) -> None:
    config_file = find_config_file(cwd)
    if config_file is None:
        console.print("[dim]No config file found. Using defaults.[/dim]")
    else:
        console.print(f"[dim]Loaded from: {config_file}[/dim]\n")

    config = config_with_defaults(_load_config(cwd))
    console.print("[bold]Current Configuration:[/bold]\n")
    console.print(yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False))


def _config_path(cwd: str) -> None:
    console.print("[bold]Config and cache paths:[/bold]\n")
    config_file = find_config_file(cwd)
    paths = [
        ("Project config", config_file or Path(cwd) / "agents.json"),
        ("Local cache", get_local_cache_path()),
    ]
    for name, path in paths:
        exists = "[green]✓[/green]" if Path(path).exists() else "[dim]·[/dim]"
        console.print(f"  {exists} {name}: {path}")


if __name__ == "__main__":
    main()
