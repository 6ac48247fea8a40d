"""
Agents Registry - install agents, tools and prompts from registries.

Items are JSON documents listing source files and dependencies. This library
resolves an item's dependency graph across registries, rewrites internal
imports to the consuming project's aliases and writes the files into the
project (or into a shared local cache).

Example:
    from agent_registry import create_config, resolve_tree, materialize

    config = create_config("./my-app")
    tree = await resolve_tree(["coding-agent"], "agents", config)
    materialize(tree.files, "agents", config, yes=True)
"""

from agent_registry.add import add_items
from agent_registry.config import (
    Aliases,
    Config,
    RegistrySource,
    ResolvedPaths,
    config_with_defaults,
    create_config,
    get_config,
)
from agent_registry.errors import (
    ConfigParseError,
    RegistryError,
    RegistryInvalidNamespaceError,
    RegistryMissingEnvironmentVariablesError,
    RegistryNotConfiguredError,
    RegistryNotFoundError,
    RegistryParseError,
    TargetIsDirectoryError,
)
from agent_registry.materialize import MaterializeResult, materialize
from agent_registry.registry import (
    Fetcher,
    RegistryItem,
    RegistryItemFile,
    ResolvedTree,
    get_registry,
    get_registry_items,
    resolve_registry_items,
    resolve_tree,
    search_registry,
)
from agent_registry.sync import RemoteItem, SyncPlan, perform_remote_sync, prepare_sync
from agent_registry.transform import transform_imports

__version__ = "0.1.0"

__all__ = [
    # Config
    "Aliases",
    "Config",
    "RegistrySource",
    "ResolvedPaths",
    "config_with_defaults",
    "create_config",
    "get_config",
    # Errors
    "RegistryError",
    "RegistryInvalidNamespaceError",
    "RegistryNotFoundError",
    "RegistryNotConfiguredError",
    "RegistryParseError",
    "RegistryMissingEnvironmentVariablesError",
    "ConfigParseError",
    "TargetIsDirectoryError",
    # Registry
    "Fetcher",
    "RegistryItem",
    "RegistryItemFile",
    "ResolvedTree",
    "get_registry",
    "get_registry_items",
    "resolve_registry_items",
    "resolve_tree",
    "search_registry",
    # Installing
    "MaterializeResult",
    "add_items",
    "materialize",
    "transform_imports",
    # Cache
    "RemoteItem",
    "SyncPlan",
    "perform_remote_sync",
    "prepare_sync",
]
