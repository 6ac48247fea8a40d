"""
Project configuration for the registry client.

The project file ``agents.json`` (or ``agents.yaml``) declares the import
aliases items are rewritten to and any extra registries to pull from:

    {
      "tsx": true,
      "aliases": {"agents": "@/agents", "tools": "@/tools", "prompts": "@/prompts"},
      "registries": {
        "@acme": "https://registry.acme.dev/{type}/{name}.json",
        "@private": {
          "url": "https://private.dev/r/{type}/{name}.json",
          "headers": {"Authorization": "Bearer ${PRIVATE_TOKEN}"}
        }
      }
    }
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import json5
import jsonschema
import yaml
from dotenv import load_dotenv

from agent_registry.errors import ConfigParseError, RegistryMissingEnvironmentVariablesError
from agent_registry.logging import get_logger

logger = get_logger("config")

CONFIG_FILES = ("agents.json", "agents.yaml", "agents.yml")
ENV_FILES = (".env", ".env.local")

DEFAULT_REGISTRY_URL = "https://raw.githubusercontent.com/agents-registry/registry/main/registry"
BUILTIN_REGISTRY = "@agents"

DEFAULT_AGENTS = "@/agents"
DEFAULT_TOOLS = "@/tools"
DEFAULT_PROMPTS = "@/prompts"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

_SOURCE_URL_SCHEMA = {"type": "string", "pattern": r"^(?=.*\{type\})(?=.*\{name\})"}

CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["aliases"],
    "properties": {
        "$schema": {"type": "string"},
        "tsx": {"type": ["boolean", "string"]},
        "aliases": {
            "type": "object",
            "required": ["agents", "tools", "prompts"],
            "properties": {
                "agents": {"type": "string"},
                "tools": {"type": "string"},
                "prompts": {"type": "string"},
            },
        },
        "registries": {
            "type": "object",
            "propertyNames": {"pattern": "^@"},
            "additionalProperties": {
                "oneOf": [
                    _SOURCE_URL_SCHEMA,
                    {
                        "type": "object",
                        "required": ["url"],
                        "additionalProperties": False,
                        "properties": {
                            "url": _SOURCE_URL_SCHEMA,
                            "params": {
                                "type": "object",
                                "additionalProperties": {"type": "string"},
                            },
                            "headers": {
                                "type": "object",
                                "additionalProperties": {"type": "string"},
                            },
                        },
                    },
                ]
            },
        },
    },
}


def get_registry_url() -> str:
    """Base URL of the built-in registry (``AGENT_REGISTRY_URL`` overrides)."""
    return os.environ.get("AGENT_REGISTRY_URL", DEFAULT_REGISTRY_URL)


@dataclass(frozen=True)
class Aliases:
    """Import prefixes installed items are rewritten to."""

    agents: str = DEFAULT_AGENTS
    tools: str = DEFAULT_TOOLS
    prompts: str = DEFAULT_PROMPTS

    def for_category(self, category: str) -> str:
        return getattr(self, category)


@dataclass(frozen=True)
class RegistrySource:
    """Where a named registry serves items from.

    ``url`` must contain the ``{type}`` and ``{name}`` placeholders.
    """

    url: str
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_value(cls, value: str | dict[str, Any]) -> RegistrySource:
        if isinstance(value, str):
            return cls(url=value)
        return cls(
            url=value["url"],
            params=dict(value.get("params", {})),
            headers=dict(value.get("headers", {})),
        )

    def to_value(self) -> str | dict[str, Any]:
        if not self.params and not self.headers:
            return self.url
        data: dict[str, Any] = {"url": self.url}
        if self.params:
            data["params"] = dict(self.params)
        if self.headers:
            data["headers"] = dict(self.headers)
        return data

    def env_vars(self) -> list[str]:
        """Environment variables referenced as ``${VAR}`` anywhere in the source."""
        found: list[str] = []
        for text in [self.url, *self.params.values(), *self.headers.values()]:
            for var in _ENV_VAR_RE.findall(text):
                if var not in found:
                    found.append(var)
        return found


@dataclass(frozen=True)
class ResolvedPaths:
    """Absolute output directories per category."""

    cwd: str
    agents: str = ""
    tools: str = ""
    prompts: str = ""

    def for_category(self, category: str) -> str:
        return getattr(self, category)


def builtin_registries() -> dict[str, RegistrySource]:
    """Registries that are always available and cannot be overridden."""
    return {BUILTIN_REGISTRY: RegistrySource(url=f"{get_registry_url()}/{{type}}/{{name}}.json")}


@dataclass(frozen=True)
class Config:
    """Resolved project configuration. Loaded once per command."""

    resolved_paths: ResolvedPaths = field(default_factory=lambda: ResolvedPaths(cwd=os.getcwd()))
    tsx: bool = True
    aliases: Aliases = field(default_factory=Aliases)
    registries: dict[str, RegistrySource] = field(default_factory=builtin_registries)

    @classmethod
    def from_dict(cls, data: dict[str, Any], cwd: str | Path) -> Config:
        """Build a config from a raw config mapping; paths are not resolved."""
        aliases = data.get("aliases", {})
        return cls(
            resolved_paths=ResolvedPaths(cwd=str(cwd)),
            tsx=_coerce_bool(data.get("tsx", True)),
            aliases=Aliases(
                agents=aliases.get("agents", DEFAULT_AGENTS),
                tools=aliases.get("tools", DEFAULT_TOOLS),
                prompts=aliases.get("prompts", DEFAULT_PROMPTS),
            ),
            registries={
                name: RegistrySource.from_value(value)
                for name, value in data.get("registries", {}).items()
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "tsx": self.tsx,
            "aliases": {
                "agents": self.aliases.agents,
                "tools": self.aliases.tools,
                "prompts": self.aliases.prompts,
            },
            "registries": {name: src.to_value() for name, src in self.registries.items()},
            "resolvedPaths": {
                "cwd": self.resolved_paths.cwd,
                "agents": self.resolved_paths.agents,
                "tools": self.resolved_paths.tools,
                "prompts": self.resolved_paths.prompts,
            },
        }


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value in ("true", "1")
    return bool(value)


def config_with_defaults(config: Config | None = None) -> Config:
    """Return *config* with the built-in registries guaranteed present.

    User registries come first so that the first configured registry keeps
    its position; the built-in entries always win on a name clash.
    """
    if config is None:
        return Config()
    return replace(config, registries={**config.registries, **builtin_registries()})


def create_config(
    cwd: str | Path | None = None,
    *,
    tsx: bool = True,
    aliases: Aliases | None = None,
    registries: dict[str, RegistrySource] | None = None,
    resolved_paths: ResolvedPaths | None = None,
) -> Config:
    """Build an in-memory config, used when a project has no config file."""
    root = str(Path(cwd).resolve()) if cwd else os.getcwd()
    return Config(
        resolved_paths=resolved_paths or ResolvedPaths(cwd=root),
        tsx=tsx,
        aliases=aliases or Aliases(),
        registries={**builtin_registries(), **(registries or {})},
    )


def find_config_file(cwd: str | Path) -> Path | None:
    """Return the first config file present in *cwd*."""
    for name in CONFIG_FILES:
        candidate = Path(cwd) / name
        if candidate.is_file():
            return candidate
    return None


def get_raw_config(cwd: str | Path) -> dict[str, Any] | None:
    """Load and validate the raw config mapping, or ``None`` if absent.

    Raises:
        ConfigParseError: If the file is unreadable, invalid, or tries to
            redefine a built-in registry.
    """
    path = find_config_file(cwd)
    if path is None:
        return None

    try:
        with open(path) as f:
            data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
        jsonschema.validate(data or {}, CONFIG_SCHEMA)
    except (OSError, ValueError, yaml.YAMLError, jsonschema.ValidationError) as e:
        raise ConfigParseError(str(cwd), e) from e

    data = data or {}
    for name in data.get("registries", {}):
        if name in builtin_registries():
            raise ConfigParseError(
                str(cwd),
                ValueError(f'"{name}" is a built-in registry and cannot be overridden.'),
            )
    logger.debug("Loaded config from %s", path)
    return data


def default_raw_config(*, tsx: bool = True, alias_prefix: str = "@") -> dict[str, Any]:
    """Raw config for a new project, with every category under *alias_prefix*."""
    return {
        "tsx": tsx,
        "aliases": {
            "agents": f"{alias_prefix}/agents",
            "tools": f"{alias_prefix}/tools",
            "prompts": f"{alias_prefix}/prompts",
        },
        "registries": {},
    }


def write_config_file(cwd: str | Path, raw: dict[str, Any]) -> Config:
    """Validate *raw*, write it to ``agents.json`` and return the resolved config.

    Built-in registries are left out of the written file.

    Raises:
        ConfigParseError: If *raw* does not match ``CONFIG_SCHEMA``.
    """
    builtins = builtin_registries()
    data = {
        **raw,
        "registries": {
            name: value
            for name, value in raw.get("registries", {}).items()
            if name not in builtins
        },
    }
    try:
        jsonschema.validate(data, CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ConfigParseError(str(cwd), e) from e

    path = Path(cwd) / CONFIG_FILES[0]
    path.write_text(f"{json.dumps(data, indent=2)}\n", encoding="utf-8")
    logger.debug("Wrote config to %s", path)
    return resolve_config_paths(cwd, data)


def get_config(cwd: str | Path) -> Config | None:
    """Load the project config in *cwd* with output paths resolved."""
    raw = get_raw_config(cwd)
    if raw is None:
        return None
    return resolve_config_paths(cwd, raw)


def resolve_config_paths(cwd: str | Path, raw: dict[str, Any]) -> Config:
    """Resolve each category alias to an absolute output directory."""
    root = Path(cwd).resolve()
    config = Config.from_dict(raw, root)
    paths, base_url = load_path_mappings(root, config.tsx)

    resolved = {}
    for category in ("agents", "tools", "prompts"):
        alias = config.aliases.for_category(category)
        target = resolve_import(alias, paths, root / base_url)
        resolved[category] = str(target or root / "src" / category)

    return replace(
        config,
        registries={**builtin_registries(), **config.registries},
        resolved_paths=ResolvedPaths(cwd=str(root), **resolved),
    )


def resolve_import(alias: str, paths: dict[str, list[str]], base_dir: Path) -> Path | None:
    """Map an import alias through ``compilerOptions.paths`` patterns."""
    for pattern, targets in paths.items():
        if not targets:
            continue
        if pattern.endswith("*"):
            prefix = pattern[:-1]
            if alias.startswith(prefix):
                rest = alias[len(prefix):]
                return (base_dir / targets[0].replace("*", rest)).resolve()
        elif alias == pattern:
            return (base_dir / targets[0]).resolve()
    return None


def load_path_mappings(root: Path, tsx: bool) -> tuple[dict[str, list[str]], str]:
    names = ("tsconfig.json", "jsconfig.json") if tsx else ("jsconfig.json", "tsconfig.json")
    for name in names:
        path = root / name
        if not path.is_file():
            continue
        try:
            # tsconfig files allow comments and trailing commas
            data = json5.loads(path.read_text(encoding="utf-8"))
        except ValueError as e:
            logger.warning("Could not parse %s: %s", path, e)
            return {}, "."
        options = data.get("compilerOptions", {})
        return options.get("paths", {}), options.get("baseUrl", ".")
    return {}, "."


def expand_env_vars(registry: str, source: RegistrySource) -> RegistrySource:
    """Substitute ``${VAR}`` references from the environment.

    Raises:
        RegistryMissingEnvironmentVariablesError: If any variable is unset.
    """
    missing = [var for var in source.env_vars() if not os.environ.get(var)]
    if missing:
        raise RegistryMissingEnvironmentVariablesError(registry, missing)

    def expand(text: str) -> str:
        return _ENV_VAR_RE.sub(lambda m: os.environ[m.group(1)], text)

    return RegistrySource(
        url=expand(source.url),
        params={k: expand(v) for k, v in source.params.items()},
        headers={k: expand(v) for k, v in source.headers.items()},
    )


def load_env_files(cwd: str | Path) -> None:
    """Load ``.env`` files from the project root without overriding the environment."""
    for name in ENV_FILES:
        path = Path(cwd) / name
        if path.is_file():
            load_dotenv(path, override=False)
            logger.debug("Loaded environment from %s", path)
