"""Helpers mapping registry file paths onto category directories."""

from __future__ import annotations

import re

from agent_registry.registry.schema import RegistryItemFile

_TYPE_DIRS = {
    "registry:agent": "agents",
    "registry:tool": "tools",
    "registry:prompt": "prompts",
}
_CATEGORY_PREFIX_RE = re.compile(r"^(agents|tools|prompts)/")


def get_target_dir(file: RegistryItemFile, fallback: str) -> str:
    """Category directory a file belongs in.

    Library files go wherever their path prefix says, otherwise to
    *fallback* (the category that was requested).
    """
    if file.type in _TYPE_DIRS:
        return _TYPE_DIRS[file.type]
    if file.type == "registry:lib":
        match = _CATEGORY_PREFIX_RE.match(file.path)
        if match:
            return match.group(1)
    return fallback


def get_relative_path(path: str) -> str:
    """Strip the leading category directory from a canonical path."""
    return _CATEGORY_PREFIX_RE.sub("", path, count=1)
