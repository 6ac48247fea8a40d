"""Detection of the consuming project's layout."""

from __future__ import annotations

from functools import cached_property
from pathlib import Path

from agent_registry.config import load_path_mappings


class ProjectInfo:
    """Layout of the project in *cwd*.

    The tsconfig/jsconfig is only read when ``alias_prefix`` is first used.
    """

    def __init__(self, cwd: str | Path) -> None:
        self.root = Path(cwd)

    @property
    def is_src_dir(self) -> bool:
        return (self.root / "src").is_dir()

    @property
    def is_tsx(self) -> bool:
        return any(self.root.glob("tsconfig.*"))

    @cached_property
    def alias_prefix(self) -> str | None:
        return get_alias_prefix(self.root)


def get_project_info(cwd: str | Path) -> ProjectInfo:
    """Inspect *cwd* for a ``src/`` directory, a tsconfig and its alias prefix."""
    return ProjectInfo(cwd)


def get_alias_prefix(cwd: str | Path) -> str | None:
    """First ``compilerOptions.paths`` key without its wildcard, e.g. ``@``."""
    paths, _ = load_path_mappings(Path(cwd), tsx=True)
    if not paths:
        return None
    first = next(iter(paths))
    if "*" in first:
        return first.replace("/*", "")
    return first.replace("/", "")
