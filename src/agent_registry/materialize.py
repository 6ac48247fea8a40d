"""
Writing resolved files into the consuming project.

Each file is placed under the output directory of its category, has its
internal imports rewritten, and is compared with what is already on disk
before anything is written.
"""

from __future__ import annotations

import difflib
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm
from rich.text import Text

from agent_registry.config import Config
from agent_registry.errors import TargetIsDirectoryError
from agent_registry.file_type import get_relative_path, get_target_dir
from agent_registry.logging import get_logger
from agent_registry.project import ProjectInfo, get_project_info
from agent_registry.registry.schema import RegistryItemFile
from agent_registry.transform import transform_imports

logger = get_logger("materialize")

_UNTYPED_SUFFIXES = {".ts": ".js", ".tsx": ".jsx"}


@dataclass
class MaterializeResult:
    """Paths (relative to the project root) grouped by what happened to them."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated)


def resolve_file_path(
    file: RegistryItemFile,
    kind: str,
    config: Config,
    project: ProjectInfo,
    path: str | None = None,
) -> Path:
    """Compute the on-disk location for *file*."""
    cwd = Path(config.resolved_paths.cwd)
    category = get_target_dir(file, kind)
    base = Path(path or config.resolved_paths.for_category(category) or cwd / category)
    if not base.is_absolute():
        base = cwd / base

    file_path = base / get_relative_path(file.key)

    src = cwd / "src"
    if project.is_src_dir and not _is_within(file_path, src):
        nested = base.relative_to(cwd) if _is_within(base, cwd) else Path(category)
        file_path = src / nested / get_relative_path(file.key)

    if not config.tsx and file_path.suffix in _UNTYPED_SUFFIXES:
        # renamed only, the content is not transpiled
        file_path = file_path.with_suffix(_UNTYPED_SUFFIXES[file_path.suffix])

    return Path(os.path.normpath(file_path))


def materialize(
    files: list[RegistryItemFile],
    kind: str,
    config: Config,
    *,
    overwrite: bool = False,
    silent: bool = False,
    yes: bool = False,
    path: str | None = None,
    confirm: Callable[[str], bool] | None = None,
    console: Console | None = None,
) -> MaterializeResult:
    """Write *files* into the project.

    Identical content on disk is skipped. Differing content is replaced when
    ``overwrite`` or ``yes`` is set; otherwise a diff is shown and *confirm*
    decides. A directory sitting at a target path aborts with
    :class:`TargetIsDirectoryError`; files written before it stay written.
    """
    result = MaterializeResult()
    if not files:
        return result

    console = console or Console()
    confirm = confirm or (lambda message: Confirm.ask(message, default=False, console=console))
    cwd = Path(config.resolved_paths.cwd)
    project = get_project_info(cwd)

    for file in files:
        file_path = resolve_file_path(file, kind, config, project, path)
        rel = os.path.relpath(file_path, cwd)

        if file_path.is_dir():
            raise TargetIsDirectoryError(str(file_path))

        content = transform_imports(file.path, file.content, config)
        exists = file_path.exists()

        if exists:
            existing = file_path.read_text(encoding="utf-8")
            if is_content_same(existing, content):
                logger.debug("Unchanged: %s", rel)
                result.skipped.append(rel)
                continue

            if not overwrite and not yes:
                console.print(f"\nFile: [cyan]{file_path.name}[/cyan]")
                console.print(render_diff(existing, content))
                if not confirm(
                    f"The file {file_path.name} already exists. Would you like to overwrite?"
                ):
                    result.skipped.append(rel)
                    continue

        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")

        if exists:
            result.updated.append(rel)
        else:
            result.created.append(rel)

    if not silent:
        _print_summary(result, console)
    return result


def is_content_same(existing: str, incoming: str) -> bool:
    """Compare file contents ignoring line-ending differences."""
    return existing.replace("\r\n", "\n") == incoming.replace("\r\n", "\n")


def render_diff(old: str, new: str) -> Text:
    """Line diff of *old* against *new*, additions green and removals red."""
    text = Text()
    for line in difflib.ndiff(old.splitlines(keepends=True), new.splitlines(keepends=True)):
        if line.startswith("? "):
            continue
        if not line.endswith("\n"):
            line += "\n"
        if line.startswith("+ "):
            text.append(line, style="green")
        elif line.startswith("- "):
            text.append(line, style="red")
        else:
            text.append(line)
    return text


def _print_summary(result: MaterializeResult, console: Console) -> None:
    if not result.changed and not result.skipped:
        console.print("[dim]No files updated.[/dim]")
        return
    for label, paths, style in (
        ("Created", result.created, "green"),
        ("Updated", result.updated, "yellow"),
        ("Skipped", result.skipped, "dim"),
    ):
        if paths:
            console.print(f"[{style}]{label} {len(paths)} file(s):[/{style}]")
            for rel in paths:
                console.print(f"  - {rel}")


def _is_within(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
    except ValueError:
        return False
    return True
