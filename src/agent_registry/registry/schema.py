"""
Registry document models.

Item documents arrive as JSON and are validated against ``ITEM_SCHEMA``
with jsonschema before being turned into dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

import jsonschema

from agent_registry.errors import RegistryParseError

ItemCategory = Literal["agents", "tools", "prompts"]
ItemType = Literal["registry:agent", "registry:tool", "registry:prompt", "registry:lib"]

CATEGORIES: tuple[str, ...] = ("agents", "tools", "prompts")
ITEM_TYPES: tuple[str, ...] = (
    "registry:agent",
    "registry:tool",
    "registry:prompt",
    "registry:lib",
)

FILE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["path", "type"],
    "properties": {
        "path": {"type": "string"},
        "content": {"type": "string"},
        "type": {"enum": list(ITEM_TYPES)},
        "target": {"type": "string"},
    },
}

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["name", "type"],
    "properties": {
        "$schema": {"type": "string"},
        "name": {"type": "string"},
        "type": {"enum": list(ITEM_TYPES)},
        "title": {"type": "string"},
        "author": {"type": "string", "minLength": 2},
        "description": {"type": "string"},
        "dependencies": _STRING_LIST,
        "devDependencies": _STRING_LIST,
        "registryDependencies": _STRING_LIST,
        "files": {"type": "array", "items": FILE_SCHEMA},
        "meta": {"type": "object"},
        "docs": {"type": "string"},
        "categories": _STRING_LIST,
    },
}

REGISTRY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["name", "homepage", "items"],
    "properties": {
        "name": {"type": "string"},
        "homepage": {"type": "string"},
        "items": {"type": "array", "items": ITEM_SCHEMA},
    },
}


@dataclass(frozen=True)
class RegistryItemFile:
    """One source file shipped by a registry item.

    ``path`` is in canonical ``<category>/<relative path>`` form. ``source``
    is the reference of the item the file came from; it is set on files of a
    merged :class:`ResolvedTree` and is not part of the document.
    """

    path: str
    type: str
    content: str = ""
    target: str | None = None
    source: str | None = field(default=None, compare=False)

    @property
    def key(self) -> str:
        """Effective target path used for de-duplication."""
        return self.target or self.path

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistryItemFile:
        return cls(
            path=data["path"],
            type=data["type"],
            content=data.get("content", ""),
            target=data.get("target"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.path,
            "content": self.content,
            "type": self.type,
        }
        if self.target:
            data["target"] = self.target
        return data


@dataclass(frozen=True)
class RegistryItem:
    """A validated item document. Never mutated after fetching."""

    name: str
    type: str
    files: tuple[RegistryItemFile, ...] = ()
    dependencies: tuple[str, ...] = ()
    dev_dependencies: tuple[str, ...] = ()
    registry_dependencies: tuple[str, ...] = ()
    title: str | None = None
    author: str | None = None
    description: str | None = None
    docs: str | None = None
    categories: tuple[str, ...] = ()
    meta: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def kind(self) -> str:
        """Short kind name: ``agent``, ``tool``, ``prompt`` or ``lib``."""
        return self.type.removeprefix("registry:")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistryItem:
        return cls(
            name=data["name"],
            type=data["type"],
            files=tuple(RegistryItemFile.from_dict(f) for f in data.get("files", [])),
            dependencies=tuple(data.get("dependencies", [])),
            dev_dependencies=tuple(data.get("devDependencies", [])),
            registry_dependencies=tuple(data.get("registryDependencies", [])),
            title=data.get("title"),
            author=data.get("author"),
            description=data.get("description"),
            docs=data.get("docs"),
            categories=tuple(data.get("categories", [])),
            meta=dict(data.get("meta", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert back to the wire format, omitting empty optional fields."""
        data: dict[str, Any] = {"name": self.name, "type": self.type}
        optional = {
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "dependencies": list(self.dependencies),
            "devDependencies": list(self.dev_dependencies),
            "registryDependencies": list(self.registry_dependencies),
            "files": [f.to_dict() for f in self.files],
            "meta": self.meta,
            "docs": self.docs,
            "categories": list(self.categories),
        }
        data.update({k: v for k, v in optional.items() if v})
        return data


@dataclass
class ResolvedTree:
    """Merged result of resolving a set of items and their dependencies."""

    dependencies: list[str] = field(default_factory=list)
    dev_dependencies: list[str] = field(default_factory=list)
    files: list[RegistryItemFile] = field(default_factory=list)
    docs: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "dependencies": list(self.dependencies),
            "devDependencies": list(self.dev_dependencies),
            "files": [f.to_dict() for f in self.files],
            "docs": self.docs,
        }


@dataclass
class Registry:
    """A registry index document listing the items it serves."""

    name: str
    homepage: str
    items: list[RegistryItem] = field(default_factory=list)


def parse_item(data: Any, reference: str) -> RegistryItem:
    """Validate a raw document and build a :class:`RegistryItem`.

    Raises:
        RegistryParseError: If the document does not match ``ITEM_SCHEMA``.
    """
    try:
        jsonschema.validate(data, ITEM_SCHEMA)
    except jsonschema.ValidationError as e:
        raise RegistryParseError(reference, e) from e
    return RegistryItem.from_dict(data)


def parse_registry(data: Any, reference: str) -> Registry:
    """Validate a raw registry index document."""
    try:
        jsonschema.validate(data, REGISTRY_SCHEMA)
    except jsonschema.ValidationError as e:
        raise RegistryParseError(reference, e) from e
    return Registry(
        name=data["name"],
        homepage=data["homepage"],
        items=[RegistryItem.from_dict(item) for item in data["items"]],
    )
