"""
Reference classification and URL construction.

Every item reference string is classified exactly once into one of four
variants; the rest of the package dispatches on the variant type instead
of repeating prefix checks.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from agent_registry.config import BUILTIN_REGISTRY, Config, builtin_registries, expand_env_vars
from agent_registry.errors import (
    RegistryInvalidNamespaceError,
    RegistryNotConfiguredError,
    RegistryNotFoundError,
)

_NAMESPACE_RE = re.compile(r"^(@[a-zA-Z0-9](?:[a-zA-Z0-9._-]*[a-zA-Z0-9])?)/(.+)$")
_LOCAL_PREFIXES = ("file://", "./", "../", "/", "~/")


@dataclass(frozen=True)
class Url:
    url: str


@dataclass(frozen=True)
class LocalFile:
    path: str


@dataclass(frozen=True)
class Namespaced:
    registry: str
    item: str


@dataclass(frozen=True)
class Bare:
    name: str


Reference = Url | LocalFile | Namespaced | Bare


@dataclass(frozen=True)
class FetchTarget:
    """A concrete network location plus the headers to send with it."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)


def is_local_file(reference: str) -> bool:
    return reference.startswith(_LOCAL_PREFIXES)


def is_url(reference: str) -> bool:
    parts = urlsplit(reference)
    return bool(parts.scheme) and bool(parts.netloc) and parts.scheme != "file"


def parse_namespaced(reference: str) -> Namespaced:
    """Split ``@registry/item``.

    Raises:
        RegistryInvalidNamespaceError: If the string is not well formed.
    """
    match = _NAMESPACE_RE.match(reference)
    if not match:
        raise RegistryInvalidNamespaceError(reference)
    return Namespaced(registry=match.group(1), item=match.group(2))


def classify(reference: str) -> Reference:
    """Classify a reference string.

    Priority: local file, absolute URL, ``@registry/item``, bare name.
    """
    if is_local_file(reference):
        return LocalFile(reference)
    if is_url(reference):
        return Url(reference)
    if reference.startswith("@"):
        return parse_namespaced(reference)
    return Bare(reference)


def reference_basename(reference: str) -> str:
    """Derive the item name a reference most likely points at.

    ``https://x/tools/read.json`` and ``./tools/read.json`` give ``read``,
    ``@acme/read`` gives ``read``, a bare name is returned unchanged.
    """
    ref = classify(reference)
    if isinstance(ref, Url):
        path = urlsplit(ref.url).path
    elif isinstance(ref, LocalFile):
        path = ref.path.removeprefix("file://")
    elif isinstance(ref, Namespaced):
        return ref.item
    else:
        return ref.name
    name = PurePosixPath(path).name
    return name.removesuffix(".json")


def build_url(template: str, kind: str, name: str, params: dict[str, str]) -> str:
    """Fill a ``{type}``/``{name}`` template and append query params."""
    url = template.replace("{type}", kind).replace("{name}", name)
    if not params:
        return url
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True) + list(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


def locate(reference: str, kind: str, config: Config) -> FetchTarget | LocalFile:
    """Compute where to fetch *reference* from. Pure; performs no I/O.

    Raises:
        RegistryInvalidNamespaceError: Malformed ``@`` reference.
        RegistryNotConfiguredError: The named registry is not configured.
        RegistryNotFoundError: The computed URL is empty.
    """
    ref = classify(reference)

    if isinstance(ref, LocalFile):
        return ref
    if isinstance(ref, Url):
        return FetchTarget(url=ref.url)

    if isinstance(ref, Namespaced):
        registry, item = ref.registry, ref.item
        source = config.registries.get(registry)
        if source is None:
            raise RegistryNotConfiguredError(registry)
    else:
        registry, item = BUILTIN_REGISTRY, ref.name
        source = builtin_registries()[BUILTIN_REGISTRY]

    source = expand_env_vars(registry, source)
    url = build_url(source.url, kind, item, source.params)
    if not url:
        raise RegistryNotFoundError(reference)
    return FetchTarget(url=url, headers=dict(source.headers))

