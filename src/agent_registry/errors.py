"""Error types raised while locating, fetching and installing registry items."""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for registry failures.

    Network failures (non-success status, unreachable host) are raised as a
    plain ``RegistryError`` with the status embedded in the message.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class RegistryInvalidNamespaceError(RegistryError):
    """A reference that should be ``@registry/item`` is malformed."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f'Invalid registry namespace: "{name}". '
            'Registry names must start with @ (e.g., @acme/button).'
        )
        self.name = name


class RegistryNotFoundError(RegistryError):
    """The locator could not produce a URL for a reference."""

    def __init__(self, name: str) -> None:
        super().__init__(f'The item at "{name}" was not found in any registry.')
        self.name = name


class RegistryNotConfiguredError(RegistryError):
    """A namespaced reference names a registry missing from the config."""

    def __init__(self, registry: str) -> None:
        super().__init__(
            f'Unknown registry "{registry}". '
            "Make sure it is defined in the registries section of agents.json."
        )
        self.registry = registry


class RegistryParseError(RegistryError):
    """A fetched document failed schema validation."""

    def __init__(self, item: str, cause: BaseException | None = None) -> None:
        detail = getattr(cause, "message", None) or (str(cause) if cause else "")
        message = f'Failed to parse registry item: "{item}"'
        if detail:
            message = f"{message}. {detail}"
        super().__init__(message, cause)
        self.item = item


class RegistryMissingEnvironmentVariablesError(RegistryError):
    """A registry source references environment variables that are unset."""

    def __init__(self, registry: str, missing: list[str]) -> None:
        super().__init__(
            f'Registry "{registry}" requires the following environment '
            f"variables: {', '.join(missing)}"
        )
        self.registry = registry
        self.missing = missing


class ConfigParseError(RegistryError):
    """The project configuration file is invalid."""

    def __init__(self, cwd: str, cause: BaseException | None = None) -> None:
        detail = getattr(cause, "message", None) or (str(cause) if cause else "")
        message = f"Invalid configuration found in {cwd}/agents.json"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, cause)
        self.cwd = cwd


class TargetIsDirectoryError(RegistryError):
    """A materialization target path exists as a directory."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Cannot write to {path}: path exists and is a directory. "
            "Please provide a file path instead."
        )
        self.path = path
