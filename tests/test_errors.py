"""Tests for error types."""

from __future__ import annotations

import jsonschema
import pytest

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


@pytest.mark.parametrize(
    "error",
    [
        RegistryInvalidNamespaceError("@bad"),
        RegistryNotFoundError("read"),
        RegistryNotConfiguredError("@acme"),
        RegistryParseError("read"),
        RegistryMissingEnvironmentVariablesError("@acme", ["TOKEN"]),
        ConfigParseError("/tmp/project"),
        TargetIsDirectoryError("/tmp/project/tools/read.ts"),
    ],
)
def test_all_are_registry_errors(error: RegistryError) -> None:
    """Should derive every error from RegistryError with a one-line message."""
    assert isinstance(error, RegistryError)
    assert str(error) == error.message
    assert "\n" not in error.message


def test_parse_error_carries_validator_message() -> None:
    """Should include the validator message and keep the cause."""
    with pytest.raises(jsonschema.ValidationError) as exc_info:
        jsonschema.validate({}, {"type": "object", "required": ["name"]})

    error = RegistryParseError("read", exc_info.value)

    assert error.message == "Failed to parse registry item: \"read\". 'name' is a required property"
    assert error.cause is exc_info.value


def test_not_configured_names_registry() -> None:
    """Should name the unconfigured registry."""
    error = RegistryNotConfiguredError("@acme")
    assert '"@acme"' in error.message
    assert error.registry == "@acme"


def test_invalid_namespace_message() -> None:
    """Should explain that names must start with @."""
    assert "must start with @" in RegistryInvalidNamespaceError("acme").message


def test_config_parse_error_includes_cause() -> None:
    """Should append the cause to the config error message."""
    error = ConfigParseError("/p", ValueError("bad"))
    assert error.message == "Invalid configuration found in /p/agents.json: bad"


def test_config_parse_error_uses_validator_message() -> None:
    """Should keep the config error on one line for schema failures."""
    with pytest.raises(jsonschema.ValidationError) as exc_info:
        jsonschema.validate({"aliases": {}}, {"type": "object", "required": ["registries"]})

    error = ConfigParseError("/p", exc_info.value)

    assert error.message == "Invalid configuration found in /p/agents.json: 'registries' is a required property"
