"""
Logging utilities for the registry client.

All modules log through children of the ``agent_registry`` logger.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

# Package root logger
_root_logger = logging.getLogger("agent_registry")

# Level to restore after disable()
_saved_level: int | None = None


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> None:
    """
    Configure logging for the registry client.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL) or int
        format: Custom log format string
        stream: Output stream (defaults to stderr)
        file: Optional file path to write logs

    Example:
        from agent_registry.logging import setup_logging

        setup_logging("DEBUG")
        setup_logging("INFO", file="registry.log")
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    if format is None:
        format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    formatter = logging.Formatter(format)

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level)
    _root_logger.addHandler(stream_handler)

    if file:
        file_handler = logging.FileHandler(file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        _root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a submodule.

    Args:
        name: Submodule name (e.g., "registry.resolver", "sync.cache")

    Returns:
        Logger instance
    """
    if name.startswith("agent_registry."):
        return logging.getLogger(name)
    return logging.getLogger(f"agent_registry.{name}")


def disable() -> None:
    """Disable all logging for the registry client."""
    global _saved_level
    if _saved_level is None:
        _saved_level = _root_logger.level
    _root_logger.setLevel(logging.CRITICAL + 1)


def enable() -> None:
    """Re-enable logging for the registry client."""
    global _saved_level
    if _saved_level is not None:
        _root_logger.setLevel(_saved_level)
        _saved_level = None
