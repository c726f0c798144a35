"""Shared logging helpers."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Install the service log format on the root logger.

    A second call is a no-op unless ``force=True``, which replaces existing handlers.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )


def level_from_env(name: str = "LOG_LEVEL", default: int = logging.INFO) -> int:
    """Return the logging level named by an environment variable."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    level = logging.getLevelNamesMapping().get(value.strip().upper())
    if level is None:
        raise ConfigurationError(f"Unknown log level in {name}: {value}")
    return level
