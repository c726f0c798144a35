"""Errors for the environment-driven store and service settings.

The CLI maps both to exit code 2.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """A setting such as ``CONCURRENCY`` or ``EXPAND_INDEX_LAYOUT`` holds an unusable value."""


class MissingConfigurationError(ConfigurationError):
    """Required settings (``DOMAIN``, ``TOKEN``) are unset or blank."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = tuple(names)
        super().__init__(f"Missing configuration for: {', '.join(self.names)}")
