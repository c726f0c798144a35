"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Read every name in ``names``; blank values count as unset.

    All absent names are reported together in one ``MissingConfigurationError``.
    """

    values = {name: os.getenv(name, "") for name in names}
    absent = sorted(name for name, value in values.items() if not value.strip())
    if absent:
        raise MissingConfigurationError(absent)
    return values


def _optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def env_str(name: str, default: str) -> str:
    value = _optional(name)
    return default if value is None else value


def env_bool(name: str, default: bool) -> bool:
    value = _optional(name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Expected a boolean for {name}, got {value!r}")


def env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    value = _optional(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ConfigurationError(f"Expected an integer for {name}, got {value!r}") from exc
    if minimum is not None and parsed < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed


def env_float(name: str, default: float, *, minimum: float | None = None) -> float:
    parsed = env_optional_float(name, minimum=minimum)
    return default if parsed is None else parsed


def env_optional_float(name: str, *, minimum: float | None = None) -> float | None:
    value = _optional(name)
    if value is None:
        return None
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ConfigurationError(f"Expected a number for {name}, got {value!r}") from exc
    if minimum is not None and parsed < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed
