"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_float, env_int, env_optional_float, env_str, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging, level_from_env
from .service import ServiceConfig, get_service_config
from .store import StoreConfig, get_store_config, normalize_domain

__all__ = [
    "ConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "ServiceConfig",
    "StoreConfig",
    "configure_logging",
    "env_bool",
    "env_float",
    "env_int",
    "env_optional_float",
    "env_str",
    "get_service_config",
    "get_store_config",
    "level_from_env",
    "normalize_domain",
    "require_env_vars",
]
