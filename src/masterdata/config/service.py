"""Service-level configuration: naming, paths, timeouts."""

from __future__ import annotations

from dataclasses import dataclass

from masterdata.domain.expand_index import ExpandIndexLayout
from masterdata.trading_partners.tree import PRODUCTION_LIST_PATH, TEST_LIST_PATH

from .env import env_bool, env_float, env_int, env_str
from .errors import ConfigurationError

DEFAULT_SERVICE_NAME = "trellis-data-manager"
DEFAULT_QUERY_TIMEOUT_SECONDS = 86_400.0
DEFAULT_POLL_INTERVAL_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    name: str = DEFAULT_SERVICE_NAME
    production: bool = False
    query_timeout_seconds: float = DEFAULT_QUERY_TIMEOUT_SECONDS
    concurrency: int = 1
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    resume: bool = True
    expand_index_layout: ExpandIndexLayout = ExpandIndexLayout.META

    @property
    def service_name(self) -> str:
        """Job-queue name; non-production deployments get a ``test-`` prefix."""
        return self.name if self.production else f"test-{self.name}"

    @property
    def list_path(self) -> str:
        return PRODUCTION_LIST_PATH if self.production else TEST_LIST_PATH


def get_service_config() -> ServiceConfig:
    layout_name = env_str("EXPAND_INDEX_LAYOUT", ExpandIndexLayout.META.value).lower()
    try:
        layout = ExpandIndexLayout(layout_name)
    except ValueError as exc:
        choices = ", ".join(member.value for member in ExpandIndexLayout)
        raise ConfigurationError(
            f"EXPAND_INDEX_LAYOUT must be one of: {choices} (got {layout_name!r})"
        ) from exc

    return ServiceConfig(
        name=env_str("SERVICE_NAME", DEFAULT_SERVICE_NAME),
        production=env_bool("PRODUCTION", False),
        query_timeout_seconds=env_float(
            "QUERY_TIMEOUT", DEFAULT_QUERY_TIMEOUT_SECONDS, minimum=0.0
        ),
        concurrency=env_int("CONCURRENCY", 1, minimum=1),
        poll_interval_seconds=env_float(
            "POLL_INTERVAL", DEFAULT_POLL_INTERVAL_SECONDS, minimum=0.0
        ),
        resume=env_bool("RESUME", True),
        expand_index_layout=layout,
    )
