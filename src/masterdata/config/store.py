"""Remote store (OADA API) configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_optional_float, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_CONNECT_TIMEOUT_SECONDS = 20.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class StoreConfig:
    """Holds connection settings for the remote graph store."""

    domain: str
    token: str
    resilience: ResilienceConfig

    @property
    def base_url(self) -> str:
        return normalize_domain(self.domain)


def normalize_domain(domain: str) -> str:
    """Return ``domain`` as a base URL, defaulting to https."""

    stripped = domain.strip().rstrip("/")
    if stripped.startswith(("http://", "https://")):
        return stripped
    return f"https://{stripped}"


def get_store_config(*, resilience: ResilienceConfig | None = None) -> StoreConfig:
    values = require_env_vars(("DOMAIN", "TOKEN"))
    domain = values["DOMAIN"]
    token = values["TOKEN"]

    connect_timeout = env_float(
        "CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT_SECONDS, minimum=0.0
    )
    max_calls = env_optional_float("STORE_MAX_CALLS_PER_SECOND", minimum=1.0)
    ratelimit = RateLimit(max_calls=int(max_calls), per_seconds=1.0) if max_calls else None

    return StoreConfig(
        domain=domain,
        token=token,
        resilience=resilience
        or ResilienceConfig(
            name="oada",
            base_url=normalize_domain(domain),
            timeout_seconds=DEFAULT_REQUEST_TIMEOUT_SECONDS,
            connect_timeout_seconds=connect_timeout,
            retry=RetryPolicy(total=4),
            ratelimit=ratelimit,
            default_headers={"Authorization": f"Bearer {token}"},
        ),
    )
