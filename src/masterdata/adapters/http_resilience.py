"""Long-lived async HTTP client shared by every store call."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import RetryTransport

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from masterdata.config.http_resilience import ResilienceConfig

log = getLogger(__name__)


class ResilientClient:
    """httpx client whose transport replays transient failures.

    Requests are throttled through an ``AsyncLimiter`` when the config
    carries a rate limit. ``transport`` replaces the network layer under
    the retry wrapper, which is how tests plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        self._client = httpx.AsyncClient(
            base_url=config.base_url or "",
            timeout=config.build_timeout(),
            headers=dict(config.default_headers or {}),
            transport=RetryTransport(transport=transport, retry=config.retry.build()),
        )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: object | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        request = self._client.build_request(
            method,
            path,
            json=json,
            headers=dict(headers) if headers else None,
        )
        if self._limiter is None:
            response = await self._client.send(request)
        else:
            async with self._limiter:
                response = await self._client.send(request)
        log.debug("%s %s -> %s (%s)", method, path, response.status_code, self.config.name)
        return response
