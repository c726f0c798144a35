"""Async REST client for an OADA-style versioned document store."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx

from masterdata.adapters.http_resilience import ResilientClient
from masterdata.domain.errors import RemoteOperationError, StoreNotFoundError
from masterdata.domain.ports import StoreReceipt
from masterdata.domain.tree import content_type_at, join_path, resource_boundaries

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from masterdata.config.http_resilience import ResilienceConfig
    from masterdata.config.store import StoreConfig
    from masterdata.domain.tree import Tree

log = getLogger(__name__)

JSON_CONTENT_TYPE: Final = "application/json"
RESOURCES_PATH: Final = "/resources"


def receipt_from_response(response: httpx.Response) -> StoreReceipt:
    location = response.headers.get("location") or response.headers.get("content-location")
    raw_rev = response.headers.get("x-oada-rev")
    rev = int(raw_rev) if raw_rev and raw_rev.isdigit() else None
    return StoreReceipt(location=location, rev=rev)


class OadaStore:
    """``RemoteStore`` implementation over a single long-lived ``ResilientClient``."""

    def __init__(
        self,
        *,
        config: StoreConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None
        self._known_paths: set[str] = set()

    async def __aenter__(self) -> OadaStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> ResilientClient:
        if self._client is None:
            self._client = self._client_factory(self._resilience)
        return self._client

    # -- RemoteStore ---------------------------------------------------------

    async def get(self, path: str) -> object:
        response = await self._request("GET", path, operation="get")
        return response.json()

    async def exists(self, path: str) -> bool:
        try:
            await self._request("HEAD", path, operation="head")
        except StoreNotFoundError:
            return False
        return True

    async def put(
        self,
        path: str,
        data: Mapping[str, object],
        *,
        tree: Tree | None = None,
    ) -> StoreReceipt:
        path = join_path(path)
        content_type = JSON_CONTENT_TYPE
        if tree is not None:
            await self._create_missing_resources(path, tree)
            content_type = content_type_at(tree, path) or JSON_CONTENT_TYPE
        response = await self._request(
            "PUT",
            path,
            operation="put",
            json=dict(data),
            headers={"Content-Type": content_type},
        )
        self._known_paths.add(path)
        return receipt_from_response(response)

    async def post(
        self,
        path: str,
        data: Mapping[str, object],
        *,
        content_type: str,
    ) -> StoreReceipt:
        response = await self._request(
            "POST",
            join_path(path),
            operation="post",
            json=dict(data),
            headers={"Content-Type": content_type},
        )
        return receipt_from_response(response)

    async def delete(self, path: str) -> None:
        path = join_path(path)
        await self._request("DELETE", path, operation="delete")
        self._known_paths = {
            known for known in self._known_paths if known != path and not known.startswith(path + "/")
        }

    async def ensure(
        self,
        path: str,
        data: Mapping[str, object],
        *,
        tree: Tree | None = None,
    ) -> StoreReceipt | None:
        """Create ``path`` with ``data`` unless it already exists."""

        path = join_path(path)
        if path in self._known_paths or await self.exists(path):
            self._known_paths.add(path)
            return None
        log.info("Creating %s", path)
        return await self.put(path, data, tree=tree)

    # -- helpers -------------------------------------------------------------

    async def _create_missing_resources(self, path: str, tree: Tree) -> None:
        # The top-level node (``/bookmarks``) always exists for the token's user.
        for prefix, content_type in resource_boundaries(tree, path)[1:]:
            if prefix in self._known_paths:
                continue
            if not await self.exists(prefix):
                receipt = await self.post(RESOURCES_PATH, {}, content_type=content_type)
                if receipt.resource_id is None:
                    raise RemoteOperationError(
                        "Store did not report a location for the new resource",
                        operation="post",
                        path=RESOURCES_PATH,
                    )
                await self._request(
                    "PUT",
                    prefix,
                    operation="put",
                    json={"_id": receipt.resource_id, "_rev": 0},
                    headers={"Content-Type": content_type},
                )
                log.info("Created resource %s at %s", receipt.resource_id, prefix)
            self._known_paths.add(prefix)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: object | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        client = self._get_client()
        try:
            response = await client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteOperationError(
                f"{method} {path} failed: {exc}",
                operation=operation,
                path=path,
            ) from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise StoreNotFoundError(path, operation=operation)
        if response.is_error:
            raise RemoteOperationError(
                f"{method} {path} returned HTTP {response.status_code}",
                operation=operation,
                path=path,
                status_code=response.status_code,
            )
        return response
