from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

import httpx
import pytest

from masterdata.adapters.http_resilience import ResilientClient
from masterdata.adapters.oada import OadaStore, receipt_from_response
from masterdata.config.http_resilience import ResilienceConfig, RetryPolicy
from masterdata.config.store import StoreConfig
from masterdata.domain.errors import RemoteOperationError, StoreNotFoundError
from masterdata.trading_partners import TEST_LIST_PATH, tree_for
from masterdata.trading_partners.tree import TRADING_PARTNERS_TYPE

if TYPE_CHECKING:
    from collections.abc import Callable


def _store(handler: Callable[[httpx.Request], httpx.Response]) -> OadaStore:
    resilience = ResilienceConfig(
        name="oada-test",
        base_url="https://oada.test",
        retry=RetryPolicy(total=0),
        default_headers={"Authorization": "Bearer secret"},
    )
    config = StoreConfig(domain="oada.test", token="secret", resilience=resilience)
    return OadaStore(
        config=config,
        client_factory=lambda cfg: ResilientClient(cfg, transport=httpx.MockTransport(handler)),
    )


def test_get_returns_the_json_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"name": "Jane Smith"})

    async def scenario() -> object:
        async with _store(handler) as store:
            return await store.get("resources/abc")

    assert asyncio.run(scenario()) == {"name": "Jane Smith"}
    assert str(seen[0].url) == "https://oada.test/resources/abc"
    assert seen[0].headers["Authorization"] == "Bearer secret"


def test_not_found_is_reported_distinctly() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async def scenario() -> bool:
        async with _store(handler) as store:
            with pytest.raises(StoreNotFoundError) as excinfo:
                await store.get("/bookmarks/missing")
            assert excinfo.value.path == "/bookmarks/missing"
            return await store.exists("/bookmarks/missing")

    assert asyncio.run(scenario()) is False


def test_http_errors_carry_the_status_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": "forbidden"})

    async def scenario() -> None:
        async with _store(handler) as store:
            await store.put("/resources/abc", {"name": "x"})

    with pytest.raises(RemoteOperationError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.status_code == 403
    assert excinfo.value.operation == "put"
    assert not isinstance(excinfo.value, StoreNotFoundError)


def test_transport_errors_become_remote_operation_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario() -> None:
        async with _store(handler) as store:
            await store.get("/bookmarks")

    with pytest.raises(RemoteOperationError) as excinfo:
        asyncio.run(scenario())

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_post_reports_the_new_location() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Content-Type"] == "application/vnd.test+json"
        return httpx.Response(201, headers={"Location": "/resources/new1", "X-OADA-Rev": "1"})

    async def scenario() -> tuple[str | None, int | None]:
        async with _store(handler) as store:
            receipt = await store.post(
                "/resources", {"name": "x"}, content_type="application/vnd.test+json"
            )
            return receipt.resource_id, receipt.rev

    assert asyncio.run(scenario()) == ("resources/new1", 1)


def test_put_with_tree_creates_missing_resources_once() -> None:
    requests: list[tuple[str, str]] = []
    existing = {"/bookmarks/test"}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        requests.append((request.method, path))
        if request.method == "HEAD":
            return httpx.Response(200 if path in existing else 404)
        if request.method == "POST":
            return httpx.Response(201, headers={"Location": "/resources/list1"})
        if request.method == "PUT":
            existing.add(path)
            return httpx.Response(204, headers={"X-OADA-Rev": "7"})
        return httpx.Response(405)

    tree = tree_for(TEST_LIST_PATH)
    link = {"abc": {"_id": "resources/abc", "_rev": 0}}

    async def scenario() -> None:
        async with _store(handler) as store:
            receipt = await store.put(TEST_LIST_PATH, link, tree=tree)
            assert receipt.rev == 7
            await store.put(TEST_LIST_PATH, {"def": {"_id": "resources/def"}}, tree=tree)

    asyncio.run(scenario())

    assert requests == [
        ("HEAD", "/bookmarks/test"),
        ("HEAD", "/bookmarks/test/trading-partners"),
        ("POST", "/resources"),
        ("PUT", "/bookmarks/test/trading-partners"),
        ("PUT", "/bookmarks/test/trading-partners"),
        ("PUT", "/bookmarks/test/trading-partners"),
    ]


def test_put_uses_the_tree_content_type() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200)

    async def scenario() -> None:
        async with _store(handler) as store:
            await store.put(
                TEST_LIST_PATH, {"abc": {"_id": "resources/abc"}}, tree=tree_for(TEST_LIST_PATH)
            )

    asyncio.run(scenario())

    final = captured[-1]
    assert final.method == "PUT"
    assert final.headers["Content-Type"] == TRADING_PARTNERS_TYPE
    assert json.loads(final.content) == {"abc": {"_id": "resources/abc"}}


def test_ensure_skips_existing_paths() -> None:
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200)

    async def scenario() -> None:
        async with _store(handler) as store:
            assert await store.ensure("/bookmarks/test", {}) is None
            assert await store.ensure("/bookmarks/test", {}) is None

    asyncio.run(scenario())

    assert methods == ["HEAD"]


def test_ensure_creates_missing_paths() -> None:
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        if request.method == "HEAD":
            return httpx.Response(404)
        return httpx.Response(200)

    async def scenario() -> None:
        async with _store(handler) as store:
            assert await store.ensure("/resources/abc", {"a": 1}) is not None

    asyncio.run(scenario())

    assert methods == ["HEAD", "PUT"]


def test_receipt_falls_back_to_content_location() -> None:
    response = httpx.Response(
        200, headers={"Content-Location": "/resources/abc/x", "X-OADA-Rev": "n/a"}
    )

    receipt = receipt_from_response(response)

    assert receipt.location == "/resources/abc/x"
    assert receipt.rev is None
