from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from tests.support.registry import build_registry
from tests.support.store import InMemoryStore

if TYPE_CHECKING:
    from collections.abc import Iterator

    from masterdata.registry import Registry

ENV_VARS = (
    "DOMAIN",
    "TOKEN",
    "CONNECT_TIMEOUT",
    "STORE_MAX_CALLS_PER_SECOND",
    "SERVICE_NAME",
    "PRODUCTION",
    "QUERY_TIMEOUT",
    "CONCURRENCY",
    "POLL_INTERVAL",
    "RESUME",
    "EXPAND_INDEX_LAYOUT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def registry(store: InMemoryStore) -> Registry:
    return build_registry(store)


@pytest.fixture
def caplog_info(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(logging.INFO, logger="masterdata")
    return caplog
