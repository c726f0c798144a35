"""Builders for a registry wired to in-memory collaborators."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from masterdata.domain.expand_index import ExpandIndexLayout
from masterdata.registry import Registry
from masterdata.trading_partners import SEARCH_KEYS, TEST_LIST_PATH, tree_for

from tests.support.feed import ScriptedFeed

if TYPE_CHECKING:
    from collections.abc import Mapping

    from masterdata.domain.ports import ChangeFeed, EntityHooks

    from tests.support.store import InMemoryStore

LIST_PATH = TEST_LIST_PATH

JANE = {
    "name": "Jane Smith",
    "phone": "0987654321",
    "email": "jane.smith@example.com",
    "address": "456 Second St.",
    "city": "Somewhere",
    "state": "USA",
    "sapid": "987654321",
    "externalIds": ["sap:987654321"],
}
JOHN = {
    "name": "John Doe",
    "phone": "1234567890",
    "email": "john.doe@example.com",
    "address": "123 Main St.",
    "city": "Anytown",
    "state": "USA",
    "sapid": "123456789",
    "externalIds": ["sap:123456789"],
}


def build_registry(
    store: InMemoryStore,
    *,
    feed: ChangeFeed | None = None,
    hooks: EntityHooks | None = None,
    layout: ExpandIndexLayout = ExpandIndexLayout.META,
    resume: bool = True,
    fail_on_duplicates: bool = False,
    exact_keys: tuple[str, ...] = (),
) -> Registry:
    registry = Registry(
        name="trading-partners",
        store=store,
        feed=feed or ScriptedFeed(),
        path=LIST_PATH,
        tree=tree_for(LIST_PATH),
        search_keys=SEARCH_KEYS,
        exact_keys=exact_keys,
        hooks=hooks,
        layout=layout,
        resume=resume,
        fail_on_duplicates=fail_on_duplicates,
    )
    asyncio.run(registry.expand_index.initialize(resume=True))
    return registry


def add_entity(store: InMemoryStore, registry: Registry, data: Mapping[str, object]) -> str:
    """Create an entity through the engine and return its masterid."""

    entity = asyncio.run(registry.engine.generate_element(data))
    assert entity.masterid is not None
    store.calls.clear()
    return entity.masterid
