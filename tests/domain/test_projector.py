from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from masterdata.adapters.oada import PollingListWatch
from masterdata.domain.expand_index import expand_index_path
from masterdata.domain.model import Entity, key_for_masterid
from masterdata.domain.ports import ChangeEvent, ChangeType
from masterdata.domain.projector import ProjectorState

from tests.support.feed import ScriptedFeed, added, changed, removed
from tests.support.registry import JANE, JOHN, LIST_PATH, add_entity, build_registry

if TYPE_CHECKING:
    import pytest

    from masterdata.registry import Registry

    from tests.support.store import InMemoryStore

MIRROR_PATH = expand_index_path(LIST_PATH)


def test_events_are_applied_to_cache_and_mirror(store: InMemoryStore) -> None:
    feed = ScriptedFeed(
        [
            added("a1", {**JANE, "masterid": "resources/a1"}),
            added("b2", {**JOHN, "masterid": "resources/b2"}),
            changed("a1", {**JANE, "masterid": "resources/a1", "phone": "555"}),
            removed("b2"),
        ]
    )
    registry = build_registry(store, feed=feed)

    asyncio.run(registry.projector.run())

    assert sorted(registry.cache) == ["a1"]
    jane = registry.cache.get("a1")
    assert jane is not None
    assert jane.attributes["phone"] == "555"
    mirror = store.document(MIRROR_PATH)
    assert "b2" not in mirror
    assert mirror["a1"]["phone"] == "555"  # type: ignore[index]
    assert registry.engine.query({"externalIds": ["sap:123456789"]}).matches == []
    assert registry.projector.state is ProjectorState.STOPPED


def test_start_seeds_from_the_mirror(store: InMemoryStore) -> None:
    first = build_registry(store)
    jane = Entity.from_document({**JANE, "masterid": "resources/a1"})
    asyncio.run(first.expand_index.upsert("a1", jane))

    feed = ScriptedFeed()
    registry = build_registry(store, feed=feed)
    assert len(registry.cache) == 1
    registry.cache.clear()

    seeded = asyncio.run(registry.initialize())

    assert seeded == 1
    assert registry.projector.state is ProjectorState.LIVE
    assert registry.engine.query({"externalIds": ["sap:987654321"]}).exact is True

    asyncio.run(registry.run())

    assert feed.subscriptions == [(LIST_PATH, True, "$.*")]
    assert feed.known == [("a1",)]
    assert registry.projector.state is ProjectorState.STOPPED


def test_full_replay_starts_from_an_empty_mirror(store: InMemoryStore) -> None:
    first = build_registry(store)
    asyncio.run(first.expand_index.upsert("stale", Entity(masterid="resources/stale")))

    feed = ScriptedFeed([added("a1", {**JANE, "masterid": "resources/a1"})])
    registry = build_registry(store, feed=feed, resume=False)

    asyncio.run(registry.run())

    assert sorted(registry.cache) == ["a1"]
    assert "stale" not in store.document(MIRROR_PATH)
    assert feed.subscriptions == [(LIST_PATH, False, "$.*")]


def test_bookkeeping_keys_are_ignored(store: InMemoryStore) -> None:
    feed = ScriptedFeed(
        [
            added("expand-index", {"a1": {"name": "nested"}}),
            added("_meta", {"_rev": 3}),
            removed("_rev"),
        ]
    )
    registry = build_registry(store, feed=feed)
    store.calls.clear()

    asyncio.run(registry.projector.run())

    assert len(registry.cache) == 0
    assert store.writes() == []


def test_a_bad_event_does_not_stop_the_projection(
    store: InMemoryStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    feed = ScriptedFeed(
        [
            added("bad", {"name": "Broken", "externalIds": {"sap": "1"}}),
            changed("empty", {}),
            added("a1", {**JANE, "masterid": "resources/a1"}),
        ]
    )
    registry = build_registry(store, feed=feed)

    with caplog.at_level(logging.ERROR):
        asyncio.run(registry.projector.run())

    assert "Failed to apply ItemAdded for bad" in caplog.text
    assert sorted(registry.cache) == ["a1", "empty"]


def test_event_without_document_is_skipped(
    store: InMemoryStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    registry = build_registry(store)
    event = ChangeEvent(type=ChangeType.ITEM_CHANGED, pointer="/a1")

    with caplog.at_level(logging.WARNING):
        asyncio.run(registry.projector.handle(event))

    assert "carried no document" in caplog.text
    assert len(registry.cache) == 0


def test_remote_failure_on_remove_is_logged(
    store: InMemoryStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    feed = ScriptedFeed(
        [
            added("a1", {**JANE, "masterid": "resources/a1"}),
            removed("a1"),
            added("b2", {**JOHN, "masterid": "resources/b2"}),
        ]
    )
    registry = build_registry(store, feed=feed)
    store.fail("delete", f"{MIRROR_PATH}/a1")

    with caplog.at_level(logging.ERROR):
        asyncio.run(registry.projector.run())

    assert "Failed to apply ItemRemoved for a1" in caplog.text
    assert sorted(registry.cache) == ["b2"]


def _run_briefly(registry: Registry, seconds: float = 0.2) -> None:
    async def scenario() -> None:
        await registry.initialize()
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(registry.run(), timeout=seconds)

    asyncio.run(scenario())


def test_resume_catches_up_on_changes_made_while_stopped(store: InMemoryStore) -> None:
    first = build_registry(store)
    asyncio.run(first.expand_index.upsert("stale", Entity(masterid="resources/stale")))
    store.seed(f"{LIST_PATH}/offline", {"name": "Offline Partner", "externalIds": ["sap:1"]})

    registry = build_registry(store, feed=PollingListWatch(store, poll_interval=0))
    _run_briefly(registry)

    assert sorted(registry.cache) == ["offline"]
    mirror = store.document(MIRROR_PATH)
    assert "offline" in mirror
    assert "stale" not in mirror
    result = registry.engine.query({"externalIds": ["sap:1"]})
    assert result.exact is True
    assert [match.key for match in result.matches] == ["offline"]


def test_resume_leaves_an_up_to_date_mirror_untouched(store: InMemoryStore) -> None:
    seeding = build_registry(store)
    john_id = add_entity(store, seeding, JOHN)

    registry = build_registry(store, feed=PollingListWatch(store, poll_interval=0))
    store.calls.clear()
    _run_briefly(registry)

    assert sorted(registry.cache) == [key_for_masterid(john_id)]
    assert store.writes() == []


def test_echo_of_an_optimistic_update_changes_nothing(store: InMemoryStore) -> None:
    registry = build_registry(store)
    john_id = add_entity(store, registry, JOHN)
    key = key_for_masterid(john_id)
    before = registry.cache.get(key)

    echoed = store.document(f"{LIST_PATH}/{key}")
    asyncio.run(registry.projector.handle(added(key, echoed)))
    asyncio.run(registry.projector.handle(changed(key, echoed)))

    assert registry.cache.get(key) == before
    assert store.writes() == []
    result = registry.engine.query({"externalIds": ["sap:123456789"]})
    assert result.exact is True
    assert len(result.matches) == 1


def test_echo_after_update_keeps_the_mirror_current(store: InMemoryStore) -> None:
    registry = build_registry(store)
    john_id = add_entity(store, registry, JOHN)
    key = key_for_masterid(john_id)

    updated = asyncio.run(registry.engine.update({"masterid": john_id, "phone": "555"}))
    echoed = store.document(f"{LIST_PATH}/{key}")
    store.calls.clear()
    asyncio.run(registry.projector.handle(changed(key, echoed)))

    assert registry.cache.get(key) == updated
    assert store.writes() == []
    assert store.document(MIRROR_PATH)[key]["phone"] == "555"  # type: ignore[index]
