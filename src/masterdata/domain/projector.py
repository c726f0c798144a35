"""Applies change events from the canonical list to the cache and the mirror."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, cast

from .errors import MasterDataError
from .expand_index import EXPAND_INDEX_KEY
from .model import Entity, is_metadata_key
from .ports import ChangeType
from .tree import join_path

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .cache import EntityCache
    from .expand_index import ExpandIndexSynchronizer
    from .ports import ChangeEvent, ChangeFeed

log = getLogger(__name__)


class ProjectorState(StrEnum):
    UNINITIALIZED = "uninitialized"
    SYNCING = "syncing"
    LIVE = "live"
    STOPPED = "stopped"


class ChangeProjector:
    """Keeps the cache (and therefore the index) and the expand index in step with the list.

    ``start`` seeds state and opens the subscription; ``run`` then drains events
    until the feed ends or the task is cancelled.
    """

    def __init__(
        self,
        *,
        feed: ChangeFeed,
        cache: EntityCache,
        expand_index: ExpandIndexSynchronizer,
        path: str,
        resume: bool = True,
    ) -> None:
        self.feed = feed
        self.cache = cache
        self.expand_index = expand_index
        self.path = join_path(path)
        self.resume = resume
        self.state = ProjectorState.UNINITIALIZED
        self._events: AsyncIterator[ChangeEvent] | None = None

    async def start(self) -> int:
        """Seed the cache and subscribe; returns the number of entries seeded."""

        seeded, _ = await self._open()
        return seeded

    async def _open(self) -> tuple[int, AsyncIterator[ChangeEvent]]:
        self.state = ProjectorState.SYNCING
        seeded = await self.expand_index.initialize(resume=self.resume)
        # Resuming catches up on list changes made since the mirror was last written.
        events = self.feed.subscribe(
            self.path,
            resume=self.resume,
            items_path="$.*",
            known=tuple(self.cache.keys()) if self.resume else (),
        )
        self._events = events
        self.state = ProjectorState.LIVE
        log.info(
            "Watching %s (%s, %s entries seeded)",
            self.path,
            "resume" if self.resume else "full replay",
            seeded,
        )
        return seeded, events

    async def run(self) -> None:
        events = self._events
        if events is None:
            _, events = await self._open()
        try:
            async for event in events:
                await self.handle(event)
        finally:
            self.state = ProjectorState.STOPPED
            log.info("Stopped watching %s", self.path)

    async def handle(self, event: ChangeEvent) -> None:
        key = event.key
        if not key or key == EXPAND_INDEX_KEY or is_metadata_key(key):
            return
        try:
            if event.type is ChangeType.ITEM_REMOVED:
                self.cache.remove(key)
                await self.expand_index.remove(key)
                log.info("Removed %s", key)
                return
            if not isinstance(event.item, Mapping):
                log.warning("%s event for %s carried no document; skipping", event.type, key)
                return
            entity = Entity.from_document(cast(Mapping[str, object], event.item))
            if self.cache.get(key) == entity:
                log.debug("%s for %s matches the cached entry", event.type, key)
                return
            self.cache.upsert(key, entity)
            await self.expand_index.upsert(key, entity)
            log.debug("Applied %s for %s", event.type, key)
        except (MasterDataError, TypeError, ValueError):
            log.exception("Failed to apply %s for %s", event.type, key)
