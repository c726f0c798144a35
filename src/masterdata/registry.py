"""Composition root for one entity collection."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, cast

from masterdata.adapters.jobs.handlers import register_handlers
from masterdata.domain.cache import EntityCache
from masterdata.domain.errors import RemoteOperationError, StoreNotFoundError
from masterdata.domain.expand_index import (
    EXPAND_INDEX_KEY,
    ExpandIndexLayout,
    ExpandIndexSynchronizer,
)
from masterdata.domain.index import DEFAULT_MIN_SCORE, SearchIndex
from masterdata.domain.model import is_metadata_key
from masterdata.domain.ports import ChangeEvent, ChangeType
from masterdata.domain.projector import ChangeProjector
from masterdata.domain.resolution import ResolutionEngine
from masterdata.domain.tree import join_path

if TYPE_CHECKING:
    from collections.abc import Sequence

    from masterdata.domain.index import SearchKey
    from masterdata.domain.ports import ChangeFeed, EntityHooks, JobService, RemoteStore
    from masterdata.domain.tree import Tree

log = getLogger(__name__)


class Registry:
    """Owns the index, cache, mirror, projector and engine of one collection.

    Registries share no state, so several collections can be served side by side.
    """

    def __init__(
        self,
        *,
        name: str,
        store: RemoteStore,
        feed: ChangeFeed,
        path: str,
        tree: Tree,
        search_keys: Sequence[str | SearchKey] = (),
        exact_keys: Sequence[str] = (),
        hooks: EntityHooks | None = None,
        layout: ExpandIndexLayout = ExpandIndexLayout.META,
        resume: bool = True,
        min_score: float = DEFAULT_MIN_SCORE,
        fail_on_duplicates: bool = False,
    ) -> None:
        self.name = name
        self.store = store
        self.path = join_path(path)
        self.index = SearchIndex(search_keys, exact_keys, min_score=min_score)
        self.cache = EntityCache(self.index)
        self.expand_index = ExpandIndexSynchronizer(
            store=store,
            cache=self.cache,
            path=path,
            tree=tree,
            layout=layout,
        )
        self.projector = ChangeProjector(
            feed=feed,
            cache=self.cache,
            expand_index=self.expand_index,
            path=path,
            resume=resume,
        )
        self.engine = ResolutionEngine(
            store=store,
            cache=self.cache,
            path=path,
            tree=tree,
            expand_index=self.expand_index,
            hooks=hooks,
            fail_on_duplicates=fail_on_duplicates,
        )

    async def initialize(self) -> int:
        """Seed the cache and open the change subscription; safe to call again to resync."""

        seeded = await self.projector.start()
        log.info("Registry %s initialized with %s entries", self.name, seeded)
        return seeded

    async def resync(self) -> int:
        """Wipe the mirror and the cache, then replay every item of the canonical list."""

        await self.expand_index.initialize(resume=False)
        listing = await self.store.get(self.path)
        if not isinstance(listing, Mapping):
            raise RemoteOperationError(
                f"List at {self.path} is not a mapping", operation="get", path=self.path
            )
        replayed = 0
        for key in cast(Mapping[str, object], listing):
            if key == EXPAND_INDEX_KEY or is_metadata_key(key):
                continue
            try:
                item = await self.store.get(join_path(self.path, key))
            except StoreNotFoundError:
                log.warning("%s/%s vanished during resync", self.path, key)
                continue
            if isinstance(item, Mapping):
                event = ChangeEvent(
                    type=ChangeType.ITEM_ADDED,
                    pointer=f"/{key}",
                    item=cast(Mapping[str, object], item),
                )
                await self.projector.handle(event)
                replayed += 1
        log.info("Resynced %s entries of %s", replayed, self.path)
        return replayed

    def register(self, service: JobService, timeout: float) -> list[str]:
        return register_handlers(service, self.engine, name=self.name, timeout=timeout)

    async def run(self) -> None:
        await self.projector.run()
