"""Flattened per-key mirror of the canonical list for link-unaware readers."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from .errors import RemoteOperationError, StoreNotFoundError
from .model import Entity, is_metadata_key
from .tree import join_path

if TYPE_CHECKING:
    from .cache import EntityCache
    from .ports import RemoteStore
    from .tree import Tree

log = getLogger(__name__)

EXPAND_INDEX_KEY: Final = "expand-index"


class ExpandIndexLayout(StrEnum):
    META = "meta"
    SIBLING = "sibling"


def expand_index_path(path: str, layout: ExpandIndexLayout = ExpandIndexLayout.META) -> str:
    if layout is ExpandIndexLayout.SIBLING:
        return join_path(path, EXPAND_INDEX_KEY)
    return join_path(path, "_meta/indexings", EXPAND_INDEX_KEY)


class ExpandIndexSynchronizer:
    """Keeps ``<list>/.../expand-index`` convergent with the canonical list."""

    def __init__(
        self,
        *,
        store: RemoteStore,
        cache: EntityCache,
        path: str,
        tree: Tree,
        layout: ExpandIndexLayout = ExpandIndexLayout.META,
    ) -> None:
        self.store = store
        self.cache = cache
        self.list_path = join_path(path)
        self.tree = tree
        self.layout = layout
        self.path = expand_index_path(path, layout)

    async def initialize(self, *, resume: bool) -> int:
        """Prepare the mirror and seed the cache; returns the number of seeded entries.

        Resume mode loads the existing mirror. Otherwise the mirror is wiped and
        recreated and the cache starts empty, to be refilled by a full replay of
        the canonical list.
        """

        await self.store.ensure(self.list_path, {}, tree=self.tree)
        if not resume:
            await self.reset()
            return 0
        await self.store.ensure(self.path, {}, tree=self.tree)
        return await self.load()

    async def load(self) -> int:
        data = await self.store.get(self.path)
        if not isinstance(data, Mapping):
            raise RemoteOperationError(
                f"Expand index at {self.path} is not a mapping",
                operation="get",
                path=self.path,
            )
        document = cast(Mapping[str, object], data)
        entries: dict[str, Entity | None] = {}
        for key, value in document.items():
            if is_metadata_key(key) or not isinstance(value, Mapping):
                continue
            entries[key] = Entity.from_document(cast(Mapping[str, object], value))
        self.cache.replace_all(entries)
        log.info("Seeded %s entries from the expand index at %s", len(entries), self.path)
        return len(entries)

    async def reset(self) -> None:
        try:
            await self.store.delete(self.path)
        except StoreNotFoundError:
            log.debug("Expand index at %s did not exist before reset", self.path)
        await self.store.ensure(self.path, {}, tree=self.tree)
        self.cache.clear()
        log.info("Reset the expand index at %s", self.path)

    async def upsert(self, key: str, entity: Entity) -> None:
        await self.store.put(self.path, {key: entity.to_document()}, tree=self.tree)
        log.debug("Mirrored %s into the expand index", key)

    async def remove(self, key: str) -> None:
        try:
            await self.store.delete(join_path(self.path, key))
        except StoreNotFoundError:
            log.debug("Expand index entry %s was already absent", key)
