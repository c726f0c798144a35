"""Entity cache kept in lock-step with the search index."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, KeysView, Mapping

    from .index import SearchIndex
    from .model import Entity

log = getLogger(__name__)


class EntityCache:
    """Mapping of list key to entity; the source of truth for what is indexed.

    Every mutation rebuilds the search index before returning, so a query issued
    right after a mutation sees the new state.
    """

    def __init__(self, index: SearchIndex) -> None:
        self.index = index
        self._entries: dict[str, Entity] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def keys(self) -> KeysView[str]:
        return self._entries.keys()

    def get(self, key: str) -> Entity | None:
        return self._entries.get(key)

    def snapshot(self) -> dict[str, Entity]:
        return dict(self._entries)

    def upsert(self, key: str, entity: Entity) -> None:
        """Insert or overwrite ``key``; re-applying identical data is a no-op in effect."""
        self._entries[key] = entity
        self._commit()

    def remove(self, key: str) -> Entity | None:
        removed = self._entries.pop(key, None)
        if removed is None:
            log.debug("Cache has no entry %s to remove", key)
        self._commit()
        return removed

    def replace_all(self, entries: Mapping[str, Entity | None]) -> None:
        self._entries = {key: entity for key, entity in entries.items() if entity is not None}
        self._commit()

    def clear(self) -> None:
        self._entries = {}
        self._commit()

    def _commit(self) -> None:
        self.index.set_collection(self._entries)
