"""Polling change feed over an OADA list."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from masterdata.domain.errors import RemoteOperationError, StoreNotFoundError
from masterdata.domain.model import is_metadata_key
from masterdata.domain.ports import ChangeEvent, ChangeType
from masterdata.domain.tree import join_path

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Collection

    from masterdata.domain.ports import RemoteStore

log = getLogger(__name__)

ALL_ITEMS: Final = "$.*"

type Snapshot = dict[str, object]

# Placeholder for entries known to the subscriber whose link is unknown; never equal to a link.
_UNSEEN: Final = object()


def diff_snapshots(
    previous: Mapping[str, object],
    current: Mapping[str, object],
) -> list[tuple[ChangeType, str]]:
    """Changes turning ``previous`` into ``current``, in ``current`` order then removals.

    List entries are links whose ``_rev`` moves whenever the linked resource
    changes, so comparing entries detects both link and content changes.
    """

    changes: list[tuple[ChangeType, str]] = []
    for key, value in current.items():
        if key not in previous:
            changes.append((ChangeType.ITEM_ADDED, key))
        elif previous[key] != value:
            changes.append((ChangeType.ITEM_CHANGED, key))
    changes.extend((ChangeType.ITEM_REMOVED, key) for key in previous if key not in current)
    return changes


class PollingListWatch:
    """``ChangeFeed`` that polls the list document and diffs successive snapshots."""

    def __init__(self, store: RemoteStore, *, poll_interval: float = 5.0) -> None:
        self.store = store
        self.poll_interval = poll_interval

    async def snapshot(self, path: str) -> Snapshot:
        data = await self.store.get(path)
        if not isinstance(data, Mapping):
            raise RemoteOperationError(
                f"List at {path} is not a mapping", operation="get", path=path
            )
        document = cast(Mapping[str, object], data)
        return {key: value for key, value in document.items() if not is_metadata_key(key)}

    async def subscribe(
        self,
        path: str,
        *,
        resume: bool,
        items_path: str = ALL_ITEMS,
        known: Collection[str] = (),
    ) -> AsyncIterator[ChangeEvent]:
        if items_path != ALL_ITEMS:
            raise ValueError(f"Only the {ALL_ITEMS!r} items path is supported, got {items_path!r}")

        path = join_path(path)
        previous: Snapshot = dict.fromkeys(known, _UNSEEN) if resume else {}
        while True:
            try:
                current = await self.snapshot(path)
            except RemoteOperationError:
                log.exception("Polling %s failed; retrying in %ss", path, self.poll_interval)
                await asyncio.sleep(self.poll_interval)
                continue

            for change_type, key in diff_snapshots(previous, current):
                if change_type is ChangeType.ITEM_REMOVED:
                    yield ChangeEvent(type=change_type, pointer=f"/{key}")
                    continue
                try:
                    item = await self.store.get(join_path(path, key))
                except StoreNotFoundError:
                    log.debug("%s/%s vanished before it could be read", path, key)
                    current.pop(key, None)
                    if key in previous:
                        yield ChangeEvent(type=ChangeType.ITEM_REMOVED, pointer=f"/{key}")
                    continue
                if isinstance(item, Mapping):
                    yield ChangeEvent(
                        type=change_type,
                        pointer=f"/{key}",
                        item=cast(Mapping[str, object], item),
                    )
            previous = current
            await asyncio.sleep(self.poll_interval)
