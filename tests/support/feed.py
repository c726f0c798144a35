"""Scripted change feed for projector and job runner tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from masterdata.domain.ports import ChangeEvent, ChangeType

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Collection, Iterable, Mapping


def added(key: str, item: Mapping[str, object]) -> ChangeEvent:
    return ChangeEvent(type=ChangeType.ITEM_ADDED, pointer=f"/{key}", item=item)


def changed(key: str, item: Mapping[str, object]) -> ChangeEvent:
    return ChangeEvent(type=ChangeType.ITEM_CHANGED, pointer=f"/{key}", item=item)


def removed(key: str) -> ChangeEvent:
    return ChangeEvent(type=ChangeType.ITEM_REMOVED, pointer=f"/{key}")


class ScriptedFeed:
    """Replays a fixed list of events to every subscriber, then ends."""

    def __init__(self, events: Iterable[ChangeEvent] = ()) -> None:
        self.events = list(events)
        self.subscriptions: list[tuple[str, bool, str]] = []
        self.known: list[tuple[str, ...]] = []

    async def subscribe(
        self,
        path: str,
        *,
        resume: bool,
        items_path: str = "$.*",
        known: Collection[str] = (),
    ) -> AsyncIterator[ChangeEvent]:
        self.subscriptions.append((path, resume, items_path))
        self.known.append(tuple(known))
        for event in self.events:
            yield event
