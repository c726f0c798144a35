"""Ports for the collaborators the engine depends on but does not own."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Collection, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .model import Entity
    from .tree import Tree


@dataclass(slots=True, frozen=True)
class StoreReceipt:
    """What the store reports back after a write."""

    location: str | None = None
    rev: int | None = None

    @property
    def resource_id(self) -> str | None:
        """The ``resources/<id>`` form of the location, when there is one."""
        if self.location is None:
            return None
        return self.location.lstrip("/")


@runtime_checkable
class RemoteStore(Protocol):
    """Tree-structured, versioned document store (the system of record)."""

    async def get(self, path: str) -> object: ...

    async def put(
        self,
        path: str,
        data: Mapping[str, object],
        *,
        tree: Tree | None = None,
    ) -> StoreReceipt: ...

    async def post(
        self,
        path: str,
        data: Mapping[str, object],
        *,
        content_type: str,
    ) -> StoreReceipt: ...

    async def delete(self, path: str) -> None: ...

    async def ensure(
        self,
        path: str,
        data: Mapping[str, object],
        *,
        tree: Tree | None = None,
    ) -> StoreReceipt | None: ...


class ChangeType(StrEnum):
    ITEM_ADDED = "ItemAdded"
    ITEM_CHANGED = "ItemChanged"
    ITEM_REMOVED = "ItemRemoved"


@dataclass(slots=True, frozen=True)
class ChangeEvent:
    """One add/change/remove notification for an item under a watched list."""

    type: ChangeType
    pointer: str
    item: Mapping[str, object] | None = field(default=None)

    @property
    def key(self) -> str:
        return self.pointer.lstrip("/")


@runtime_checkable
class ChangeFeed(Protocol):
    """Delivers item changes for a watched collection path.

    With ``resume=False`` the current state is replayed first as a burst of
    ``ItemAdded`` events. With ``resume=True`` the feed first catches up from
    ``known``, the keys the subscriber already holds: items still listed are
    re-delivered as ``ItemChanged``, unknown ones as ``ItemAdded`` and known
    keys no longer listed as ``ItemRemoved``.
    """

    def subscribe(
        self,
        path: str,
        *,
        resume: bool,
        items_path: str = "$.*",
        known: Collection[str] = (),
    ) -> AsyncIterator[ChangeEvent]: ...


type JobHandler = Callable[[Mapping[str, object]], Awaitable[object]]


@runtime_checkable
class JobService(Protocol):
    """Delivers named work items to registered handlers."""

    def on(self, name: str, timeout: float, handler: JobHandler) -> None: ...


type GenerateHook = Callable[[RemoteStore, Entity], Awaitable[Mapping[str, object]]]
type MergeHook = Callable[[Entity, Entity], Entity]
type DocumentMergeHook = Callable[
    [RemoteStore, Mapping[str, object], Mapping[str, object]], Awaitable[None]
]
type Validator = Callable[[Entity], None]


@dataclass(slots=True, frozen=True)
class EntityHooks:
    """Per-entity-kind collaborators injected into the resolution engine.

    ``generate`` returns extra attributes for a new record (e.g. provisioned
    sub-resource links); ``merge`` folds ``from`` into ``to``; ``merge_documents``
    moves subordinate trees between the two stored records; ``validate`` raises
    when a generated entity does not satisfy the schema.
    """

    generate: GenerateHook | None = None
    merge: MergeHook | None = None
    merge_documents: DocumentMergeHook | None = None
    validate: Validator | None = None
