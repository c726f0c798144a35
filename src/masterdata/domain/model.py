"""Entity and result types shared by the index, cache and resolution engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

MASTERID: Final = "masterid"
EXTERNAL_IDS: Final = "externalIds"
MERGED_IDS: Final = "mergedIds"

IDENTIFIER_FIELDS: Final[tuple[str, ...]] = (MASTERID, EXTERNAL_IDS, MERGED_IDS)

RESOURCE_PREFIX: Final = "resources/"


def is_metadata_key(key: str) -> bool:
    """Store bookkeeping keys (``_id``, ``_rev``, ``_meta``...) are never entity data."""
    return key.startswith("_")


def union_ids(*groups: Iterable[str]) -> tuple[str, ...]:
    """Order-preserving union of identifier groups with duplicates removed."""

    seen: dict[str, None] = {}
    for group in groups:
        for value in group:
            if value:
                seen.setdefault(value, None)
    return tuple(seen)


def key_for_masterid(masterid: str) -> str:
    """Return the canonical-list key for a masterid (``resources/abc`` -> ``abc``)."""

    stripped = masterid.lstrip("/")
    if stripped.startswith(RESOURCE_PREFIX):
        return stripped[len(RESOURCE_PREFIX) :]
    return stripped


def _as_id_tuple(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple, set, frozenset)):
        return union_ids(str(item) for item in value)  # pyright: ignore[reportUnknownArgumentType, reportUnknownVariableType]
    raise TypeError(f"Identifier list must be a string or a sequence, got {type(value).__name__}")


@dataclass(slots=True, frozen=True, kw_only=True)
class Entity:
    """One real-world party: identifiers plus an open map of descriptive fields.

    ``attributes`` is copied on construction and exposed read-only, so entities
    handed out by the cache cannot drift from what the index holds. Use
    ``dataclasses.replace`` to derive a changed entity.
    """

    masterid: str | None = None
    external_ids: tuple[str, ...] = ()
    merged_ids: tuple[str, ...] = ()
    attributes: Mapping[str, object] = field(default_factory=dict[str, object])

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @classmethod
    def from_document(cls, document: Mapping[str, object]) -> Entity:
        attributes: dict[str, object] = {}
        masterid: str | None = None
        external_ids: tuple[str, ...] = ()
        merged_ids: tuple[str, ...] = ()
        for name, value in document.items():
            if is_metadata_key(name):
                continue
            if name == MASTERID:
                masterid = str(value) if value else None
            elif name == EXTERNAL_IDS:
                external_ids = _as_id_tuple(value)
            elif name == MERGED_IDS:
                merged_ids = _as_id_tuple(value)
            else:
                attributes[name] = value
        return cls(
            masterid=masterid,
            external_ids=external_ids,
            merged_ids=merged_ids,
            attributes=attributes,
        )

    @property
    def key(self) -> str | None:
        return key_for_masterid(self.masterid) if self.masterid else None

    def value(self, name: str) -> object | None:
        if name == MASTERID:
            return self.masterid
        if name == EXTERNAL_IDS:
            return list(self.external_ids) or None
        if name == MERGED_IDS:
            return list(self.merged_ids) or None
        return self.attributes.get(name)

    def field_names(self) -> set[str]:
        names = set(self.attributes)
        for name in IDENTIFIER_FIELDS:
            if self.value(name) is not None:
                names.add(name)
        return names

    def to_document(self) -> dict[str, object]:
        document: dict[str, object] = dict(self.attributes)
        if self.masterid:
            document[MASTERID] = self.masterid
        if self.external_ids:
            document[EXTERNAL_IDS] = list(self.external_ids)
        if self.merged_ids:
            document[MERGED_IDS] = list(self.merged_ids)
        return document


@dataclass(slots=True, frozen=True)
class SearchMatch:
    key: str
    item: Entity
    score: float

    def to_payload(self) -> dict[str, object]:
        return {"key": self.key, "item": self.item.to_document(), "score": self.score}


@dataclass(slots=True)
class QueryResult:
    matches: list[SearchMatch] = field(default_factory=list[SearchMatch])
    exact: bool = False

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"matches": [match.to_payload() for match in self.matches]}
        if self.exact:
            payload["exact"] = True
        return payload


@dataclass(slots=True)
class EnsureResult:
    entry: Entity
    new: bool
    matches: list[SearchMatch] = field(default_factory=list[SearchMatch])
    exact: bool = False

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "entry": self.entry.to_document(),
            "new": self.new,
            "matches": [match.to_payload() for match in self.matches],
        }
        if self.exact:
            payload["exact"] = True
        return payload
