"""In-memory search index over the known-entity collection.

Two lookups are supported:

* exact search: a disjunction of identifier values; an entity matches when any of
  its exact fields holds any of the values. Results are definitive and unranked.
* fuzzy search: weighted, ranked similarity over descriptive fields using
  rapidfuzz. Every requested field must clear ``min_score`` for an entity to match.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from rapidfuzz import fuzz, process, utils

from .model import IDENTIFIER_FIELDS, Entity, SearchMatch, union_ids

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

log = getLogger(__name__)

DEFAULT_MIN_SCORE: Final = 60.0
EXACT_SCORE: Final = 100.0


@dataclass(slots=True, frozen=True)
class SearchKey:
    name: str
    weight: float = 1.0


def as_search_key(key: str | SearchKey) -> SearchKey:
    return key if isinstance(key, SearchKey) else SearchKey(name=key)


def _exact_values(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(item) for item in value if item is not None]  # pyright: ignore[reportUnknownVariableType]
    if isinstance(value, Mapping):
        return []
    return [str(value)]


def _searchable_text(value: object) -> str | None:
    if value is None or isinstance(value, Mapping):
        return None
    if isinstance(value, (list, tuple, set, frozenset)):
        text = " ".join(str(item) for item in value if item is not None)  # pyright: ignore[reportUnknownVariableType]
    else:
        text = str(value)
    return text or None


class SearchIndex:
    """Ranked and exact lookups over a snapshot of the entity collection."""

    def __init__(
        self,
        search_keys: Sequence[str | SearchKey] = (),
        exact_keys: Sequence[str] = (),
        *,
        min_score: float = DEFAULT_MIN_SCORE,
    ) -> None:
        self._search_keys = tuple(as_search_key(key) for key in search_keys)
        self._exact_keys = union_ids(exact_keys, IDENTIFIER_FIELDS)
        self._weights = {key.name: key.weight for key in self._search_keys}
        self.min_score = min_score
        self._entries: list[tuple[str, Entity]] = []
        self._exact_table: dict[str, list[int]] = {}

    @property
    def search_keys(self) -> tuple[SearchKey, ...]:
        return self._search_keys

    @property
    def search_key_names(self) -> tuple[str, ...]:
        return tuple(key.name for key in self._search_keys)

    @property
    def exact_keys(self) -> tuple[str, ...]:
        return self._exact_keys

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(self.search_key_names) | frozenset(self._exact_keys)

    @property
    def documents(self) -> tuple[Entity, ...]:
        return tuple(entity for _, entity in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def set_collection(self, entries: Mapping[str, Entity | None]) -> None:
        """Replace the searchable corpus with ``entries``, dropping ``None`` values."""

        corpus = [(key, entity) for key, entity in entries.items() if entity is not None]
        exact_table: dict[str, list[int]] = {}
        for position, (_, entity) in enumerate(corpus):
            for field_name in self._exact_keys:
                for value in _exact_values(entity.value(field_name)):
                    positions = exact_table.setdefault(value, [])
                    if not positions or positions[-1] != position:
                        positions.append(position)
        self._entries = corpus
        self._exact_table = exact_table

    def exact_search(self, values: Iterable[str]) -> list[SearchMatch]:
        positions: set[int] = set()
        for value in values:
            positions.update(self._exact_table.get(value, ()))
        return [
            SearchMatch(key=self._entries[pos][0], item=self._entries[pos][1], score=EXACT_SCORE)
            for pos in sorted(positions)
        ]

    def fuzzy_search(self, criteria: Mapping[str, str]) -> list[SearchMatch]:
        if not criteria or not self._entries:
            return []

        scores_by_field: dict[str, dict[int, float]] = {}
        for field_name, query in criteria.items():
            choices = {
                position: text
                for position, (_, entity) in enumerate(self._entries)
                if (text := _searchable_text(entity.value(field_name))) is not None
            }
            results = process.extract(
                query,
                choices,
                scorer=fuzz.WRatio,
                processor=utils.default_process,
                score_cutoff=self.min_score,
                limit=None,
            )
            scores_by_field[field_name] = {position: score for _, score, position in results}

        candidates = set.intersection(*(set(scores) for scores in scores_by_field.values()))
        total_weight = sum(self._weights.get(name, 1.0) for name in scores_by_field)
        ranked: list[tuple[float, int]] = []
        for position in candidates:
            weighted = sum(
                self._weights.get(name, 1.0) * scores[position]
                for name, scores in scores_by_field.items()
            )
            ranked.append((weighted / total_weight, position))
        ranked.sort(key=lambda pair: (-pair[0], pair[1]))

        log.debug("Fuzzy search over %s matched %s entries", sorted(criteria), len(ranked))
        return [
            SearchMatch(key=self._entries[pos][0], item=self._entries[pos][1], score=round(score, 2))
            for score, pos in ranked
        ]
