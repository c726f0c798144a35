"""Entity resolution: match-or-create, update and merge over the indexed collection.

Exact identifiers (``masterid``, ``externalIds``, ids of merged-away entities and
any caller-configured exact keys) are authoritative. Fuzzy similarity is only a
ranked fallback for callers to inspect; it never counts as evidence of identity.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from .errors import (
    EntityNotFoundError,
    EntityValidationError,
    ExternalIdConflictError,
    InvalidInputError,
    MissingIdentifierError,
    RemoteOperationError,
    StoreNotFoundError,
    UpstreamConsistencyError,
    UpstreamConsistencyWarning,
)
from .model import (
    EXTERNAL_IDS,
    MASTERID,
    EnsureResult,
    Entity,
    QueryResult,
    SearchMatch,
    is_metadata_key,
    key_for_masterid,
    union_ids,
)
from .ports import EntityHooks
from .tree import content_type_at, join_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .cache import EntityCache
    from .expand_index import ExpandIndexSynchronizer
    from .ports import RemoteStore
    from .tree import Tree

log = getLogger(__name__)

RESOURCES_PATH: Final = "/resources"
DEFAULT_CONTENT_TYPE: Final = "application/json"
MAX_REDIRECTS: Final = 16

FROZEN: Final = "frozen"
SUPERSEDED: Final = "superseded"

type Candidate = Entity | Mapping[str, object]


def as_entity(candidate: Candidate) -> Entity:
    if isinstance(candidate, Entity):
        return candidate
    return Entity.from_document(candidate)


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return not value
    return False


def _is_multi_valued(value: object) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def default_merge(source: Entity, target: Entity) -> Entity:
    """Union of both entities; ``target`` wins wherever it holds a non-blank value."""

    attributes = dict(source.attributes)
    for name, value in target.attributes.items():
        if not _is_blank(value) or name not in attributes:
            attributes[name] = value
    return Entity(
        masterid=target.masterid,
        external_ids=union_ids(target.external_ids, source.external_ids),
        merged_ids=union_ids(target.merged_ids, source.merged_ids),
        attributes=attributes,
    )


def _holds_link(value: object) -> bool:
    if not isinstance(value, Mapping):
        return False
    mapping = cast(Mapping[str, object], value)
    if "_id" in mapping:
        return True
    return any(_holds_link(child) for child in mapping.values())


def reference_fields(document: Mapping[str, object]) -> dict[str, object]:
    """Top-level fields of a stored record that point at subordinate resources."""

    return {
        name: value
        for name, value in document.items()
        if not is_metadata_key(name) and _holds_link(value)
    }


def build_tombstone(
    source_document: Mapping[str, object],
    target_document: Mapping[str, object],
    *,
    source_masterid: str,
    target_masterid: str,
) -> dict[str, object]:
    """Rewrite of a merged-away record that redirects readers to the survivor."""

    return {
        MASTERID: target_masterid,
        **reference_fields(target_document),
        SUPERSEDED: {MASTERID: source_masterid, **reference_fields(source_document)},
        FROZEN: True,
    }


class ResolutionEngine:
    """Decides whether a candidate is a known entity, and creates, updates or merges."""

    def __init__(
        self,
        *,
        store: RemoteStore,
        cache: EntityCache,
        path: str,
        tree: Tree,
        expand_index: ExpandIndexSynchronizer,
        hooks: EntityHooks | None = None,
        fail_on_duplicates: bool = False,
    ) -> None:
        self.store = store
        self.cache = cache
        self.index = cache.index
        self.path = join_path(path)
        self.tree = tree
        self.expand_index = expand_index
        self.hooks = hooks or EntityHooks()
        self.fail_on_duplicates = fail_on_duplicates

    # -- query --------------------------------------------------------------

    def query(self, candidate: Candidate) -> QueryResult:
        entity = as_entity(candidate)
        projection = {
            name: value
            for name in self.index.field_names
            if not _is_blank(value := entity.value(name))
        }
        if not projection:
            fields = ", ".join(sorted(self.index.field_names))
            raise InvalidInputError(f"Candidate has none of the searchable fields: {fields}")

        exact_values = self._exact_values(projection)
        if exact_values:
            matches = self.index.exact_search(exact_values)
            if matches:
                log.debug("Exact search matched %s entries", len(matches))
                return QueryResult(matches=matches, exact=True)

        searchable = set(self.index.search_key_names)
        criteria = {
            name: str(value)
            for name, value in projection.items()
            if name in searchable
            and not _is_multi_valued(value)
            and not isinstance(value, Mapping)
        }
        if not criteria:
            return QueryResult()
        return QueryResult(matches=self.index.fuzzy_search(criteria))

    def _exact_values(self, projection: Mapping[str, object]) -> list[str]:
        values: list[str] = []
        for name in self.index.exact_keys:
            value = projection.get(name)
            if value is None:
                continue
            if _is_multi_valued(value):
                values.extend(str(item) for item in cast("Iterable[object]", value) if item)
            elif not isinstance(value, Mapping):
                values.append(str(value))
        return values

    # -- ensure -------------------------------------------------------------

    async def ensure(self, candidate: Candidate) -> EnsureResult:
        entity = as_entity(candidate)
        result = self.query(entity)

        if result.exact and len(result.matches) == 1:
            match = result.matches[0]
            log.info("Exact match %s found for the candidate; reusing it", match.key)
            return EnsureResult(entry=match.item, new=False, matches=result.matches, exact=True)

        if result.exact:
            if self.fail_on_duplicates:
                raise UpstreamConsistencyError(result.matches)
            log.warning(
                "%s: identifiers of the candidate are bound to %s entities (%s); "
                "creating a new entry instead of picking one",
                UpstreamConsistencyWarning.__name__,
                len(result.matches),
                ", ".join(match.key for match in result.matches),
            )
            # Contested ids stay with their current owners.
            entity = replace(
                entity,
                external_ids=tuple(
                    xid for xid in entity.external_ids if not self.index.exact_search([xid])
                ),
            )
        else:
            log.info("No exact match for the candidate; creating a new entry")

        entry = await self.generate_element(entity)
        if self.hooks.validate is not None:
            try:
                self.hooks.validate(entry)
            except Exception as exc:  # noqa: BLE001
                log.error("Generated entry %s failed validation: %s", entry.masterid, exc)
                raise EntityValidationError(entry, str(exc)) from exc

        return EnsureResult(entry=entry, new=True, matches=result.matches, exact=result.exact)

    # -- generate -----------------------------------------------------------

    async def generate_element(self, candidate: Candidate) -> Entity:
        entity = as_entity(candidate)
        conflicts = [xid for xid in entity.external_ids if self.index.exact_search([xid])]
        if conflicts:
            raise ExternalIdConflictError(conflicts)

        extra = await self.hooks.generate(self.store, entity) if self.hooks.generate else {}
        document = {**entity.to_document(), **extra}
        if document.pop(MASTERID, None):
            log.debug("Ignoring unknown masterid on the candidate; the store assigns a new one")

        content_type = content_type_at(self.tree, join_path(self.path, "*")) or DEFAULT_CONTENT_TYPE
        try:
            receipt = await self.store.post(RESOURCES_PATH, document, content_type=content_type)
            resource_id = receipt.resource_id
            if resource_id is None:
                raise RemoteOperationError(
                    "Store did not report a location for the new record",
                    operation="post",
                    path=RESOURCES_PATH,
                )
            key = key_for_masterid(resource_id)

            await self.store.put(join_path(resource_id), {MASTERID: resource_id})
            await self.store.put(self.path, {key: {"_id": resource_id, "_rev": 0}}, tree=self.tree)
            log.info("Added item to list at %s/%s", self.path, key)

            created = Entity.from_document({**document, MASTERID: resource_id})
            await self.expand_index.upsert(key, created)
        except RemoteOperationError:
            log.exception("Generating a new entry under %s failed", self.path)
            raise

        self.cache.upsert(key, created)
        return created

    # -- update -------------------------------------------------------------

    async def update(self, candidate: Candidate) -> Entity:
        entity = as_entity(candidate)
        if not entity.masterid:
            raise MissingIdentifierError("An update requires the masterid of the entity")

        current = self._owner_of(entity.masterid)
        if current is None:
            raise EntityNotFoundError(entity.masterid)
        owner = current.item
        target = owner.masterid or entity.masterid

        accepted: list[str] = []
        for xid in entity.external_ids:
            if xid in owner.external_ids:
                continue
            others = [m.key for m in self.index.exact_search([xid]) if m.key != current.key]
            if others:
                log.warning(
                    "External ID %s already belongs to %s; dropping it from the update of %s",
                    xid,
                    ", ".join(others),
                    target,
                )
                continue
            accepted.append(xid)

        patch: dict[str, object] = dict(entity.attributes)
        external_ids = union_ids(owner.external_ids, accepted)
        if external_ids:
            patch[EXTERNAL_IDS] = list(external_ids)

        try:
            await self.store.put(join_path(target), patch)
            stored = await self._read(target)
            updated = Entity.from_document(stored)
            if updated.masterid is None:
                updated = replace(updated, masterid=target)
            await self.expand_index.upsert(current.key, updated)
        except RemoteOperationError:
            log.exception("Updating %s failed", target)
            raise

        self.cache.upsert(current.key, updated)
        log.info("Updated %s", target)
        return updated

    def _owner_of(self, masterid: str) -> SearchMatch | None:
        matches = self.index.exact_search([masterid])
        for match in matches:
            if match.item.masterid == masterid:
                return match
        for match in matches:
            if masterid in match.item.merged_ids:
                return match
        return None

    # -- merge --------------------------------------------------------------

    async def merge_elements(
        self,
        from_id: str,
        to_id: str,
        *,
        external_ids: Sequence[str] = (),
    ) -> Entity:
        """Fold ``from_id`` into ``to_id`` and leave a tombstone at ``from_id``."""

        if from_id == to_id:
            raise InvalidInputError("Cannot merge an entity into itself")
        self._assert_merge_ids_free(external_ids, merging={from_id, to_id})

        source_document = await self._read_entity(from_id)
        target_document = await self._read_entity(to_id)
        source = Entity.from_document(source_document)
        target = Entity.from_document(target_document)
        source = replace(source, masterid=source.masterid or from_id)
        target = replace(target, masterid=target.masterid or to_id)

        merge = self.hooks.merge or default_merge
        merged = merge(source, target)
        merged = replace(
            merged,
            masterid=target.masterid,
            external_ids=union_ids(merged.external_ids, external_ids),
            merged_ids=union_ids(merged.merged_ids, source.merged_ids, [from_id]),
        )

        to_key = key_for_masterid(to_id)
        from_key = key_for_masterid(from_id)
        try:
            await self.store.put(join_path(to_id), merged.to_document())
            await self.expand_index.upsert(to_key, merged)
            self.cache.upsert(to_key, merged)

            try:
                await self.store.delete(join_path(self.path, from_key))
            except StoreNotFoundError:
                log.warning("%s was not linked in %s when merging it", from_key, self.path)
            self.cache.remove(from_key)
            await self.expand_index.remove(from_key)

            tombstone = build_tombstone(
                source_document,
                target_document,
                source_masterid=from_id,
                target_masterid=to_id,
            )
            await self.store.put(join_path(from_id), tombstone)

            if self.hooks.merge_documents is not None:
                await self.hooks.merge_documents(self.store, source_document, target_document)
        except RemoteOperationError:
            log.exception("Merging %s into %s failed", from_id, to_id)
            raise

        log.info("Merged %s into %s", from_id, to_id)
        return merged

    def _assert_merge_ids_free(self, external_ids: Iterable[str], *, merging: set[str]) -> None:
        conflicts: list[str] = []
        for xid in external_ids:
            matches = self.index.exact_search([xid])
            if len(matches) > 1 or (matches and matches[0].item.masterid not in merging):
                conflicts.append(xid)
        if conflicts:
            raise ExternalIdConflictError(
                conflicts,
                message=(
                    "External IDs supplied to the merge are already in use by "
                    f"non-merging entities: {', '.join(conflicts)}"
                ),
            )

    # -- resolve ------------------------------------------------------------

    async def resolve(self, masterid: str) -> Entity:
        """Read ``masterid`` from the store, following merge tombstones to the survivor."""

        visited: list[str] = []
        current = masterid
        for _ in range(MAX_REDIRECTS):
            document = await self._read_entity(current)
            entity = Entity.from_document(document)
            redirect = entity.masterid
            if document.get(FROZEN) is not True or not redirect or redirect == current:
                return entity if entity.masterid else replace(entity, masterid=current)
            visited.append(current)
            if redirect in visited:
                raise RemoteOperationError(
                    f"Tombstone cycle while resolving {masterid}: {' -> '.join(visited)}",
                    operation="get",
                    path=join_path(redirect),
                )
            log.debug("Following tombstone %s -> %s", current, redirect)
            current = redirect
        raise RemoteOperationError(
            f"Too many tombstone redirects while resolving {masterid}",
            operation="get",
            path=join_path(current),
        )

    # -- helpers ------------------------------------------------------------

    async def _read(self, masterid: str) -> Mapping[str, object]:
        path = join_path(masterid)
        data = await self.store.get(path)
        if not isinstance(data, Mapping):
            raise RemoteOperationError(
                f"Record at {path} is not a document", operation="get", path=path
            )
        return cast(Mapping[str, object], data)

    async def _read_entity(self, masterid: str) -> Mapping[str, object]:
        try:
            return await self._read(masterid)
        except StoreNotFoundError as exc:
            raise EntityNotFoundError(masterid) from exc
