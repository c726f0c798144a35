"""Entity resolution and indexing engine."""

from __future__ import annotations

from .cache import EntityCache
from .errors import (
    EntityNotFoundError,
    EntityValidationError,
    ExternalIdConflictError,
    InvalidInputError,
    MasterDataError,
    MissingIdentifierError,
    RemoteOperationError,
    StoreNotFoundError,
    UpstreamConsistencyError,
    UpstreamConsistencyWarning,
)
from .expand_index import ExpandIndexLayout, ExpandIndexSynchronizer, expand_index_path
from .index import SearchIndex, SearchKey
from .model import EnsureResult, Entity, QueryResult, SearchMatch
from .ports import ChangeEvent, ChangeType, EntityHooks, StoreReceipt
from .projector import ChangeProjector, ProjectorState
from .resolution import ResolutionEngine, default_merge

__all__ = [
    "ChangeEvent",
    "ChangeProjector",
    "ChangeType",
    "EnsureResult",
    "Entity",
    "EntityCache",
    "EntityHooks",
    "EntityNotFoundError",
    "EntityValidationError",
    "ExpandIndexLayout",
    "ExpandIndexSynchronizer",
    "ExternalIdConflictError",
    "InvalidInputError",
    "MasterDataError",
    "MissingIdentifierError",
    "ProjectorState",
    "QueryResult",
    "RemoteOperationError",
    "ResolutionEngine",
    "SearchIndex",
    "SearchKey",
    "SearchMatch",
    "StoreNotFoundError",
    "StoreReceipt",
    "UpstreamConsistencyError",
    "UpstreamConsistencyWarning",
    "default_merge",
    "expand_index_path",
]
