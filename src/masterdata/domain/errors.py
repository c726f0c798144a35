"""Errors raised by the entity resolution and indexing engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .model import Entity, SearchMatch


class MasterDataError(RuntimeError):
    """Base class for engine errors."""


class InvalidInputError(MasterDataError, ValueError):
    """Raised when a candidate has no usable search or identifier fields."""


class ExternalIdConflictError(MasterDataError):
    """Raised when an identifier is already owned by a different entity."""

    def __init__(self, external_ids: Iterable[str], *, message: str | None = None) -> None:
        self.external_ids = tuple(external_ids)
        joined = ", ".join(self.external_ids)
        super().__init__(message or f"External IDs already in use by another entity: {joined}")


class MissingIdentifierError(MasterDataError, ValueError):
    """Raised when an update is requested without a masterid."""


class EntityNotFoundError(MasterDataError, LookupError):
    """Raised when a masterid does not resolve to a known entity."""

    def __init__(self, masterid: str) -> None:
        self.masterid = masterid
        super().__init__(f"No entity found for masterid {masterid}")


class EntityValidationError(MasterDataError):
    """Raised when the configured validator rejects a newly generated entity.

    The entity has already been created and linked remotely when this is raised.
    """

    def __init__(self, entity: Entity, reason: str) -> None:
        self.entity = entity
        super().__init__(f"Generated entity {entity.masterid} failed validation: {reason}")


class RemoteOperationError(MasterDataError):
    """Raised when a remote store request fails."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        path: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.path = path
        self.status_code = status_code


class StoreNotFoundError(RemoteOperationError, LookupError):
    """Raised when a remote path does not exist."""

    def __init__(self, path: str, *, operation: str | None = None) -> None:
        super().__init__(
            f"Remote path not found: {path}",
            operation=operation,
            path=path,
            status_code=404,
        )


class UpstreamConsistencyError(MasterDataError):
    """Raised (in strict mode) when one identifier resolves to several entities."""

    def __init__(self, matches: Sequence[SearchMatch]) -> None:
        self.matches = tuple(matches)
        keys = ", ".join(match.key for match in self.matches)
        super().__init__(f"Multiple exact matches for one identifier: {keys}")


class UpstreamConsistencyWarning(UserWarning):
    """Category for non-fatal duplicate-identifier findings."""
