"""Generate and merge hooks for trading partners."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING, cast

from masterdata.domain.errors import RemoteOperationError, StoreNotFoundError
from masterdata.domain.model import is_metadata_key
from masterdata.domain.ports import EntityHooks
from masterdata.domain.resolution import default_merge
from masterdata.domain.tree import join_path

from .schema import validate_trading_partner
from .template import DOCUMENT_TYPES, EMAIL_LIST_FIELDS, TEMPLATE
from .tree import BOOKMARKS_TYPE, PARTNER_BOOKMARKS_TREE

if TYPE_CHECKING:
    from masterdata.domain.model import Entity
    from masterdata.domain.ports import RemoteStore

log = getLogger(__name__)


async def generate_trading_partner(store: RemoteStore, candidate: Entity) -> dict[str, object]:
    """Provision the partner's own bookmarks and fill fields missing from the template."""

    receipt = await store.post("/resources", {}, content_type=BOOKMARKS_TYPE)
    bookmarks_id = receipt.resource_id
    if bookmarks_id is None:
        raise RemoteOperationError(
            "Store did not report a location for the partner bookmarks",
            operation="post",
            path="/resources",
        )
    log.info("Created partner bookmarks %s", bookmarks_id)

    extra: dict[str, object] = {
        name: default for name, default in TEMPLATE.items() if name not in candidate.attributes
    }
    extra["bookmarks"] = {"_id": bookmarks_id, "_rev": 0}
    extra["user"] = {"bookmarks": {"_id": bookmarks_id}}
    return extra


def _split_emails(value: object) -> list[str]:
    if not isinstance(value, str):
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def merge_trading_partners(source: Entity, target: Entity) -> Entity:
    """Default merge, except contact email lists are combined instead of replaced."""

    merged = default_merge(source, target)
    attributes = dict(merged.attributes)
    for name in EMAIL_LIST_FIELDS:
        emails = dict.fromkeys(
            _split_emails(target.attributes.get(name)) + _split_emails(source.attributes.get(name))
        )
        if emails:
            attributes[name] = ",".join(emails)
    return replace(merged, attributes=attributes)


def _bookmarks_id(document: Mapping[str, object]) -> str | None:
    link = document.get("bookmarks")
    if not isinstance(link, Mapping):
        return None
    resource_id = cast(Mapping[str, object], link).get("_id")
    return resource_id if isinstance(resource_id, str) and resource_id else None


async def merge_trading_partner_documents(
    store: RemoteStore,
    source_document: Mapping[str, object],
    target_document: Mapping[str, object],
) -> None:
    """Link every document of ``source`` into the same collection of ``target``."""

    source_bookmarks = _bookmarks_id(source_document)
    target_bookmarks = _bookmarks_id(target_document)
    if source_bookmarks is None or target_bookmarks is None:
        log.info("No partner bookmarks to merge documents between")
        return

    for document_type in DOCUMENT_TYPES:
        source_path = join_path(source_bookmarks, "trellisfw/documents", document_type)
        try:
            listing = await store.get(source_path)
        except StoreNotFoundError:
            log.debug("No %s under %s", document_type, source_bookmarks)
            continue
        if not isinstance(listing, Mapping):
            continue

        links: dict[str, object] = {}
        for key, value in cast(Mapping[str, object], listing).items():
            if is_metadata_key(key) or not isinstance(value, Mapping):
                continue
            resource_id = cast(Mapping[str, object], value).get("_id")
            if isinstance(resource_id, str):
                links[key] = {"_id": resource_id}
        if not links:
            continue
        target_path = join_path(target_bookmarks, "trellisfw/documents", document_type)
        await store.put(target_path, links, tree=PARTNER_BOOKMARKS_TREE)
        log.info(
            "Moved %s %s from %s to %s",
            len(links),
            document_type,
            source_bookmarks,
            target_bookmarks,
        )


def trading_partner_hooks() -> EntityHooks:
    return EntityHooks(
        generate=generate_trading_partner,
        merge=merge_trading_partners,
        merge_documents=merge_trading_partner_documents,
        validate=validate_trading_partner,
    )
