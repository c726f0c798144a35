"""Field template and search configuration for trading partners."""

from __future__ import annotations

from enum import StrEnum
from typing import Final

from masterdata.domain.index import SearchKey


class SourceType(StrEnum):
    VENDOR = "vendor"
    BUSINESS = "business"


DEFAULT_TYPE: Final = "CUSTOMER"

# Descriptive fields every stored partner carries; identifiers are assigned elsewhere.
TEMPLATE: Final[dict[str, str]] = {
    "sapid": "",
    "internalid": "",
    "companycode": "",
    "vendorid": "",
    "partnerid": "",
    "name": "",
    "address": "",
    "city": "",
    "state": "",
    "type": DEFAULT_TYPE,
    "source": SourceType.BUSINESS.value,
    "coi_emails": "",
    "fsqa_emails": "",
    "email": "",
    "phone": "",
}

SEARCH_KEYS: Final[tuple[SearchKey, ...]] = (
    SearchKey(name="name", weight=2.0),
    SearchKey(name="phone"),
    SearchKey(name="email"),
    SearchKey(name="address"),
    SearchKey(name="city"),
    SearchKey(name="state"),
)

EMAIL_LIST_FIELDS: Final = ("coi_emails", "fsqa_emails")

DOCUMENT_TYPES: Final = (
    "cois",
    "fsqa-audits",
    "fsqa-certificates",
    "letters-of-guarantee",
    "product-specs",
)
