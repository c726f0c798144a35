"""Trading-partner flavour of the master data registry."""

from __future__ import annotations

from .hooks import (
    generate_trading_partner,
    merge_trading_partner_documents,
    merge_trading_partners,
    trading_partner_hooks,
)
from .schema import TradingPartnerRecord, validate_trading_partner
from .template import DOCUMENT_TYPES, SEARCH_KEYS, TEMPLATE, SourceType
from .tree import PRODUCTION_LIST_PATH, TEST_LIST_PATH, TREE, tree_for

__all__ = [
    "DOCUMENT_TYPES",
    "PRODUCTION_LIST_PATH",
    "SEARCH_KEYS",
    "TEMPLATE",
    "TEST_LIST_PATH",
    "TREE",
    "SourceType",
    "TradingPartnerRecord",
    "generate_trading_partner",
    "merge_trading_partner_documents",
    "merge_trading_partners",
    "trading_partner_hooks",
    "tree_for",
    "validate_trading_partner",
]
