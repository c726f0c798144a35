"""Resource layout of the trading-partner master data."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from masterdata.domain.tree import graft, join_path, split_path

if TYPE_CHECKING:
    from masterdata.domain.tree import Tree

BOOKMARKS_TYPE: Final = "application/vnd.oada.bookmarks.1+json"
TRELLIS_TYPE: Final = "application/vnd.trellis.1+json"
TRADING_PARTNERS_TYPE: Final = "application/vnd.trellisfw.trading-partners.1+json"
TRADING_PARTNER_TYPE: Final = "application/vnd.trellisfw.trading-partner.1+json"
DOCUMENTS_TYPE: Final = "application/vnd.trellisfw.documents.1+json"

PRODUCTION_LIST_PATH: Final = "/bookmarks/trellisfw/trading-partners"
TEST_LIST_PATH: Final = "/bookmarks/test/trading-partners"

TREE: Final[Tree] = {
    "bookmarks": {
        "_type": BOOKMARKS_TYPE,
        "_rev": 0,
        "trellisfw": {
            "_type": TRELLIS_TYPE,
            "_rev": 0,
            "trading-partners": {
                "_type": TRADING_PARTNERS_TYPE,
                "_rev": 0,
                "_meta": {
                    "indexings": {
                        "expand-index": {"_type": TRADING_PARTNERS_TYPE, "_rev": 0},
                    },
                },
                "expand-index": {"_type": TRADING_PARTNERS_TYPE, "_rev": 0},
                "*": {
                    "_type": TRADING_PARTNER_TYPE,
                    "_rev": 0,
                    "bookmarks": {"_type": BOOKMARKS_TYPE, "_rev": 0},
                },
            },
        },
    },
}

# Per-partner bookmarks, addressed by resource id (``/resources/<id>/trellisfw/...``).
PARTNER_BOOKMARKS_TREE: Final[Tree] = {
    "resources": {
        "*": {
            "_type": BOOKMARKS_TYPE,
            "_rev": 0,
            "trellisfw": {
                "_type": TRELLIS_TYPE,
                "_rev": 0,
                "documents": {
                    "_type": DOCUMENTS_TYPE,
                    "_rev": 0,
                    "*": {"_type": DOCUMENTS_TYPE, "_rev": 0},
                },
            },
        },
    },
}


def tree_for(list_path: str) -> dict[str, object]:
    """Return the tree with the trellisfw layout also placed above ``list_path``."""

    segments = split_path(list_path)
    grafted = dict(TREE)
    if len(segments) > 2:
        grafted = graft(grafted, "/bookmarks/trellisfw", join_path(*segments[:-1]))
    if join_path(*segments) != PRODUCTION_LIST_PATH:
        grafted = graft(grafted, PRODUCTION_LIST_PATH, list_path)
    return grafted
