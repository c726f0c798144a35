"""OADA-style store, change feed and job queue adapters."""

from __future__ import annotations

from .client import OadaStore, receipt_from_response
from .jobs import SERVICES_TREE, OadaJobRunner
from .watch import PollingListWatch, diff_snapshots

__all__ = [
    "SERVICES_TREE",
    "OadaJobRunner",
    "OadaStore",
    "PollingListWatch",
    "diff_snapshots",
    "receipt_from_response",
]
