"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import AuditLog, HistoryStore, MemberRegistry, PurchaseStore
from .stores import MergeStores

__all__ = [
    "AuditLog",
    "HistoryStore",
    "MemberRegistry",
    "MergeStores",
    "PurchaseStore",
]
