"""Public domain model surface."""

from __future__ import annotations

from membermerge.domain.model.audit import MergeAuditEntry
from membermerge.domain.model.entity import Entity, new_id
from membermerge.domain.model.enums import (
    HistoryKind,
    MembershipStatus,
    MembershipType,
    MergeField,
    Side,
)
from membermerge.domain.model.history import HistoryEntry
from membermerge.domain.model.member import (
    Document,
    Member,
    MemberProfile,
    MembershipSnapshot,
    MemberSummary,
    Registration,
    StatusBlock,
)
from membermerge.domain.model.purchase import Purchase

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    "Document",
    # member
    "Member",
    "MemberProfile",
    "MemberSummary",
    "MembershipSnapshot",
    "Registration",
    "StatusBlock",
    # owned records
    "Purchase",
    "HistoryEntry",
    # audit
    "MergeAuditEntry",
    # enums
    "HistoryKind",
    "MembershipStatus",
    "MembershipType",
    "MergeField",
    "Side",
]
