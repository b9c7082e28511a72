"""Collections of ports handed to the merge engine together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from membermerge.domain.ports.persistence import (
        AuditLog,
        HistoryStore,
        MemberRegistry,
        PurchaseStore,
    )


@dataclass(frozen=True, slots=True)
class MergeStores:
    """Stores a merge reads from and writes to."""

    members: MemberRegistry
    purchases: PurchaseStore
    history: HistoryStore
    audit: AuditLog
