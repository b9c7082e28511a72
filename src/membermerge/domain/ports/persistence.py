"""Ports for the member registry and the collections a merge touches.

Every method is a coroutine: implementations talk to a document store and the
engine never blocks on it. None of these ports promise multi-document
transactions; each call stands on its own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from membermerge.domain.model import (
        HistoryEntry,
        Member,
        MemberProfile,
        MemberSummary,
        MergeAuditEntry,
        Purchase,
    )


@runtime_checkable
class MemberRegistry(Protocol):
    """Create/query/update primitives of the member registry."""

    async def get_summaries(self) -> Sequence[MemberSummary]: ...

    async def get_profile(self, member_id: str) -> Member:
        """Return the member or raise ``MemberNotFoundError``."""
        ...

    async def write_profile(self, member_id: str, profile: MemberProfile) -> None: ...

    async def mark_redirect(self, member_id: str, survivor_id: str, *, merged_by: str) -> bool:
        """Turn ``member_id`` into a redirect stub.

        Returns ``False`` without writing when the member already is one.
        """
        ...


@runtime_checkable
class PurchaseStore(Protocol):
    """Purchase ledger keyed by owning member."""

    async def list_by_owner(self, member_id: str) -> Sequence[Purchase]: ...

    async def exists_by_payment_ref(self, member_id: str, payment_ref: str) -> bool: ...

    async def reparent(self, purchase_id: str, from_owner: str, to_owner: str) -> None:
        """Move a purchase to ``to_owner``.

        The purchase gets a fresh id when ``to_owner`` already holds a different
        purchase under the same id. Raises ``UnknownPurchaseError`` when
        ``from_owner`` does not hold ``purchase_id``.
        """
        ...

    async def remove(self, owner_id: str, purchase_id: str) -> None: ...


@runtime_checkable
class HistoryStore(Protocol):
    """Action and membership history, append-only."""

    async def list_by_owner(self, member_id: str) -> Sequence[HistoryEntry]: ...

    async def copy(self, entry: HistoryEntry, to_owner: str) -> None:
        """Append a migrated copy of ``entry`` under ``to_owner``.

        A repeated copy of the same entry is a no-op. An unrelated entry of
        ``to_owner`` sharing the id does not count as a copy; the new copy then
        gets a fresh id.
        """
        ...


@runtime_checkable
class AuditLog(Protocol):
    """Durable merge audit trail."""

    async def append(self, entry: MergeAuditEntry) -> bool: ...
