"""Store implementations backed by SQLAlchemy async sessions.

Every port call opens its own session and commits before returning, so one
call is one durable write. Driver and database errors are reported as
``TransientStoreError``; callers never see raw SQLAlchemy exceptions.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from membermerge.adapters.sqlalchemy.mappings import (
    history_entry_table,
    member_table,
    merge_audit_table,
    purchase_table,
)
from membermerge.domain.dedup.audit import utc_now
from membermerge.domain.dedup.errors import (
    MemberNotFoundError,
    TransientStoreError,
    UnknownPurchaseError,
)
from membermerge.domain.model import (
    HistoryEntry,
    Member,
    MemberProfile,
    MembershipSnapshot,
    MemberSummary,
    MergeAuditEntry,
    Purchase,
    Registration,
    StatusBlock,
    new_id,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from datetime import datetime

    from sqlalchemy import CursorResult, Row
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

log = logging.getLogger(__name__)


class _SessionScopedStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.session_factory = session_factory
        self._clock = clock

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            log.warning("Store operation %s failed: %s", operation, exc)
            raise TransientStoreError(operation, exc) from exc


def _rowcount(result: object) -> int:
    return cast("CursorResult[Any]", result).rowcount


# Members ---------------------------------------------------------------------


def _profile_values(profile: MemberProfile) -> dict[str, Any]:
    return {
        "email": profile.email,
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "phone": profile.phone,
        "postal_code": profile.postal_code,
        "birth_date": profile.birth_date,
        "created_at": profile.created_at,
        "membership": profile.membership.to_document() if profile.membership else None,
        "loyalty_points": profile.loyalty_points,
        "status": profile.status.to_document(),
        "registration": profile.registration.to_document(),
        "extended_profile": dict(profile.extended_profile),
    }


def _member_from_row(row: Row[Any]) -> Member:
    profile = MemberProfile(
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        phone=row.phone,
        postal_code=row.postal_code,
        birth_date=row.birth_date,
        created_at=row.created_at,
        membership=MembershipSnapshot.from_document(row.membership) if row.membership else None,
        loyalty_points=row.loyalty_points,
        status=StatusBlock.from_document(row.status or {}),
        registration=Registration.from_document(row.registration or {}),
        extended_profile=dict(row.extended_profile or {}),
    )
    return Member(
        id=row.id,
        profile=profile,
        merged=row.merged,
        merged_into=row.merged_into,
        merged_at=row.merged_at,
        merged_by=row.merged_by,
        updated_at=row.updated_at,
    )


class SqlAlchemyMemberRegistry(_SessionScopedStore):
    async def add(self, member: Member) -> None:
        stmt = insert(member_table).values(
            id=member.id,
            merged=member.merged,
            merged_into=member.merged_into,
            merged_at=member.merged_at,
            merged_by=member.merged_by,
            updated_at=member.updated_at,
            **_profile_values(member.profile),
        )
        async with self._session("member.add") as session:
            await session.execute(stmt)
            await session.commit()

    async def get_summaries(self) -> list[MemberSummary]:
        async with self._session("member.get_summaries") as session:
            result = await session.execute(select(member_table).order_by(member_table.c.id))
            return [MemberSummary.of(_member_from_row(row)) for row in result]

    async def get_profile(self, member_id: str) -> Member:
        async with self._session("member.get_profile") as session:
            result = await session.execute(
                select(member_table).where(member_table.c.id == member_id)
            )
            row = result.one_or_none()
        if row is None:
            raise MemberNotFoundError(member_id)
        return _member_from_row(row)

    async def write_profile(self, member_id: str, profile: MemberProfile) -> None:
        stmt = (
            update(member_table)
            .where(member_table.c.id == member_id)
            .values(updated_at=self._clock(), **_profile_values(profile))
        )
        async with self._session("member.write_profile") as session:
            affected = _rowcount(await session.execute(stmt))
            await session.commit()
        if affected == 0:
            raise MemberNotFoundError(member_id)

    async def mark_redirect(self, member_id: str, survivor_id: str, *, merged_by: str) -> bool:
        member = await self.get_profile(member_id)
        if member.merged:
            return False
        at = self._clock()
        stub = member.profile.as_redirect_stub(survivor_id, at=at)
        # conditional on the flag so that only one concurrent merge wins
        stmt = (
            update(member_table)
            .where(member_table.c.id == member_id)
            .where(member_table.c.merged.is_(False))
            .values(
                merged=True,
                merged_into=survivor_id,
                merged_at=at,
                merged_by=merged_by,
                updated_at=at,
                **_profile_values(stub),
            )
        )
        async with self._session("member.mark_redirect") as session:
            affected = _rowcount(await session.execute(stmt))
            await session.commit()
        return affected == 1


# Purchases -------------------------------------------------------------------


def _purchase_from_row(row: Row[Any]) -> Purchase:
    return Purchase(
        id=row.id,
        owner_id=row.owner_id,
        payment_ref=row.payment_ref,
        amount=row.amount,
        purchased_at=row.purchased_at,
        type=row.type,
        source=row.source,
        item_name=row.item_name,
        payment_status=row.payment_status,
        merged_from=row.merged_from,
        merged_at=row.merged_at,
    )


class SqlAlchemyPurchaseStore(_SessionScopedStore):
    async def add(self, purchase: Purchase) -> None:
        stmt = insert(purchase_table).values(
            owner_id=purchase.owner_id,
            id=purchase.id,
            payment_ref=purchase.payment_ref,
            amount=purchase.amount,
            purchased_at=purchase.purchased_at,
            type=purchase.type,
            source=purchase.source,
            item_name=purchase.item_name,
            payment_status=purchase.payment_status,
            merged_from=purchase.merged_from,
            merged_at=purchase.merged_at,
        )
        async with self._session("purchase.add") as session:
            await session.execute(stmt)
            await session.commit()

    async def list_by_owner(self, member_id: str) -> list[Purchase]:
        stmt = (
            select(purchase_table)
            .where(purchase_table.c.owner_id == member_id)
            .order_by(purchase_table.c.purchased_at.desc(), purchase_table.c.id)
        )
        async with self._session("purchase.list_by_owner") as session:
            result = await session.execute(stmt)
            return [_purchase_from_row(row) for row in result]

    async def exists_by_payment_ref(self, member_id: str, payment_ref: str) -> bool:
        stmt = (
            select(purchase_table.c.id)
            .where(purchase_table.c.owner_id == member_id)
            .where(purchase_table.c.payment_ref == payment_ref)
            .limit(1)
        )
        async with self._session("purchase.exists_by_payment_ref") as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def reparent(self, purchase_id: str, from_owner: str, to_owner: str) -> None:
        taken = (
            select(purchase_table.c.id)
            .where(purchase_table.c.owner_id == to_owner)
            .where(purchase_table.c.id == purchase_id)
        )
        async with self._session("purchase.reparent") as session:
            target_id = purchase_id
            if (await session.execute(taken)).scalar_one_or_none() is not None:
                target_id = new_id()
            stmt = (
                update(purchase_table)
                .where(purchase_table.c.owner_id == from_owner)
                .where(purchase_table.c.id == purchase_id)
                .values(
                    id=target_id,
                    owner_id=to_owner,
                    merged_from=from_owner,
                    merged_at=self._clock(),
                )
            )
            affected = _rowcount(await session.execute(stmt))
            await session.commit()
        if affected == 0:
            raise UnknownPurchaseError(purchase_id, from_owner)
        if target_id != purchase_id:
            log.info(
                "Purchase %s of %s moved to %s as %s (id already in use)",
                purchase_id,
                from_owner,
                to_owner,
                target_id,
            )

    async def remove(self, owner_id: str, purchase_id: str) -> None:
        stmt = (
            delete(purchase_table)
            .where(purchase_table.c.owner_id == owner_id)
            .where(purchase_table.c.id == purchase_id)
        )
        async with self._session("purchase.remove") as session:
            await session.execute(stmt)
            await session.commit()


# History ---------------------------------------------------------------------


def _history_values(entry: HistoryEntry) -> dict[str, Any]:
    return {
        "owner_id": entry.owner_id,
        "id": entry.id,
        "kind": entry.kind,
        "entry_type": entry.entry_type,
        "timestamp": entry.timestamp,
        "actor": entry.actor,
        "details": dict(entry.details),
        "migrated_from": entry.migrated_from,
        "migrated_at": entry.migrated_at,
        "origin_id": entry.origin_id,
    }


def _history_from_row(row: Row[Any]) -> HistoryEntry:
    return HistoryEntry(
        id=row.id,
        owner_id=row.owner_id,
        kind=row.kind,
        entry_type=row.entry_type,
        timestamp=row.timestamp,
        actor=row.actor,
        details=dict(row.details or {}),
        migrated_from=row.migrated_from,
        migrated_at=row.migrated_at,
        origin_id=row.origin_id,
    )


class SqlAlchemyHistoryStore(_SessionScopedStore):
    async def add(self, entry: HistoryEntry) -> None:
        async with self._session("history.add") as session:
            await session.execute(insert(history_entry_table).values(**_history_values(entry)))
            await session.commit()

    async def list_by_owner(self, member_id: str) -> list[HistoryEntry]:
        stmt = (
            select(history_entry_table)
            .where(history_entry_table.c.owner_id == member_id)
            .order_by(history_entry_table.c.timestamp.desc(), history_entry_table.c.id)
        )
        async with self._session("history.list_by_owner") as session:
            result = await session.execute(stmt)
            return [_history_from_row(row) for row in result]

    async def copy(self, entry: HistoryEntry, to_owner: str) -> None:
        held = select(history_entry_table.c.id).where(history_entry_table.c.owner_id == to_owner)
        copied = (
            held.where(history_entry_table.c.migrated_from == entry.owner_id)
            .where(history_entry_table.c.origin_id == entry.id)
            .limit(1)
        )
        taken = held.where(history_entry_table.c.id == entry.id)
        async with self._session("history.copy") as session:
            if (await session.execute(copied)).scalar_one_or_none() is not None:
                return
            entry_id = None
            if (await session.execute(taken)).scalar_one_or_none() is not None:
                entry_id = new_id()
            migrated = entry.migrated_copy(to_owner, at=self._clock(), entry_id=entry_id)
            await session.execute(
                insert(history_entry_table).values(**_history_values(migrated))
            )
            await session.commit()


# Audit -----------------------------------------------------------------------


def _audit_from_row(row: Row[Any]) -> MergeAuditEntry:
    return MergeAuditEntry(
        id=row.id,
        survivor_id=row.survivor_id,
        loser_id=row.loser_id,
        operator_id=row.operator_id,
        survivor_side=row.survivor_side,
        field_choices=dict(row.field_choices),
        field_sources=dict(row.field_sources),
        purchases_kept=row.purchases_kept,
        purchases_transferred=row.purchases_transferred,
        history_copied=row.history_copied,
        survivor_before=dict(row.survivor_before),
        loser_before=dict(row.loser_before),
        survivor_after=dict(row.survivor_after),
        created_at=row.created_at,
    )


class SqlAlchemyAuditLog(_SessionScopedStore):
    async def append(self, entry: MergeAuditEntry) -> bool:
        stmt = insert(merge_audit_table).values(
            id=entry.id,
            survivor_id=entry.survivor_id,
            loser_id=entry.loser_id,
            operator_id=entry.operator_id,
            survivor_side=entry.survivor_side,
            field_choices=entry.field_choices,
            field_sources=entry.field_sources,
            purchases_kept=entry.purchases_kept,
            purchases_transferred=entry.purchases_transferred,
            history_copied=entry.history_copied,
            survivor_before=entry.survivor_before,
            loser_before=entry.loser_before,
            survivor_after=entry.survivor_after,
            created_at=entry.created_at,
        )
        async with self._session("audit.append") as session:
            affected = _rowcount(await session.execute(stmt))
            await session.commit()
        return affected == 1

    async def list_entries(self, member_id: str | None = None) -> list[MergeAuditEntry]:
        """Audit entries oldest first, optionally limited to merges touching ``member_id``."""

        stmt = select(merge_audit_table).order_by(merge_audit_table.c.created_at)
        if member_id is not None:
            stmt = stmt.where(
                (merge_audit_table.c.survivor_id == member_id)
                | (merge_audit_table.c.loser_id == member_id)
            )
        async with self._session("audit.list_entries") as session:
            result = await session.execute(stmt)
            return [_audit_from_row(row) for row in result]
