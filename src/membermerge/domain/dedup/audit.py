"""Audit trail of applied merges."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from membermerge.domain.model import MergeAuditEntry

from .errors import AuditWriteError, TransientStoreError

if TYPE_CHECKING:
    from collections.abc import Callable

    from membermerge.domain.ports import AuditLog

    from .plan import MergePlan

log = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class MergeSummary:
    """What the audit entry records about one merge."""

    operator_id: str
    survivor_side: str
    field_choices: dict[str, str]
    field_sources: dict[str, str]
    purchases_kept: int
    purchases_transferred: int
    history_copied: int
    survivor_before: dict[str, Any]
    loser_before: dict[str, Any]
    survivor_after: dict[str, Any]

    @classmethod
    def from_plan(cls, plan: MergePlan, *, history_copied: int | None = None) -> MergeSummary:
        return cls(
            operator_id=plan.operator_id,
            survivor_side=plan.survivor_side.value,
            field_choices=plan.field_choices.as_dict(),
            field_sources={
                merge_field.value: member_id
                for merge_field, member_id in plan.field_sources.items()
            },
            purchases_kept=len(plan.keep_purchase_ids),
            purchases_transferred=len(plan.transfer_purchase_ids),
            history_copied=(
                len(plan.history_to_copy) if history_copied is None else history_copied
            ),
            survivor_before=plan.survivor_before.to_document(),
            loser_before=plan.loser_before.to_document(),
            survivor_after=plan.profile.to_document(),
        )


class AuditEmitter:
    """Persist one audit entry per applied merge. Failures are never silent."""

    def __init__(self, audit_log: AuditLog, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._audit_log = audit_log
        self._clock = clock

    async def record(
        self,
        survivor_id: str,
        loser_id: str,
        summary: MergeSummary,
    ) -> MergeAuditEntry:
        entry = MergeAuditEntry(
            survivor_id=survivor_id,
            loser_id=loser_id,
            operator_id=summary.operator_id,
            survivor_side=summary.survivor_side,
            field_choices=dict(summary.field_choices),
            field_sources=dict(summary.field_sources),
            purchases_kept=summary.purchases_kept,
            purchases_transferred=summary.purchases_transferred,
            history_copied=summary.history_copied,
            survivor_before=summary.survivor_before,
            loser_before=summary.loser_before,
            survivor_after=summary.survivor_after,
            created_at=self._clock(),
        )
        try:
            appended = await self._audit_log.append(entry)
        except TransientStoreError as exc:
            raise AuditWriteError(f"Audit entry for {loser_id} -> {survivor_id}: {exc}") from exc
        if not appended:
            raise AuditWriteError(f"Audit log rejected entry for {loser_id} -> {survivor_id}")
        log.info("Recorded merge audit %s (%s -> %s)", entry.id, loser_id, survivor_id)
        return entry
