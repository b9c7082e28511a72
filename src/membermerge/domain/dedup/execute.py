"""Apply a ``MergePlan`` to the stores.

The stores offer no multi-document transactions, so the executor is written
to converge instead: every step checks what is already in place and only
writes what is missing. Re-running a plan after a failure finishes the work;
re-running it after success is a no-op reported as ``AlreadyAppliedOutcome``.

Step order matters. The loser becomes a redirect stub only after its
purchases and history are safely on the survivor, and it is the last data
write; the redirect flag is therefore the commit point of a merge.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from .audit import AuditEmitter, MergeSummary, utc_now
from .contracts import AlreadyAppliedOutcome, AppliedOutcome, FailedOutcome
from .errors import (
    AuditWriteError,
    NotFoundError,
    TransientStoreError,
    UnknownPurchaseError,
    UnmigratedPurchaseError,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from membermerge.domain.ports import MergeStores

    from .contracts import MergeOutcome
    from .plan import MergePlan

log = logging.getLogger(__name__)


class MergeStep(StrEnum):
    PRECONDITIONS = "preconditions"
    PROFILE = "profile"
    PURCHASES = "purchases"
    HISTORY = "history"
    REDIRECT = "redirect"
    AUDIT = "audit"


class MergeExecutor:
    """Run merge plans step by step, without internal retries or rollback."""

    def __init__(
        self,
        stores: MergeStores,
        *,
        audit: AuditEmitter | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._members = stores.members
        self._purchases = stores.purchases
        self._history = stores.history
        self._audit = audit or AuditEmitter(stores.audit, clock=clock)
        self._running: set[asyncio.Task[MergeOutcome]] = set()

    async def execute(self, plan: MergePlan) -> MergeOutcome:
        """Apply ``plan`` and report how far it got.

        Once called, the merge runs to an outcome even if the caller is
        cancelled; a half-applied plan would otherwise wait for a manual retry.
        """

        task = asyncio.ensure_future(self._execute(plan))
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return await asyncio.shield(task)

    async def _execute(self, plan: MergePlan) -> MergeOutcome:
        step = MergeStep.PRECONDITIONS
        try:
            survivor = await self._members.get_profile(plan.survivor_id)
            loser = await self._members.get_profile(plan.loser_id)
            if loser.is_redirect:
                if loser.merged_into != plan.survivor_id:
                    log.warning(
                        "Member %s already redirects to %s, not to %s",
                        loser.id,
                        loser.merged_into,
                        plan.survivor_id,
                    )
                log.info("Merge %s -> %s already applied", plan.loser_id, plan.survivor_id)
                return AlreadyAppliedOutcome(
                    survivor_id=plan.survivor_id,
                    loser_id=plan.loser_id,
                    merged_into=loser.merged_into,
                )
            if survivor.is_redirect:
                return self._failed(
                    plan,
                    step,
                    f"survivor {survivor.id} is itself merged into {survivor.merged_into}",
                )

            step = MergeStep.PROFILE
            await self._members.write_profile(plan.survivor_id, plan.profile)
            log.debug("Wrote resolved profile onto %s", plan.survivor_id)

            step = MergeStep.PURCHASES
            moved = await self._transfer_purchases(plan)
            log.info(
                "Moved %d of %d purchases from %s to %s",
                moved,
                len(plan.transfer_purchase_ids),
                plan.loser_id,
                plan.survivor_id,
            )

            step = MergeStep.HISTORY
            history_total = await self._copy_history(plan)

            step = MergeStep.REDIRECT
            await self._clear_leftover_purchases(plan)
            flipped = await self._members.mark_redirect(
                plan.loser_id,
                plan.survivor_id,
                merged_by=plan.operator_id,
            )
            if not flipped:
                current = await self._members.get_profile(plan.loser_id)
                log.warning(
                    "Concurrent merge converted %s first (redirects to %s)",
                    plan.loser_id,
                    current.merged_into,
                )
                return AlreadyAppliedOutcome(
                    survivor_id=plan.survivor_id,
                    loser_id=plan.loser_id,
                    merged_into=current.merged_into,
                )
            log.info("Member %s now redirects to %s", plan.loser_id, plan.survivor_id)
        except NotFoundError as exc:
            return self._failed(plan, step, str(exc))
        except UnmigratedPurchaseError as exc:
            return self._failed(plan, step, str(exc))
        except TransientStoreError as exc:
            return self._failed(plan, step, str(exc), retryable=True)

        step = MergeStep.AUDIT
        try:
            entry = await self._audit.record(
                plan.survivor_id,
                plan.loser_id,
                MergeSummary.from_plan(plan, history_copied=history_total),
            )
        except AuditWriteError as exc:
            log.error(  # noqa: TRY400
                "Merge %s -> %s applied but audit is missing: %s",
                plan.loser_id,
                plan.survivor_id,
                exc,
            )
            return FailedOutcome(
                survivor_id=plan.survivor_id,
                loser_id=plan.loser_id,
                reason=str(exc),
                step=step.value,
                data_merged=True,
                audit_missing=True,
            )

        return AppliedOutcome(
            survivor_id=plan.survivor_id,
            loser_id=plan.loser_id,
            purchases_transferred=len(plan.transfer_purchase_ids),
            history_copied=history_total,
            audit_id=entry.id,
        )

    async def _transfer_purchases(self, plan: MergePlan) -> int:
        loser_purchases = {
            purchase.id: purchase for purchase in await self._purchases.list_by_owner(plan.loser_id)
        }
        moved = 0
        for purchase in plan.transfer_purchases:
            current = loser_purchases.get(purchase.id)
            if current is not None and current.payment_ref != purchase.payment_ref:
                current = None
            if await self._purchases.exists_by_payment_ref(plan.survivor_id, purchase.payment_ref):
                if current is not None:
                    # interrupted re-parent: the survivor holds the copy, drop the original
                    await self._purchases.remove(plan.loser_id, purchase.id)
                    moved += 1
                continue
            if current is None:
                raise UnknownPurchaseError(purchase.id, plan.loser_id)
            try:
                await self._purchases.reparent(purchase.id, plan.loser_id, plan.survivor_id)
            except UnknownPurchaseError:
                if not await self._purchases.exists_by_payment_ref(
                    plan.survivor_id, purchase.payment_ref
                ):
                    raise
                log.debug("Purchase %s was moved by a concurrent merge", purchase.payment_ref)
                continue
            moved += 1
        return moved

    async def _copy_history(self, plan: MergePlan) -> int:
        pending = {entry.id: entry for entry in plan.history_to_copy}
        for entry in await self._history.list_by_owner(plan.loser_id):
            pending.setdefault(entry.id, entry)
        copied_ids = {
            entry.origin_id
            for entry in await self._history.list_by_owner(plan.survivor_id)
            if entry.migrated_from == plan.loser_id
        }

        written = 0
        for entry in sorted(pending.values(), key=lambda item: (item.timestamp, item.id)):
            if entry.id in copied_ids:
                continue
            await self._history.copy(entry, plan.survivor_id)
            written += 1
        log.info(
            "Copied %d history entries from %s to %s (%d already present)",
            written,
            plan.loser_id,
            plan.survivor_id,
            len(pending) - written,
        )
        return len(pending)

    async def _clear_leftover_purchases(self, plan: MergePlan) -> None:
        leftovers = await self._purchases.list_by_owner(plan.loser_id)
        if not leftovers:
            return
        held_refs = {
            purchase.payment_ref
            for purchase in await self._purchases.list_by_owner(plan.survivor_id)
        }
        unmigrated = sorted(
            purchase.id for purchase in leftovers if purchase.payment_ref not in held_refs
        )
        if unmigrated:
            raise UnmigratedPurchaseError(unmigrated[0], plan.loser_id)
        for purchase in leftovers:
            await self._purchases.remove(plan.loser_id, purchase.id)

    def _failed(
        self,
        plan: MergePlan,
        step: MergeStep,
        reason: str,
        *,
        retryable: bool = False,
    ) -> FailedOutcome:
        log.warning(
            "Merge %s -> %s stopped at %s: %s",
            plan.loser_id,
            plan.survivor_id,
            step.value,
            reason,
        )
        return FailedOutcome(
            survivor_id=plan.survivor_id,
            loser_id=plan.loser_id,
            reason=reason,
            step=step.value,
            retryable=retryable,
        )
