"""Orchestrator for the dedup subsystem.

The engine composes the stages (detect, load, resolve, execute) and owns none
of the storage. Presentation layers talk to it through ``MergeRequest`` and
the ``MergeOutcome`` union.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from membermerge.domain.model import Side

from .contracts import AlreadyAppliedOutcome, FailedOutcome
from .detect import DuplicateDetector, search_groups
from .errors import NotFoundError, TransientStoreError
from .execute import MergeExecutor, MergeStep
from .load import FullRecordLoader
from .resolve import build_plan

if TYPE_CHECKING:
    from membermerge.config import MergeConfig
    from membermerge.domain.ports import MergeStores

    from .contracts import DuplicateGroup, FullRecord, MergeOutcome, MergeRequest
    from .plan import MergePlan
    from .resolve import BuildMergePlan

log = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeEngine:
    """Run detection, review loading and supervised merges."""

    detector: DuplicateDetector
    loader: FullRecordLoader
    executor: MergeExecutor
    resolve: BuildMergePlan = build_plan

    @classmethod
    def from_stores(cls, stores: MergeStores, config: MergeConfig) -> MergeEngine:
        return cls(
            detector=DuplicateDetector(
                stores.members,
                ignored_identity_markers=config.ignored_identity_markers,
            ),
            loader=FullRecordLoader(stores.members, stores.purchases, stores.history),
            executor=MergeExecutor(stores),
        )

    async def detect(self, term: str | None = None) -> list[DuplicateGroup]:
        return search_groups(await self.detector.detect_groups(), term)

    async def review(self, member_a_id: str, member_b_id: str) -> tuple[FullRecord, FullRecord]:
        """Load both candidates side by side."""

        record_a, record_b = await asyncio.gather(
            self.loader.load_full_record(member_a_id),
            self.loader.load_full_record(member_b_id),
        )
        return record_a, record_b

    def plan(self, record_a: FullRecord, record_b: FullRecord, request: MergeRequest) -> MergePlan:
        return self.resolve(
            record_a,
            record_b,
            field_choices=request.field_choices,
            survivor=request.survivor,
            selection_a=request.selection_a,
            selection_b=request.selection_b,
            operator_id=request.operator_id,
        )

    async def merge(self, request: MergeRequest) -> MergeOutcome:
        """Reload both accounts, resolve the operator's decisions and apply them.

        Selection errors (``IncompletePurchaseSelectionError``,
        ``UnknownPurchaseError``) propagate: they mean the request must be
        corrected, not retried. Store problems become ``FailedOutcome``.
        """

        survivor_id = request.member_id(request.survivor)
        loser_id = request.member_id(request.survivor.other)
        try:
            record_a, record_b = await self.review(request.member_a_id, request.member_b_id)
        except NotFoundError as exc:
            return _load_failure(survivor_id, loser_id, str(exc), retryable=False)
        except TransientStoreError as exc:
            return _load_failure(survivor_id, loser_id, str(exc), retryable=True)

        records = {Side.A: record_a, Side.B: record_b}
        loser = records[request.survivor.other].member
        if loser.is_redirect:
            log.info("Member %s already redirects to %s", loser.id, loser.merged_into)
            return AlreadyAppliedOutcome(
                survivor_id=survivor_id,
                loser_id=loser_id,
                merged_into=loser.merged_into,
            )

        plan = self.plan(record_a, record_b, request)
        log.info(
            "Merging %s into %s for operator %s",
            plan.loser_id,
            plan.survivor_id,
            plan.operator_id,
        )
        return await self.executor.execute(plan)


def _load_failure(survivor_id: str, loser_id: str, reason: str, *, retryable: bool) -> FailedOutcome:
    log.warning("Could not load %s / %s for merge: %s", survivor_id, loser_id, reason)
    return FailedOutcome(
        survivor_id=survivor_id,
        loser_id=loser_id,
        reason=reason,
        step=MergeStep.PRECONDITIONS.value,
        retryable=retryable,
    )
