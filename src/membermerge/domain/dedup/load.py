"""Load a member with everything a merge review needs."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from membermerge.domain.model import HistoryKind

from .contracts import FullRecord

if TYPE_CHECKING:
    from membermerge.domain.ports import HistoryStore, MemberRegistry, PurchaseStore

log = logging.getLogger(__name__)


class FullRecordLoader:
    def __init__(
        self,
        registry: MemberRegistry,
        purchases: PurchaseStore,
        history: HistoryStore,
    ) -> None:
        self._registry = registry
        self._purchases = purchases
        self._history = history

    async def load_full_record(self, member_id: str) -> FullRecord:
        """Return the member with purchases and both histories, newest first.

        Raises ``MemberNotFoundError`` when the member does not exist. If any
        sub-collection read fails, the whole call fails; a partial record is
        never returned.
        """

        member = await self._registry.get_profile(member_id)
        purchases, history = await asyncio.gather(
            self._purchases.list_by_owner(member_id),
            self._history.list_by_owner(member_id),
        )
        ordered_history = sorted(
            history,
            key=lambda entry: (entry.timestamp, entry.id),
            reverse=True,
        )
        log.debug(
            "Loaded member %s: %d purchases, %d history entries",
            member_id,
            len(purchases),
            len(ordered_history),
        )
        return FullRecord(
            member=member,
            purchases=tuple(
                sorted(
                    purchases,
                    key=lambda purchase: (purchase.purchased_at, purchase.id),
                    reverse=True,
                )
            ),
            action_history=tuple(
                entry for entry in ordered_history if entry.kind is HistoryKind.ACTION
            ),
            membership_history=tuple(
                entry for entry in ordered_history if entry.kind is HistoryKind.MEMBERSHIP
            ),
        )
