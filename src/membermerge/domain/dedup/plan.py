"""Merge plan: the contract between the resolver and the executor.

A plan is fully resolved. The executor never looks at operator choices again;
it only applies what the plan states, which is what makes re-running it safe.

Purchase ids are only unique per owner, so the plan carries the purchases
themselves and the payment reference is what identifies a transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from membermerge.domain.model import HistoryEntry, MemberProfile, MergeField, Purchase, Side

    from .contracts import FieldChoices


@dataclass(frozen=True, slots=True, kw_only=True)
class MergePlan:
    survivor_id: str
    loser_id: str
    survivor_side: Side
    operator_id: str
    profile: MemberProfile
    field_choices: FieldChoices
    field_sources: dict[MergeField, str]
    keep_purchases: tuple[Purchase, ...]
    transfer_purchases: tuple[Purchase, ...]
    history_to_copy: tuple[HistoryEntry, ...] = ()
    survivor_before: MemberProfile
    loser_before: MemberProfile

    def __post_init__(self) -> None:
        if self.survivor_id == self.loser_id:
            raise ValueError("survivor and loser must be different members")
        misplaced = sorted(
            purchase.id
            for purchases, owner in (
                (self.keep_purchases, self.survivor_id),
                (self.transfer_purchases, self.loser_id),
            )
            for purchase in purchases
            if purchase.owner_id != owner
        )
        if misplaced:
            raise ValueError("purchases planned under the wrong account: " + ", ".join(misplaced))
        overlap = {purchase.payment_ref for purchase in self.keep_purchases} & {
            purchase.payment_ref for purchase in self.transfer_purchases
        }
        if overlap:
            raise ValueError(
                "purchases planned both to keep and to transfer: " + ", ".join(sorted(overlap))
            )

    @property
    def keep_purchase_ids(self) -> frozenset[str]:
        return frozenset(purchase.id for purchase in self.keep_purchases)

    @property
    def transfer_purchase_ids(self) -> frozenset[str]:
        return frozenset(purchase.id for purchase in self.transfer_purchases)

    @property
    def payment_refs(self) -> frozenset[str]:
        return frozenset(
            purchase.payment_ref for purchase in (*self.keep_purchases, *self.transfer_purchases)
        )
