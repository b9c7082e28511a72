"""Paid transactions owned by a member."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal

from membermerge.domain.model.entity import new_id


@dataclass(frozen=True, slots=True, kw_only=True)
class Purchase:
    """Immutable record of a paid transaction.

    ``payment_ref`` is the external payment reference and is unique system-wide.
    Re-parenting changes ``owner_id`` and stamps ``merged_from``/``merged_at``;
    reference, amount and timestamp never change.
    """

    owner_id: str
    payment_ref: str
    amount: Decimal
    purchased_at: datetime
    id: str = field(default_factory=new_id)
    type: str = "membership"
    source: str = "platform"
    item_name: str = ""
    payment_status: str = "paid"
    merged_from: str | None = None
    merged_at: datetime | None = None

    def reparented(
        self, to_owner: str, *, at: datetime, purchase_id: str | None = None
    ) -> Purchase:
        """Move to ``to_owner``, under ``purchase_id`` when the original id is taken there."""
        if to_owner == self.owner_id:
            return self
        return replace(
            self,
            id=purchase_id or self.id,
            owner_id=to_owner,
            merged_from=self.owner_id,
            merged_at=at,
        )
