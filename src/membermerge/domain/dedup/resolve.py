"""Merge resolution: operator decisions to a ``MergePlan``.

Responsibilities of this stage:
- copy every profile field verbatim from the account the operator chose
- partition the purchases of both accounts into keep/transfer
- reject selections that would silently drop a purchase

Out of scope for this stage:
- reading or writing any store
- deciding which fields to take (that is the operator's job)
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Protocol

from membermerge.domain.model import MergeField, Side

from .contracts import FieldChoices
from .errors import IncompletePurchaseSelectionError, UnknownPurchaseError
from .plan import MergePlan

if TYPE_CHECKING:
    from collections.abc import Iterable

    from membermerge.domain.model import MemberProfile, Purchase

    from .contracts import FullRecord


class BuildMergePlan(Protocol):
    """Turn two loaded records and the operator's decisions into a plan."""

    def __call__(
        self,
        record_a: FullRecord,
        record_b: FullRecord,
        *,
        field_choices: FieldChoices,
        survivor: Side,
        selection_a: Iterable[str],
        selection_b: Iterable[str],
        operator_id: str,
    ) -> MergePlan: ...


def build_plan(
    record_a: FullRecord,
    record_b: FullRecord,
    *,
    field_choices: FieldChoices | None = None,
    survivor: Side,
    selection_a: Iterable[str],
    selection_b: Iterable[str],
    operator_id: str,
) -> MergePlan:
    """Resolve the decisions for one pair of accounts.

    Purchase ids are only unique per account; two purchases are the same
    transaction when they share a payment reference. Partition:
    - selected on the survivor side -> keep
    - selected on the loser side, reference already held by the survivor -> keep
      the survivor's copy
    - selected on the loser side otherwise -> transfer, even if the survivor
      holds a different purchase under the same id
    - transaction selected on neither side -> ``IncompletePurchaseSelectionError``
    """

    if record_a.member_id == record_b.member_id:
        raise ValueError("cannot merge a member with itself")

    choices = field_choices or FieldChoices()
    records = {Side.A: record_a, Side.B: record_b}
    selections = {
        Side.A: _checked_selection(record_a, selection_a),
        Side.B: _checked_selection(record_b, selection_b),
    }

    covered_refs = {
        purchase.payment_ref
        for side, record in records.items()
        for purchase in record.purchases
        if purchase.id in selections[side]
    }
    missing = {
        purchase.id
        for record in records.values()
        for purchase in record.purchases
        if purchase.payment_ref not in covered_refs
    }
    if missing:
        raise IncompletePurchaseSelectionError(missing)

    loser = survivor.other
    survivor_record = records[survivor]
    loser_record = records[loser]

    held_by_ref = {purchase.payment_ref: purchase for purchase in survivor_record.purchases}
    keep = {
        purchase.id: purchase
        for purchase in survivor_record.purchases
        if purchase.id in selections[survivor]
    }
    transfer: list[Purchase] = []
    for purchase in loser_record.purchases:
        if purchase.id not in selections[loser]:
            continue
        held = held_by_ref.get(purchase.payment_ref)
        if held is None:
            transfer.append(purchase)
        else:
            keep.setdefault(held.id, held)

    return MergePlan(
        survivor_id=survivor_record.member_id,
        loser_id=loser_record.member_id,
        survivor_side=survivor,
        operator_id=operator_id,
        profile=resolve_profile(
            {side: record.member.profile for side, record in records.items()},
            field_choices=choices,
            survivor=survivor,
        ),
        field_choices=choices,
        field_sources={
            merge_field: records[choices.source_for(merge_field)].member_id
            for merge_field in MergeField
        },
        keep_purchases=tuple(sorted(keep.values(), key=lambda purchase: purchase.id)),
        transfer_purchases=tuple(sorted(transfer, key=lambda purchase: purchase.id)),
        history_to_copy=loser_record.history,
        survivor_before=survivor_record.member.profile,
        loser_before=loser_record.member.profile,
    )


def resolve_profile(
    profiles: dict[Side, MemberProfile],
    *,
    field_choices: FieldChoices,
    survivor: Side,
) -> MemberProfile:
    """Assemble the surviving profile field by field.

    Tags are taken whole from the chosen side. Blocked flags and the extended
    profile always stay with the survivor.
    """

    def pick(merge_field: MergeField) -> MemberProfile:
        return profiles[field_choices.source_for(merge_field)]

    base = profiles[survivor]
    return replace(
        base,
        email=pick(MergeField.EMAIL).email,
        first_name=pick(MergeField.FIRST_NAME).first_name,
        last_name=pick(MergeField.LAST_NAME).last_name,
        phone=pick(MergeField.PHONE).phone,
        postal_code=pick(MergeField.POSTAL_CODE).postal_code,
        birth_date=pick(MergeField.BIRTH_DATE).birth_date,
        created_at=pick(MergeField.CREATED_AT).created_at,
        membership=pick(MergeField.MEMBERSHIP).membership,
        loyalty_points=pick(MergeField.LOYALTY_POINTS).loyalty_points,
        status=replace(base.status, tags=pick(MergeField.TAGS).status.tags),
        registration=pick(MergeField.REGISTRATION_SOURCE).registration,
    )


def _checked_selection(record: FullRecord, selection: Iterable[str]) -> frozenset[str]:
    selected = frozenset(selection)
    unknown = sorted(selected - record.purchase_ids)
    if unknown:
        raise UnknownPurchaseError(unknown[0], record.member_id)
    return selected
