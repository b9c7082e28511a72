from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from membermerge.domain.model import MemberProfile, MemberSummary, Side
from tests.helpers.members import (
    make_history,
    make_member,
    make_membership,
    make_profile,
    make_purchase,
)

AT = datetime(2024, 6, 1, 10, 30, tzinfo=UTC)


def test_side_other() -> None:
    assert Side.A.other is Side.B
    assert Side.B.other is Side.A


def test_redirect_to_turns_member_into_stub() -> None:
    member = make_member(
        "B",
        loyalty_points=40,
        tags=("student",),
        membership=make_membership(),
    )

    member.redirect_to("A", merged_by="op-1", at=AT)

    assert member.is_redirect
    assert member.merged_into == "A"
    assert member.merged_by == "op-1"
    assert member.merged_at == AT
    assert member.profile.loyalty_points == 0
    assert member.profile.membership is None
    assert member.profile.status.tags == ("student",)
    assert member.profile.status.account_blocked_reason == "Merged into A"
    assert member.profile.status.blocked_at == AT


def test_redirect_to_rejects_self_and_repeat() -> None:
    member = make_member("B")

    with pytest.raises(ValueError, match="itself"):
        member.redirect_to("B", merged_by="op", at=AT)

    member.redirect_to("A", merged_by="op", at=AT)
    with pytest.raises(ValueError, match="already merged"):
        member.redirect_to("C", merged_by="op", at=AT)


def test_profile_document_round_trip_keeps_nested_blocks() -> None:
    profile = make_profile(
        birth_date=date(1990, 5, 4),
        tags=("vip", "coach"),
        account_blocked=True,
        blocked_reason="unpaid",
        membership=make_membership("plan-annual"),
        registration_source="front-desk",
        extended_profile={"emergency_contact": "Bob"},
    )

    assert MemberProfile.from_document(profile.to_document()) == profile


def test_summary_reflects_profile_and_redirect_state() -> None:
    member = make_member("A", email="a@b.c", loyalty_points=12, membership=make_membership())
    member.redirect_to("Z", merged_by="op", at=AT)

    summary = MemberSummary.of(member)

    assert summary.email == "a@b.c"
    assert summary.merged is True
    assert summary.card_blocked is True
    assert summary.membership_status is None


def test_reparented_purchase_keeps_reference_and_marks_origin() -> None:
    purchase = make_purchase("B", "p2", amount="12.50")

    moved = purchase.reparented("A", at=AT)

    assert moved.owner_id == "A"
    assert moved.merged_from == "B"
    assert moved.merged_at == AT
    assert (moved.id, moved.payment_ref, moved.amount, moved.purchased_at) == (
        purchase.id,
        purchase.payment_ref,
        purchase.amount,
        purchase.purchased_at,
    )
    assert purchase.reparented("B", at=AT) is purchase


def test_migrated_history_copy_keeps_id_and_tags_origin() -> None:
    entry = make_history("B", "h1", details={"door": "north"})

    copied = entry.migrated_copy("A", at=AT)

    assert copied.id == "h1"
    assert copied.owner_id == "A"
    assert copied.migrated_from == "B"
    assert copied.migrated_at == AT
    assert copied.details == {"door": "north"}
    assert copied.origin_id == "h1"
    assert copied.is_copy_of(entry)
    assert not entry.is_migrated
    assert copied.is_migrated


def test_reparented_purchase_can_take_a_new_id() -> None:
    purchase = make_purchase("B", "p1", payment_ref="ref-B")

    moved = purchase.reparented("A", at=AT, purchase_id="p1-b")

    assert (moved.id, moved.owner_id, moved.payment_ref) == ("p1-b", "A", "ref-B")


def test_history_copy_under_new_id_still_points_at_its_origin() -> None:
    entry = make_history("B", "h1")
    unrelated = make_history("A", "h1")

    copied = entry.migrated_copy("A", at=AT, entry_id="h1-b")

    assert copied.id == "h1-b"
    assert copied.is_copy_of(entry)
    assert not unrelated.is_copy_of(entry)
