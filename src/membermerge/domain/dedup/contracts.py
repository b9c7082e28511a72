"""Shared merge contract components.

This module holds the objects passed between the detection, review and merge
stages, and the outcome union a merge returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Literal, TypeAlias

from membermerge.domain.model import HistoryKind, MergeField, Side

if TYPE_CHECKING:
    from membermerge.domain.model import HistoryEntry, Member, MemberSummary, Purchase


@dataclass(frozen=True, slots=True)
class DuplicateGroup:
    """Members sharing one normalized identity key, oldest record first."""

    identity_key: str
    members: tuple[MemberSummary, ...]

    def __post_init__(self) -> None:
        if len(self.members) < 2:
            raise ValueError("Duplicate group must contain at least two members")

    @property
    def member_ids(self) -> tuple[str, ...]:
        return tuple(member.id for member in self.members)


@dataclass(frozen=True, slots=True, kw_only=True)
class FullRecord:
    """Complete merge-review snapshot of one member."""

    member: Member
    purchases: tuple[Purchase, ...] = ()
    action_history: tuple[HistoryEntry, ...] = ()
    membership_history: tuple[HistoryEntry, ...] = ()

    @property
    def member_id(self) -> str:
        return self.member.id

    @property
    def purchase_ids(self) -> frozenset[str]:
        return frozenset(purchase.id for purchase in self.purchases)

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return self.action_history + self.membership_history

    def history_of(self, kind: HistoryKind) -> tuple[HistoryEntry, ...]:
        return self.action_history if kind is HistoryKind.ACTION else self.membership_history


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldChoices:
    """Which account (A or B) each resolved field is taken from."""

    email: Side = Side.A
    first_name: Side = Side.A
    last_name: Side = Side.A
    phone: Side = Side.A
    postal_code: Side = Side.A
    birth_date: Side = Side.A
    created_at: Side = Side.A
    membership: Side = Side.A
    loyalty_points: Side = Side.A
    tags: Side = Side.A
    registration_source: Side = Side.A

    @classmethod
    def all(cls, side: Side) -> FieldChoices:
        """Take every field from ``side``."""
        return cls(**{merge_field.value: side for merge_field in MergeField})

    def source_for(self, merge_field: MergeField) -> Side:
        return getattr(self, merge_field.value)

    def as_dict(self) -> dict[str, str]:
        return {merge_field.value: self.source_for(merge_field).value for merge_field in MergeField}


@dataclass(frozen=True, slots=True, kw_only=True)
class MergeRequest:
    """Operator decisions for one pair of accounts, as collected by the review screen."""

    member_a_id: str
    member_b_id: str
    survivor: Side
    operator_id: str
    field_choices: FieldChoices = field(default_factory=FieldChoices)
    selection_a: frozenset[str] = frozenset()
    selection_b: frozenset[str] = frozenset()

    def member_id(self, side: Side) -> str:
        return self.member_a_id if side is Side.A else self.member_b_id


class MergeStatus(StrEnum):
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    FAILED = "failed"


@dataclass(frozen=True, slots=True, kw_only=True)
class AppliedOutcome:
    """The merge ran to completion, audit included."""

    survivor_id: str
    loser_id: str
    purchases_transferred: int = 0
    history_copied: int = 0
    audit_id: str | None = None
    status: Literal[MergeStatus.APPLIED] = MergeStatus.APPLIED

    def describe(self) -> str:
        return f"Merged {self.loser_id} into {self.survivor_id}"


@dataclass(frozen=True, slots=True, kw_only=True)
class AlreadyAppliedOutcome:
    """The losing account was already a redirect stub; nothing was written."""

    survivor_id: str
    loser_id: str
    merged_into: str | None = None
    status: Literal[MergeStatus.ALREADY_APPLIED] = MergeStatus.ALREADY_APPLIED

    def describe(self) -> str:
        target = self.merged_into or self.survivor_id
        return f"Already merged: {self.loser_id} redirects to {target}"


@dataclass(frozen=True, slots=True, kw_only=True)
class FailedOutcome:
    """The merge stopped; the store holds the state of the last completed step.

    ``retryable`` means re-invoking the same plan may converge. When
    ``audit_missing`` is set the data is merged and only the audit entry needs
    a manual backfill.
    """

    survivor_id: str
    loser_id: str
    reason: str
    step: str
    retryable: bool = False
    data_merged: bool = False
    audit_missing: bool = False
    status: Literal[MergeStatus.FAILED] = MergeStatus.FAILED

    def describe(self) -> str:
        if self.audit_missing:
            return f"Data merged, audit missing: {self.reason}"
        return f"Needs retry ({self.step}): {self.reason}"


MergeOutcome: TypeAlias = AppliedOutcome | AlreadyAppliedOutcome | FailedOutcome
