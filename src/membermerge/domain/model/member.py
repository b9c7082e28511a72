"""Member accounts and the value objects making up their profile."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeAlias

from membermerge.domain.model.entity import Entity
from membermerge.domain.model.enums import MembershipStatus, MembershipType

Document: TypeAlias = dict[str, Any]


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: object) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _parse_date(value: object) -> date | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


@dataclass(frozen=True, slots=True, kw_only=True)
class MembershipSnapshot:
    """Current plan of a member as shown on the account."""

    plan_id: str
    plan_name: str = ""
    type: MembershipType = MembershipType.MONTHLY
    status: MembershipStatus = MembershipStatus.PENDING
    price: Decimal = Decimal(0)
    start_date: datetime | None = None
    expiry_date: datetime | None = None

    def to_document(self) -> Document:
        return {
            "plan_id": self.plan_id,
            "plan_name": self.plan_name,
            "type": self.type.value,
            "status": self.status.value,
            "price": str(self.price),
            "start_date": _iso(self.start_date),
            "expiry_date": _iso(self.expiry_date),
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> MembershipSnapshot:
        return cls(
            plan_id=str(document["plan_id"]),
            plan_name=str(document.get("plan_name") or ""),
            type=MembershipType(document.get("type", MembershipType.MONTHLY)),
            status=MembershipStatus(document.get("status", MembershipStatus.PENDING)),
            price=Decimal(str(document.get("price", "0"))),
            start_date=_parse_datetime(document.get("start_date")),
            expiry_date=_parse_datetime(document.get("expiry_date")),
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class StatusBlock:
    """Moderation state: tags plus the account and access-card blocks."""

    tags: tuple[str, ...] = ()
    account_blocked: bool = False
    account_blocked_reason: str | None = None
    card_blocked: bool = False
    card_blocked_reason: str | None = None
    blocked_at: datetime | None = None

    def to_document(self) -> Document:
        return {
            "tags": list(self.tags),
            "account_blocked": self.account_blocked,
            "account_blocked_reason": self.account_blocked_reason,
            "card_blocked": self.card_blocked,
            "card_blocked_reason": self.card_blocked_reason,
            "blocked_at": _iso(self.blocked_at),
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> StatusBlock:
        return cls(
            tags=tuple(str(tag) for tag in document.get("tags") or ()),
            account_blocked=bool(document.get("account_blocked", False)),
            account_blocked_reason=document.get("account_blocked_reason"),
            card_blocked=bool(document.get("card_blocked", False)),
            card_blocked_reason=document.get("card_blocked_reason"),
            blocked_at=_parse_datetime(document.get("blocked_at")),
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class Registration:
    """How and by whom the account was created."""

    source: str = "platform"
    created_by: str | None = None
    registered_at: datetime | None = None

    def to_document(self) -> Document:
        return {
            "source": self.source,
            "created_by": self.created_by,
            "registered_at": _iso(self.registered_at),
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> Registration:
        return cls(
            source=str(document.get("source") or "platform"),
            created_by=document.get("created_by"),
            registered_at=_parse_datetime(document.get("registered_at")),
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class MemberProfile:
    """Mergeable content of a member account (everything but identity and redirect state)."""

    email: str
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    postal_code: str | None = None
    birth_date: date | None = None
    created_at: datetime | None = None
    membership: MembershipSnapshot | None = None
    loyalty_points: int = 0
    status: StatusBlock = field(default_factory=StatusBlock)
    registration: Registration = field(default_factory=Registration)
    extended_profile: Mapping[str, Any] = field(default_factory=dict[str, Any])

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def as_redirect_stub(self, survivor_id: str, *, at: datetime) -> MemberProfile:
        """Return the emptied, blocked profile a merged-away account keeps."""

        reason = f"Merged into {survivor_id}"
        return replace(
            self,
            membership=None,
            loyalty_points=0,
            status=replace(
                self.status,
                account_blocked=True,
                account_blocked_reason=reason,
                card_blocked=True,
                card_blocked_reason=reason,
                blocked_at=at,
            ),
        )

    def to_document(self) -> Document:
        return {
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "postal_code": self.postal_code,
            "birth_date": _iso(self.birth_date),
            "created_at": _iso(self.created_at),
            "membership": self.membership.to_document() if self.membership else None,
            "loyalty_points": self.loyalty_points,
            "status": self.status.to_document(),
            "registration": self.registration.to_document(),
            "extended_profile": dict(self.extended_profile),
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> MemberProfile:
        membership = document.get("membership")
        return cls(
            email=str(document.get("email") or ""),
            first_name=str(document.get("first_name") or ""),
            last_name=str(document.get("last_name") or ""),
            phone=document.get("phone"),
            postal_code=document.get("postal_code"),
            birth_date=_parse_date(document.get("birth_date")),
            created_at=_parse_datetime(document.get("created_at")),
            membership=MembershipSnapshot.from_document(membership) if membership else None,
            loyalty_points=int(document.get("loyalty_points") or 0),
            status=StatusBlock.from_document(document.get("status") or {}),
            registration=Registration.from_document(document.get("registration") or {}),
            extended_profile=dict(document.get("extended_profile") or {}),
        )


@dataclass(eq=False, kw_only=True)
class Member(Entity):
    """A person's account: profile plus redirect state.

    A member with ``merged`` set is a redirect stub; ``merged_into`` names the
    account it was collapsed into.
    """

    profile: MemberProfile
    merged: bool = False
    merged_into: str | None = None
    merged_at: datetime | None = None
    merged_by: str | None = None
    updated_at: datetime | None = None

    @property
    def email(self) -> str:
        return self.profile.email

    @property
    def created_at(self) -> datetime | None:
        return self.profile.created_at

    @property
    def is_redirect(self) -> bool:
        return self.merged

    def redirect_to(self, survivor_id: str, *, merged_by: str, at: datetime) -> None:
        """Turn this account into a redirect stub pointing at ``survivor_id``."""
        if survivor_id == self.id:
            raise ValueError("member cannot redirect to itself")
        if self.merged:
            raise ValueError(f"member {self.id} is already merged into {self.merged_into}")
        self.profile = self.profile.as_redirect_stub(survivor_id, at=at)
        self.merged = True
        self.merged_into = survivor_id
        self.merged_at = at
        self.merged_by = merged_by
        self.updated_at = at


@dataclass(frozen=True, slots=True, kw_only=True)
class MemberSummary:
    """Lightweight listing view used by duplicate detection."""

    id: str
    email: str
    first_name: str
    last_name: str
    created_at: datetime | None
    registration_source: str
    membership_status: MembershipStatus | None = None
    loyalty_points: int = 0
    tags: tuple[str, ...] = ()
    account_blocked: bool = False
    card_blocked: bool = False
    merged: bool = False

    @classmethod
    def of(cls, member: Member) -> MemberSummary:
        profile = member.profile
        return cls(
            id=member.id,
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            created_at=profile.created_at,
            registration_source=profile.registration.source,
            membership_status=profile.membership.status if profile.membership else None,
            loyalty_points=profile.loyalty_points,
            tags=profile.status.tags,
            account_blocked=profile.status.account_blocked,
            card_blocked=profile.status.card_blocked,
            merged=member.merged,
        )
