"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Side(StrEnum):
    """One of the two accounts under review.

    Used both for the survivor choice and for every per-field source choice.
    """

    A = "A"
    B = "B"

    @property
    def other(self) -> Side:
        return Side.B if self is Side.A else Side.A


class MergeField(StrEnum):
    """Profile fields the operator resolves one by one."""

    EMAIL = "email"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    PHONE = "phone"
    POSTAL_CODE = "postal_code"
    BIRTH_DATE = "birth_date"
    CREATED_AT = "created_at"
    MEMBERSHIP = "membership"
    LOYALTY_POINTS = "loyalty_points"
    TAGS = "tags"
    REGISTRATION_SOURCE = "registration_source"


class MembershipType(StrEnum):
    MONTHLY = "monthly"
    ANNUAL = "annual"
    HONORARY = "honorary"


class MembershipStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    EXPIRED = "expired"


class HistoryKind(StrEnum):
    ACTION = "action"
    MEMBERSHIP = "membership"
