"""SQLAlchemy table metadata for the member registry and its collections.

Rows are translated to domain objects by the repositories; the domain model
itself is not mapped. Nested profile blocks are stored as JSON documents.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    PrimaryKeyConstraint,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    orm,
)

from membermerge.domain.model import HistoryKind

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class JSONDocument(TypeDecorator[dict[str, Any]]):
    """Nested document stored as a JSON string."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, sort_keys=True, default=str)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any] | None:
        _ = dialect
        if value is None:
            return None
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return {}
        return cast(dict[str, Any], loaded)


class Cents(TypeDecorator[Decimal]):
    """Money amount stored as an integer number of cents."""

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> int | None:
        _ = dialect
        if value is None:
            return None
        return int((Decimal(value) * 100).to_integral_value())

    def process_result_value(self, value: int | None, dialect: Dialect) -> Decimal | None:
        _ = dialect
        if value is None:
            return None
        return Decimal(value).scaleb(-2)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

member_table = Table(
    "member",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column("email", String, nullable=False),
    Column("first_name", String, nullable=False, default=""),
    Column("last_name", String, nullable=False, default=""),
    Column("phone", String, nullable=True),
    Column("postal_code", String, nullable=True),
    Column("birth_date", Date, nullable=True),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("membership", JSONDocument, nullable=True),
    Column("loyalty_points", Integer, nullable=False, default=0),
    Column("status", JSONDocument, nullable=False),
    Column("registration", JSONDocument, nullable=False),
    Column("extended_profile", JSONDocument, nullable=False),
    Column("merged", Boolean, nullable=False, default=False),
    Column("merged_into", String, nullable=True),
    Column("merged_at", UTCDateTime(), nullable=True),
    Column("merged_by", String, nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
    Index("ix_member_email", "email"),
)

purchase_table = Table(
    "purchase",
    mapper_registry.metadata,
    Column("owner_id", String, nullable=False),
    Column("id", String, nullable=False),
    Column("payment_ref", String, nullable=False),
    Column("amount", Cents, nullable=False),
    Column("purchased_at", UTCDateTime(), nullable=False),
    Column("type", String, nullable=False),
    Column("source", String, nullable=False),
    Column("item_name", String, nullable=False, default=""),
    Column("payment_status", String, nullable=False),
    Column("merged_from", String, nullable=True),
    Column("merged_at", UTCDateTime(), nullable=True),
    PrimaryKeyConstraint("owner_id", "id"),
    UniqueConstraint("payment_ref"),
)

history_entry_table = Table(
    "history_entry",
    mapper_registry.metadata,
    Column("owner_id", String, nullable=False),
    Column("id", String, nullable=False),
    Column("kind", Enum(HistoryKind, native_enum=False), nullable=False),
    Column("entry_type", String, nullable=False),
    Column("timestamp", UTCDateTime(), nullable=False),
    Column("actor", String, nullable=True),
    Column("details", JSONDocument, nullable=False),
    Column("migrated_from", String, nullable=True),
    Column("migrated_at", UTCDateTime(), nullable=True),
    Column("origin_id", String, nullable=True),
    PrimaryKeyConstraint("owner_id", "id"),
)

merge_audit_table = Table(
    "merge_audit",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column("survivor_id", String, nullable=False),
    Column("loser_id", String, nullable=False),
    Column("operator_id", String, nullable=False),
    Column("survivor_side", String(1), nullable=False),
    Column("field_choices", JSONDocument, nullable=False),
    Column("field_sources", JSONDocument, nullable=False),
    Column("purchases_kept", Integer, nullable=False),
    Column("purchases_transferred", Integer, nullable=False),
    Column("history_copied", Integer, nullable=False),
    Column("survivor_before", JSONDocument, nullable=False),
    Column("loser_before", JSONDocument, nullable=False),
    Column("survivor_after", JSONDocument, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_merge_audit_loser_id", "loser_id"),
)


async def create_all_tables(engine: AsyncEngine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    async with engine.begin() as connection:
        await connection.run_sync(mapper_registry.metadata.create_all)
