"""SQLAlchemy adapter package for membermerge."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry
from .repositories import (
    SqlAlchemyAuditLog,
    SqlAlchemyHistoryStore,
    SqlAlchemyMemberRegistry,
    SqlAlchemyPurchaseStore,
)
from .session import (
    StartupError,
    build_merge_stores,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAuditLog",
    "SqlAlchemyHistoryStore",
    "SqlAlchemyMemberRegistry",
    "SqlAlchemyPurchaseStore",
    "StartupError",
    "build_merge_stores",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "startup",
]
