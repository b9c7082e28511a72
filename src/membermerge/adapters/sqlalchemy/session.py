"""Adapter lifecycle: engine, session factory and store construction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from membermerge.adapters.sqlalchemy.mappings import create_all_tables
from membermerge.adapters.sqlalchemy.repositories import (
    SqlAlchemyAuditLog,
    SqlAlchemyHistoryStore,
    SqlAlchemyMemberRegistry,
    SqlAlchemyPurchaseStore,
)
from membermerge.config import get_database_config
from membermerge.domain.ports import MergeStores

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy stores are used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: AsyncEngine | None = None
    _session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine | None:
        return self._engine

    @engine.setter
    def engine(self, value: AsyncEngine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call membermerge.adapters.sqlalchemy."
                "session.startup() before requesting stores."
            )
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


async def startup(
    *,
    engine: AsyncEngine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the async engine, create missing tables and reset the session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )
    if _STATE.engine is not None:
        await _STATE.engine.dispose()

    resolved_engine = engine or create_async_engine(database_uri or get_database_config().uri)
    await create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine


def configured_engine() -> AsyncEngine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


async def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        await _STATE.engine.dispose()
    _STATE.engine = None


def build_merge_stores() -> MergeStores:
    """Stores sharing the adapter's session factory."""

    session_factory = _STATE.session_factory
    return MergeStores(
        members=SqlAlchemyMemberRegistry(session_factory),
        purchases=SqlAlchemyPurchaseStore(session_factory),
        history=SqlAlchemyHistoryStore(session_factory),
        audit=SqlAlchemyAuditLog(session_factory),
    )
