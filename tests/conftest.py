from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from membermerge.adapters.sqlalchemy import (
    build_merge_stores,
    create_all_tables,
    shutdown,
    startup,
)
from tests.support.memory_store import InMemoryDocumentStore

os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession

    from membermerge.domain.ports import MergeStores


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def memory_stores(memory_store: InMemoryDocumentStore) -> MergeStores:
    return memory_store.stores()


@pytest.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'membermerge.db'}")
    await create_all_tables(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(sqlite_engine, expire_on_commit=False)


@pytest.fixture
async def sqlalchemy_stores(sqlite_engine: AsyncEngine) -> AsyncIterator[MergeStores]:
    await startup(engine=sqlite_engine, force=True)
    try:
        yield build_merge_stores()
    finally:
        await shutdown()
