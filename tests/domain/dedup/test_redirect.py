from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from membermerge.domain.dedup import MemberNotFoundError, RedirectLoopError, resolve_active_member
from tests.helpers.members import make_member

if TYPE_CHECKING:
    from tests.support.memory_store import InMemoryDocumentStore

MERGED_AT = datetime(2024, 6, 1, tzinfo=UTC)


def _redirect(store: InMemoryDocumentStore, member_id: str, target: str) -> None:
    store.add_member(make_member(member_id)).redirect_to(target, merged_by="op", at=MERGED_AT)


async def test_active_member_resolves_to_itself(memory_store: InMemoryDocumentStore) -> None:
    memory_store.add_member(make_member("A"))

    member = await resolve_active_member(memory_store.stores().members, "A")

    assert member.id == "A"


async def test_redirect_chain_is_followed(memory_store: InMemoryDocumentStore) -> None:
    memory_store.add_member(make_member("C"))
    _redirect(memory_store, "B", "C")
    _redirect(memory_store, "A", "B")

    member = await resolve_active_member(memory_store.stores().members, "A")

    assert member.id == "C"
    assert not member.is_redirect


async def test_redirect_cycle_raises(memory_store: InMemoryDocumentStore) -> None:
    _redirect(memory_store, "A", "B")
    _redirect(memory_store, "B", "A")

    with pytest.raises(RedirectLoopError) as excinfo:
        await resolve_active_member(memory_store.stores().members, "A")

    assert excinfo.value.chain == ("A", "B", "A")


async def test_redirect_chain_longer_than_bound_raises(
    memory_store: InMemoryDocumentStore,
) -> None:
    memory_store.add_member(make_member("C"))
    _redirect(memory_store, "B", "C")
    _redirect(memory_store, "A", "B")

    with pytest.raises(RedirectLoopError):
        await resolve_active_member(memory_store.stores().members, "A", max_hops=1)


async def test_dangling_redirect_raises_not_found(memory_store: InMemoryDocumentStore) -> None:
    _redirect(memory_store, "A", "gone")

    with pytest.raises(MemberNotFoundError):
        await resolve_active_member(memory_store.stores().members, "A")
