from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from membermerge.domain.dedup import AuditEmitter, AuditWriteError, MergeSummary, build_plan
from membermerge.domain.model import Side
from tests.helpers.members import make_history, make_member, make_purchase, make_record

if TYPE_CHECKING:
    from tests.support.memory_store import InMemoryDocumentStore

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _summary() -> MergeSummary:
    record_a = make_record(
        make_member("A", first_name="Alice"),
        purchases=[make_purchase("A", "p1")],
        history=[make_history("A")],
    )
    record_b = make_record(
        make_member("B", first_name="Alicia"),
        purchases=[make_purchase("B", "p2"), make_purchase("B", "p3")],
        history=[make_history("B"), make_history("B")],
    )
    plan = build_plan(
        record_a,
        record_b,
        survivor=Side.A,
        selection_a={"p1"},
        selection_b={"p2", "p3"},
        operator_id="op-7",
    )
    return MergeSummary.from_plan(plan)


def test_summary_from_plan_counts_and_snapshots() -> None:
    summary = _summary()

    assert summary.operator_id == "op-7"
    assert summary.survivor_side == "A"
    assert summary.purchases_kept == 1
    assert summary.purchases_transferred == 2
    assert summary.history_copied == 2
    assert summary.survivor_before["first_name"] == "Alice"
    assert summary.loser_before["first_name"] == "Alicia"
    assert summary.field_sources["email"] == "A"


async def test_record_appends_entry_with_clock_timestamp(
    memory_store: InMemoryDocumentStore,
) -> None:
    emitter = AuditEmitter(memory_store.stores().audit, clock=lambda: FIXED_NOW)

    entry = await emitter.record("A", "B", _summary())

    assert memory_store.audit_entries == [entry]
    assert entry.created_at == FIXED_NOW
    assert entry.survivor_id == "A"
    assert entry.loser_id == "B"
    assert entry.purchases_transferred == 2


async def test_record_raises_when_log_rejects(memory_store: InMemoryDocumentStore) -> None:
    memory_store.audit_accepts = False
    emitter = AuditEmitter(memory_store.stores().audit)

    with pytest.raises(AuditWriteError, match="rejected"):
        await emitter.record("A", "B", _summary())


async def test_record_wraps_store_errors(memory_store: InMemoryDocumentStore) -> None:
    memory_store.fail("audit.append")
    emitter = AuditEmitter(memory_store.stores().audit)

    with pytest.raises(AuditWriteError):
        await emitter.record("A", "B", _summary())
    assert memory_store.audit_entries == []
