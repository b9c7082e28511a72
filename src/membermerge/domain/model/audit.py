"""Audit records for merge decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from membermerge.domain.model.entity import new_id


@dataclass(eq=False, kw_only=True)
class MergeAuditEntry:
    """Durable trail of one merge: who, when, what was chosen and moved."""

    survivor_id: str
    loser_id: str
    operator_id: str
    survivor_side: str
    field_choices: dict[str, str]
    field_sources: dict[str, str]
    purchases_kept: int
    purchases_transferred: int
    history_copied: int
    survivor_before: dict[str, Any]
    loser_before: dict[str, Any]
    survivor_after: dict[str, Any]
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
