"""Append-only history entries (action log and membership log)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from membermerge.domain.model.entity import new_id
from membermerge.domain.model.enums import HistoryKind


@dataclass(frozen=True, slots=True, kw_only=True)
class HistoryEntry:
    owner_id: str
    kind: HistoryKind
    entry_type: str
    timestamp: datetime
    id: str = field(default_factory=new_id)
    actor: str | None = None
    details: dict[str, Any] = field(default_factory=dict[str, Any])
    migrated_from: str | None = None
    migrated_at: datetime | None = None
    origin_id: str | None = None

    @property
    def is_migrated(self) -> bool:
        return self.migrated_from is not None

    def is_copy_of(self, entry: HistoryEntry) -> bool:
        return self.migrated_from == entry.owner_id and self.origin_id == entry.id

    def migrated_copy(
        self, to_owner: str, *, at: datetime, entry_id: str | None = None
    ) -> HistoryEntry:
        """Copy for ``to_owner`` tagged with the owner and id it was copied from.

        The copy keeps the entry id unless ``entry_id`` is given, which callers
        do when ``to_owner`` already holds an entry with that id.
        """
        return replace(
            self,
            id=entry_id or self.id,
            owner_id=to_owner,
            migrated_from=self.owner_id,
            migrated_at=at,
            origin_id=self.id,
        )
