"""Duplicate detection over the member registry.

Read-only: detection takes no locks and may run while merges are in flight.
A group observed mid-merge simply shows up again (or not) on the next call.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import UTC
from typing import TYPE_CHECKING

from membermerge.config.merge import DEFAULT_IGNORED_IDENTITY_MARKERS

from .contracts import DuplicateGroup
from .normalize import is_groupable_identity, normalize_identity

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from membermerge.domain.model import MemberSummary
    from membermerge.domain.ports import MemberRegistry

log = logging.getLogger(__name__)


class DuplicateDetector:
    """Group registry members sharing a normalized identity key."""

    def __init__(
        self,
        registry: MemberRegistry,
        *,
        ignored_identity_markers: Iterable[str] = DEFAULT_IGNORED_IDENTITY_MARKERS,
    ) -> None:
        self._registry = registry
        self._ignored_identity_markers = tuple(ignored_identity_markers)

    async def detect_groups(self) -> list[DuplicateGroup]:
        summaries = await self._registry.get_summaries()
        groups = group_duplicates(
            summaries,
            ignored_identity_markers=self._ignored_identity_markers,
        )
        log.info(
            "Detected %d duplicate groups across %d members",
            len(groups),
            len(summaries),
        )
        return groups


def group_duplicates(
    summaries: Iterable[MemberSummary],
    *,
    ignored_identity_markers: Iterable[str] = DEFAULT_IGNORED_IDENTITY_MARKERS,
) -> list[DuplicateGroup]:
    """Bucket summaries by identity key and keep the buckets with two or more members.

    Redirect stubs and placeholder identities never participate. Members inside
    a group are ordered oldest first (missing timestamp first, ties by id);
    groups are ordered by identity key.
    """

    markers = tuple(ignored_identity_markers)
    buckets: defaultdict[str, list[MemberSummary]] = defaultdict(list)
    for summary in summaries:
        if summary.merged:
            continue
        key = normalize_identity(summary.email)
        if not is_groupable_identity(key, ignored_markers=markers):
            continue
        buckets[key].append(summary)

    return [
        DuplicateGroup(identity_key=key, members=tuple(sorted(members, key=_creation_order)))
        for key, members in sorted(buckets.items())
        if len(members) > 1
    ]


def search_groups(groups: Sequence[DuplicateGroup], term: str | None) -> list[DuplicateGroup]:
    """Case-insensitive filter on identity key and member names."""

    needle = (term or "").strip().lower()
    if not needle:
        return list(groups)
    return [group for group in groups if _group_matches(group, needle)]


def _group_matches(group: DuplicateGroup, needle: str) -> bool:
    if needle in group.identity_key:
        return True
    return any(
        needle in member.first_name.lower() or needle in member.last_name.lower()
        for member in group.members
    )


def _creation_order(summary: MemberSummary) -> tuple[bool, float, str]:
    if summary.created_at is None:
        return (False, 0.0, summary.id)
    created_at = summary.created_at
    # naive timestamps are UTC, as the registry stores them
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return (True, created_at.timestamp(), summary.id)
