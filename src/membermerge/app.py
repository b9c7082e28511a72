"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from membermerge.adapters.sqlalchemy import build_merge_stores, is_started, startup
from membermerge.config import get_merge_config
from membermerge.domain.dedup import MergeEngine, resolve_active_member

if TYPE_CHECKING:
    from membermerge.adapters.decisions import MergeDecisions
    from membermerge.config import MergeConfig
    from membermerge.domain.dedup import DuplicateGroup, FullRecord, MergeOutcome
    from membermerge.domain.model import Member
    from membermerge.domain.ports import MergeStores


log = getLogger(__name__)


async def _default_stores() -> MergeStores:
    if not is_started():
        await startup()
    return build_merge_stores()


async def list_duplicate_groups(
    *,
    search: str | None = None,
    stores: MergeStores | None = None,
    config: MergeConfig | None = None,
) -> list[DuplicateGroup]:
    """Duplicate groups in the registry, optionally filtered by a search term."""

    effective_stores = stores or await _default_stores()
    effective_config = config or get_merge_config(require_operator=False)
    engine = MergeEngine.from_stores(effective_stores, effective_config)
    groups = await engine.detect(search)
    log.info("Found %d duplicate groups (search=%r)", len(groups), search)
    return groups


async def show_member(member_id: str, *, stores: MergeStores | None = None) -> FullRecord:
    effective_stores = stores or await _default_stores()
    engine = MergeEngine.from_stores(effective_stores, get_merge_config(require_operator=False))
    return await engine.loader.load_full_record(member_id)


async def merge_members(
    decisions: MergeDecisions,
    *,
    operator_id: str | None = None,
    stores: MergeStores | None = None,
    config: MergeConfig | None = None,
) -> MergeOutcome:
    """Apply an operator's decisions file.

    The operator is taken from ``operator_id``, else from the decisions file,
    else from ``MEMBERMERGE_OPERATOR_ID``.
    """

    effective_config = config or get_merge_config(operator_id=operator_id or decisions.operator_id)
    request = decisions.to_request(operator_id=operator_id or effective_config.operator_id)
    effective_stores = stores or await _default_stores()
    engine = MergeEngine.from_stores(effective_stores, effective_config)

    log.info(
        "Starting merge: A=%s, B=%s, survivor=%s, operator=%s",
        request.member_a_id,
        request.member_b_id,
        request.survivor,
        request.operator_id,
    )
    outcome = await engine.merge(request)
    log.info("Finished merge: %s", outcome.describe())
    return outcome


async def resolve_member(
    member_id: str,
    *,
    stores: MergeStores | None = None,
    config: MergeConfig | None = None,
) -> Member:
    """Follow redirect stubs from ``member_id`` to the active account."""

    effective_stores = stores or await _default_stores()
    effective_config = config or get_merge_config(require_operator=False)
    return await resolve_active_member(
        effective_stores.members,
        member_id,
        max_hops=effective_config.max_redirect_hops,
    )
