"""Follow redirect stubs to the account that is still active.

Scans of an old access card, or links to a merged-away account, land on a
redirect stub. Callers resolve it here before showing or charging anything.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from membermerge.config.merge import MAX_REDIRECT_HOPS

from .errors import RedirectLoopError

if TYPE_CHECKING:
    from membermerge.domain.model import Member
    from membermerge.domain.ports import MemberRegistry

log = logging.getLogger(__name__)


async def resolve_active_member(
    registry: MemberRegistry,
    member_id: str,
    *,
    max_hops: int = MAX_REDIRECT_HOPS,
) -> Member:
    """Return the active member ``member_id`` resolves to.

    Raises ``MemberNotFoundError`` when a link points nowhere and
    ``RedirectLoopError`` on a cycle or a chain longer than ``max_hops``.
    """

    chain = [member_id]
    member = await registry.get_profile(member_id)
    while member.is_redirect:
        target = member.merged_into
        if target is None or target in chain or len(chain) > max_hops:
            raise RedirectLoopError([*chain, str(target)])
        chain.append(target)
        member = await registry.get_profile(target)

    if len(chain) > 1:
        log.debug("Resolved %s via %s", member_id, " -> ".join(chain))
    return member
