"""Member deduplication: detect duplicate accounts and merge them under supervision."""

from __future__ import annotations

from .audit import AuditEmitter, MergeSummary
from .contracts import (
    AlreadyAppliedOutcome,
    AppliedOutcome,
    DuplicateGroup,
    FailedOutcome,
    FieldChoices,
    FullRecord,
    MergeOutcome,
    MergeRequest,
    MergeStatus,
)
from .detect import DuplicateDetector, group_duplicates, search_groups
from .engine import MergeEngine
from .errors import (
    AuditWriteError,
    IncompletePurchaseSelectionError,
    MemberNotFoundError,
    MergeEngineError,
    NotFoundError,
    RedirectLoopError,
    TransientStoreError,
    UnknownPurchaseError,
    UnmigratedPurchaseError,
)
from .execute import MergeExecutor, MergeStep
from .load import FullRecordLoader
from .normalize import is_groupable_identity, normalize_identity
from .plan import MergePlan
from .redirect import resolve_active_member
from .resolve import build_plan, resolve_profile

__all__ = [  # noqa: RUF022
    # stages
    "normalize_identity",
    "is_groupable_identity",
    "DuplicateDetector",
    "group_duplicates",
    "search_groups",
    "FullRecordLoader",
    "build_plan",
    "resolve_profile",
    "MergeExecutor",
    "MergeStep",
    "AuditEmitter",
    "MergeSummary",
    "resolve_active_member",
    "MergeEngine",
    # contracts
    "DuplicateGroup",
    "FullRecord",
    "FieldChoices",
    "MergeRequest",
    "MergePlan",
    "MergeStatus",
    "MergeOutcome",
    "AppliedOutcome",
    "AlreadyAppliedOutcome",
    "FailedOutcome",
    # errors
    "MergeEngineError",
    "NotFoundError",
    "MemberNotFoundError",
    "UnknownPurchaseError",
    "IncompletePurchaseSelectionError",
    "TransientStoreError",
    "UnmigratedPurchaseError",
    "AuditWriteError",
    "RedirectLoopError",
]
