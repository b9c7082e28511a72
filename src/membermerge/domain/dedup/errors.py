"""Error taxonomy of the merge engine.

``AlreadyApplied`` is deliberately absent: a repeated merge is an outcome, not
an error (see ``contracts.AlreadyAppliedOutcome``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class MergeEngineError(Exception):
    """Base class for every error raised by the merge engine."""


class NotFoundError(MergeEngineError, LookupError):
    """A referenced member or purchase does not exist."""


class MemberNotFoundError(NotFoundError):
    def __init__(self, member_id: str) -> None:
        self.member_id = member_id
        super().__init__(f"Member not found: {member_id}")


class UnknownPurchaseError(NotFoundError):
    """A purchase id does not belong to the account it was selected or planned for."""

    def __init__(self, purchase_id: str, member_id: str) -> None:
        self.purchase_id = purchase_id
        self.member_id = member_id
        super().__init__(f"Purchase {purchase_id} not found under member {member_id}")


class IncompletePurchaseSelectionError(MergeEngineError, ValueError):
    """Some purchases were selected on neither side; the plan would drop them."""

    def __init__(self, missing_purchase_ids: Iterable[str]) -> None:
        self.missing_purchase_ids = tuple(sorted(missing_purchase_ids))
        super().__init__(
            "Purchases selected on neither account: " + ", ".join(self.missing_purchase_ids)
        )


class TransientStoreError(MergeEngineError):
    """Store I/O failed; re-invoking the same operation may succeed."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        detail = f": {type(cause).__name__}" if cause is not None else ""
        super().__init__(f"Store operation failed ({operation}){detail}")


class UnmigratedPurchaseError(MergeEngineError):
    """The losing account still owns a purchase the survivor does not hold."""

    def __init__(self, purchase_id: str, member_id: str) -> None:
        self.purchase_id = purchase_id
        self.member_id = member_id
        super().__init__(
            f"Purchase {purchase_id} is still owned by {member_id} and was not part of the plan"
        )


class AuditWriteError(MergeEngineError):
    """The merge audit entry could not be persisted."""


class RedirectLoopError(MergeEngineError):
    """Following ``merged_into`` links did not reach an active member."""

    def __init__(self, chain: Iterable[str]) -> None:
        self.chain = tuple(chain)
        super().__init__("Redirect chain does not terminate: " + " -> ".join(self.chain))
