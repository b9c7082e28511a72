"""Identity key normalization used for duplicate grouping."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def normalize_identity(raw_identity: str | None) -> str:
    """Lower-case and trim an identity key. ``None`` and blanks become ``""``."""
    if raw_identity is None:
        return ""
    return raw_identity.strip().lower()


def is_groupable_identity(identity_key: str, *, ignored_markers: Iterable[str] = ()) -> bool:
    """Whether a normalized key may form a duplicate group.

    Empty keys never group; keys containing a placeholder marker (imported
    records without a real address) are skipped as well.
    """
    if not identity_key:
        return False
    return not any(marker and marker in identity_key for marker in ignored_markers)
