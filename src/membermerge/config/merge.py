"""Merge engine configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import optional_env_list, require_env_var
from .errors import ConfigurationError

DEFAULT_IGNORED_IDENTITY_MARKERS = ("unknown", "legacy")
MAX_REDIRECT_HOPS = 16
OPERATOR_ENV_VAR = "MEMBERMERGE_OPERATOR_ID"


@dataclass(frozen=True, slots=True)
class MergeConfig:
    """Operator identity and detection tuning for merge runs.

    ``ignored_identity_markers`` are substrings that flag placeholder identity
    keys (imported records without a real email); such keys never form groups.
    ``operator_id`` may only be absent for read-only commands.
    """

    operator_id: str | None = None
    ignored_identity_markers: tuple[str, ...] = DEFAULT_IGNORED_IDENTITY_MARKERS
    max_redirect_hops: int = MAX_REDIRECT_HOPS

    def __post_init__(self) -> None:
        if self.operator_id is not None and not self.operator_id.strip():
            raise ConfigurationError("operator_id must not be blank")
        if self.max_redirect_hops < 1:
            raise ConfigurationError("max_redirect_hops must be positive")


def get_merge_config(
    *,
    operator_id: str | None = None,
    require_operator: bool = True,
) -> MergeConfig:
    if operator_id is None:
        if require_operator:
            operator_id = require_env_var(OPERATOR_ENV_VAR)
        else:
            operator_id = (os.getenv(OPERATOR_ENV_VAR) or "").strip() or None
    markers = optional_env_list("MEMBERMERGE_IGNORED_IDENTITY_MARKERS")
    return MergeConfig(
        operator_id=operator_id,
        ignored_identity_markers=(
            DEFAULT_IGNORED_IDENTITY_MARKERS if markers is None else tuple(m.lower() for m in markers)
        ),
    )
