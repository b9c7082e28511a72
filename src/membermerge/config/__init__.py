"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_list, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .merge import (
    DEFAULT_IGNORED_IDENTITY_MARKERS,
    MAX_REDIRECT_HOPS,
    MergeConfig,
    get_merge_config,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "DEFAULT_IGNORED_IDENTITY_MARKERS",
    "MAX_REDIRECT_HOPS",
    "ConfigurationError",
    "DatabaseConfig",
    "MergeConfig",
    "MissingConfigurationError",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_merge_config",
    "get_storage_config",
    "optional_env_list",
    "require_env_var",
    "require_env_vars",
]
