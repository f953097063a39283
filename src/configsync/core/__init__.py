"""Core module - Shared configuration, types, and errors."""

from configsync.core.config import (
    CONFIG_KEYS,
    SyncConfig,
    coerce_value,
    default_lock_dir,
    get_config_dir,
)
from configsync.core.errors import (
    BranchMismatchError,
    ConfigError,
    ConfigSyncError,
    GitOperationError,
    RepositoryError,
)
from configsync.core.types import AheadBehind, SyncState

__all__ = [
    # Config
    "CONFIG_KEYS",
    "SyncConfig",
    "coerce_value",
    "default_lock_dir",
    "get_config_dir",
    # Errors
    "BranchMismatchError",
    "ConfigError",
    "ConfigSyncError",
    "GitOperationError",
    "RepositoryError",
    # Types
    "AheadBehind",
    "SyncState",
]
