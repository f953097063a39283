"""Sync configuration for configsync.

This module defines the effective settings of a sync run and where they
are stored on disk.
"""

from __future__ import annotations

import hashlib
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from configsync.core.errors import ConfigError

DEFAULT_BRANCH = "main"
DEFAULT_REMOTE = "origin"
DEFAULT_MAX_LOG_LINES = 500
DEFAULT_DEBOUNCE_SECONDS = 5.0
DEFAULT_STALE_LOCK_SECONDS = 120.0

CONFIG_HOME_ENV = "CONFIGSYNC_HOME"


def get_config_dir() -> Path:
    """Get the per-user configuration directory.

    Returns:
        Path from $CONFIGSYNC_HOME, or ~/.configsync.
    """
    override = os.environ.get(CONFIG_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".configsync"


def default_repo() -> Path:
    """Get the default config directory to synchronize."""
    return Path.home() / ".claude"


def default_lock_dir(repo: Path) -> Path:
    """Get the lock directory for a repository.

    The name embeds a digest of the repository path so that two config
    directories never share a lock.
    """
    digest = hashlib.sha1(str(repo).encode("utf-8")).hexdigest()[:12]
    return Path(tempfile.gettempdir()) / f"configsync-{digest}.lock"


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _to_path(value: Any) -> Path:
    return Path(str(value)).expanduser()


@dataclass
class SyncConfig:
    """Settings for synchronizing one config directory.

    Attributes:
        repo: Working copy to synchronize.
        branch: Branch that must be checked out and is synchronized.
        remote: Remote to fetch from and push to.
        lock_dir: Directory used as the cross-process mutex.
        log_path: Sync log file.
        max_log_lines: Line cap applied to the sync log after each run.
        debounce_seconds: Delay before a scheduled run starts working.
        stale_lock_seconds: Minimum age before a dead owner's lock is reclaimed.
        notifications: Whether desktop notifications are sent.
    """

    repo: Path
    branch: str = DEFAULT_BRANCH
    remote: str = DEFAULT_REMOTE
    lock_dir: Path | None = None
    log_path: Path | None = None
    max_log_lines: int = DEFAULT_MAX_LOG_LINES
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    stale_lock_seconds: float = DEFAULT_STALE_LOCK_SECONDS
    notifications: bool = True

    def __post_init__(self) -> None:
        """Normalize paths and fill in derived defaults."""
        self.repo = _to_path(self.repo).resolve()
        if self.lock_dir is None:
            self.lock_dir = default_lock_dir(self.repo)
        else:
            self.lock_dir = _to_path(self.lock_dir)
        if self.log_path is None:
            self.log_path = get_config_dir() / "sync.log"
        else:
            self.log_path = _to_path(self.log_path)
        if self.max_log_lines < 1:
            raise ConfigError("max_log_lines must be at least 1")
        if self.debounce_seconds < 0:
            raise ConfigError("debounce_seconds must not be negative")
        if self.stale_lock_seconds < 0:
            raise ConfigError("stale_lock_seconds must not be negative")

    @property
    def lock_path(self) -> Path:
        """Lock directory, falling back to the per-repository default."""
        if self.lock_dir is None:
            return default_lock_dir(self.repo)
        return self.lock_dir

    @property
    def log_file(self) -> Path:
        """Sync log path, falling back to the config directory."""
        if self.log_path is None:
            return get_config_dir() / "sync.log"
        return self.log_path

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SyncConfig:
        """Build a config from stored key/value pairs.

        Unknown keys and unparseable values raise ConfigError. Missing
        keys take their defaults.
        """
        values: dict[str, Any] = {}
        for key, raw in data.items():
            if raw is None:
                continue
            values[key] = coerce_value(key, raw)
        values.setdefault("repo", default_repo())
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible values."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = str(value) if isinstance(value, Path) else value
        return result


_CONVERTERS: dict[str, Any] = {
    "repo": _to_path,
    "branch": str,
    "remote": str,
    "lock_dir": _to_path,
    "log_path": _to_path,
    "max_log_lines": int,
    "debounce_seconds": float,
    "stale_lock_seconds": float,
    "notifications": _to_bool,
}

CONFIG_KEYS = tuple(_CONVERTERS)


def coerce_value(key: str, raw: Any) -> Any:
    """Convert a raw stored or command-line value for a config key.

    Raises:
        ConfigError: If the key is unknown or the value cannot be converted.
    """
    converter = _CONVERTERS.get(key)
    if converter is None:
        raise ConfigError(f"Unknown config key: {key}")
    try:
        return converter(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {key}: {raw!r}") from e
