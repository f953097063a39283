"""Exception hierarchy for configsync."""

from __future__ import annotations


class ConfigSyncError(Exception):
    """Base exception for configsync errors."""


class ConfigError(ConfigSyncError):
    """Invalid configuration key or value."""


class RepositoryError(ConfigSyncError):
    """The config directory is not a usable git working copy."""


class BranchMismatchError(ConfigSyncError):
    """The working copy is checked out on an unexpected branch.

    Attributes:
        current: Branch currently checked out (None when HEAD is detached).
        expected: Branch the sync is configured for.
    """

    def __init__(self, current: str | None, expected: str) -> None:
        self.current = current
        self.expected = expected
        super().__init__(f"on branch '{current or ''}', expected '{expected}'")


class GitOperationError(ConfigSyncError):
    """A git command failed.

    Attributes:
        command: The git subcommand and its arguments.
        stderr: Error output reported by git, stripped.
    """

    def __init__(self, command: list[str], stderr: str = "") -> None:
        self.command = command
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"git {' '.join(command)} failed{detail}")
