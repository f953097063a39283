"""Shared types for configsync.

This module defines the value types exchanged between the git backend
and the reconciler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SyncState(str, Enum):
    """Relationship between the local branch and its remote-tracking branch.

    Derived on every run, never persisted.
    """

    UP_TO_DATE = "up_to_date"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"
    NO_REMOTE_BRANCH = "no_remote_branch"


@dataclass(frozen=True)
class AheadBehind:
    """Commit counts unique to each side of a local/remote comparison.

    Attributes:
        ahead: Commits reachable only from the local head.
        behind: Commits reachable only from the remote head.
    """

    ahead: int
    behind: int

    @property
    def diverged(self) -> bool:
        """Both sides have commits the other lacks."""
        return self.ahead > 0 and self.behind > 0
