"""Result types for sync runs.

This module provides:
- SyncOutcome: How a run ended
- SyncResult: Outcome plus what the run observed and did
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from configsync.core.types import AheadBehind, SyncState


class SyncOutcome(str, Enum):
    """How a sync run ended."""

    # Precondition failures (non-zero exit)
    NOT_A_REPOSITORY = "not_a_repository"
    WRONG_BRANCH = "wrong_branch"

    # Intentional no-ops
    LOCKED = "locked"
    OFFLINE = "offline"
    UP_TO_DATE = "up_to_date"

    # Reconciliation results
    PUBLISHED = "published"
    PUBLISH_FAILED = "publish_failed"
    PUSHED = "pushed"
    PUSH_FAILED = "push_failed"
    FAST_FORWARDED = "fast_forwarded"
    FAST_FORWARD_FAILED = "fast_forward_failed"
    REBASED = "rebased"
    REBASE_PUSH_FAILED = "rebase_push_failed"
    CONFLICT = "conflict"

    # Unexpected git failure outside the reconciliation table
    FAILED = "failed"


PRECONDITION_FAILURES = frozenset({SyncOutcome.NOT_A_REPOSITORY, SyncOutcome.WRONG_BRANCH})


@dataclass
class SyncResult:
    """Result of one sync run.

    Attributes:
        outcome: How the run ended.
        state: Classification of local vs remote, when one was made.
        counts: Ahead/behind counts, when the histories differed.
        commit_message: Message of the local commit created by this run.
        recovered: Names of interrupted operations that were aborted
            ("rebase", "merge") before the run started.
    """

    outcome: SyncOutcome
    state: SyncState | None = None
    counts: AheadBehind | None = None
    commit_message: str | None = None
    recovered: tuple[str, ...] = ()

    @property
    def exit_code(self) -> int:
        """Process exit code: non-zero only for precondition failures."""
        return 1 if self.outcome in PRECONDITION_FAILURES else 0
