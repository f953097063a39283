"""Sync of a config directory with its git remote.

Architecture:
    SyncLock → Reconciler → GitRepository
                   ↓
               SyncLog / Notifier

Components:
- **Reconciler**: One sync pass (commit, fetch, classify, act)
- **SyncLock**: Directory mutex with stale-lock reclamation
- **SyncLog**: Bounded append-only log of run outcomes
- **GitRepository**: GitPython-backed working copy operations
"""

from configsync.sync.git import GitRepository
from configsync.sync.lock import STALE_LOCK_SECONDS, SyncLock, is_process_alive
from configsync.sync.log import SyncLog
from configsync.sync.messages import (
    build_commit_message,
    categorize,
    manual_resolution_command,
    summarize_changes,
)
from configsync.sync.reconciler import Reconciler, classify, exit_on_signals
from configsync.sync.types import PRECONDITION_FAILURES, SyncOutcome, SyncResult

__all__ = [
    "GitRepository",
    "PRECONDITION_FAILURES",
    "Reconciler",
    "STALE_LOCK_SECONDS",
    "SyncLock",
    "SyncLog",
    "SyncOutcome",
    "SyncResult",
    "build_commit_message",
    "categorize",
    "classify",
    "exit_on_signals",
    "is_process_alive",
    "manual_resolution_command",
    "summarize_changes",
]
