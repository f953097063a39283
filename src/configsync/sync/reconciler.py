"""Bidirectional sync of a config directory with its git remote.

One run does, strictly in order:

    commit local changes → fetch → classify → push / fast-forward / rebase+push

Runs are serialized across processes by a SyncLock. Every outcome is
written to the SyncLog; failures and self-healing recoveries also notify
the user. Errors never escape a run: they end up in the log, in a
notification, and in the SyncResult's exit code.
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading
import time
from collections.abc import Callable, Iterator
from datetime import datetime
from pathlib import Path
from types import FrameType

from configsync.core.config import SyncConfig
from configsync.core.errors import BranchMismatchError, GitOperationError, RepositoryError
from configsync.core.types import AheadBehind, SyncState
from configsync.notifications import Notifier, NotificationType
from configsync.sync.git import GitRepository
from configsync.sync.lock import SyncLock
from configsync.sync.log import SyncLog
from configsync.sync.messages import build_commit_message, manual_resolution_command
from configsync.sync.types import SyncOutcome, SyncResult

logger = logging.getLogger(__name__)

NotifyCallback = Callable[[str, NotificationType], object]
RepositoryFactory = Callable[[Path], GitRepository]

TERMINATING_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None))
    if sig is not None
)


def classify(
    local_head: str,
    remote_head: str | None,
    counts: AheadBehind | None = None,
) -> SyncState:
    """Classify the local branch against its remote-tracking branch.

    Args:
        local_head: Commit id of HEAD.
        remote_head: Commit id of the remote-tracking branch, None if missing.
        counts: Ahead/behind counts; required when the heads differ.

    Returns:
        The sync state.
    """
    if remote_head is None:
        return SyncState.NO_REMOTE_BRANCH
    if local_head == remote_head:
        return SyncState.UP_TO_DATE
    if counts is None:
        raise ValueError("counts are required when heads differ")
    if counts.diverged:
        return SyncState.DIVERGED
    if counts.ahead > 0:
        return SyncState.AHEAD
    if counts.behind > 0:
        return SyncState.BEHIND
    return SyncState.UP_TO_DATE


@contextlib.contextmanager
def exit_on_signals(signals: tuple[int, ...] = TERMINATING_SIGNALS) -> Iterator[None]:
    """Turn termination signals into SystemExit so `finally` blocks run.

    Only the main thread can install signal handlers; elsewhere this is a
    no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _exit(signum: int, frame: FrameType | None) -> None:
        raise SystemExit(128 + signum)

    previous = {sig: signal.signal(sig, _exit) for sig in signals}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


class Reconciler:
    """Runs sync passes for one config directory."""

    def __init__(
        self,
        config: SyncConfig,
        log: SyncLog | None = None,
        lock: SyncLock | None = None,
        notify: NotifyCallback | None = None,
        open_repository: RepositoryFactory = GitRepository,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the reconciler.

        Args:
            config: Sync settings.
            log: Sync log (defaults to config.log_path, capped at max_log_lines).
            lock: Cross-process lock (defaults to config.lock_dir).
            notify: Notification sink taking a message and a severity.
            open_repository: Opens the working copy; raises RepositoryError.
            sleep: Used for the debounce delay.
            clock: Used for commit message timestamps.
        """
        self._config = config
        self._log = log or SyncLog(config.log_file, max_lines=config.max_log_lines)
        self._lock = lock or SyncLock(config.lock_path, stale_after=config.stale_lock_seconds)
        self._notify: NotifyCallback = notify or Notifier(
            config.log_file, enabled=config.notifications
        )
        self._open_repository = open_repository
        self._sleep = sleep
        self._clock = clock

    @property
    def log(self) -> SyncLog:
        return self._log

    @property
    def lock(self) -> SyncLock:
        return self._lock

    def run(self, immediate: bool = False) -> SyncResult:
        """Run one sync pass.

        Args:
            immediate: Skip the debounce delay (manual runs).

        Returns:
            The result; its exit_code is non-zero only for precondition
            failures.
        """
        cfg = self._config

        try:
            repo = self._open_repository(cfg.repo)
            # A rebase in progress detaches HEAD; the branch is checked again
            # once the lock is held and the rebase has been dealt with.
            if not (repo.rebase_in_progress() or repo.merge_in_progress()):
                repo.require_branch(cfg.branch)
        except RepositoryError as e:
            logger.error(str(e))
            return self._precondition_failed(
                SyncOutcome.NOT_A_REPOSITORY, f"{cfg.repo} is not a git repository."
            )
        except BranchMismatchError as e:
            logger.error(str(e))
            return self._precondition_failed(SyncOutcome.WRONG_BRANCH, f"{e}. Aborting.")
        except GitOperationError as e:
            # Git refuses the working copy (e.g. dubious ownership)
            logger.error(str(e))
            return self._precondition_failed(
                SyncOutcome.NOT_A_REPOSITORY, f"{cfg.repo} is not a usable git repository: {e}"
            )

        if not self._lock.acquire():
            logger.info("Another sync run holds the lock, skipping")
            return SyncResult(SyncOutcome.LOCKED)

        try:
            with exit_on_signals():
                return self._run_locked(repo, immediate)
        finally:
            self._lock.release()
            self._log.trim()

    def _run_locked(self, repo: GitRepository, immediate: bool) -> SyncResult:
        cfg = self._config
        recovered: tuple[str, ...] = ()
        try:
            recovered = self._recover_interrupted(repo)
            try:
                repo.require_branch(cfg.branch)
            except BranchMismatchError as e:
                logger.error(str(e))
                self._log.write("ERROR", f"{e}. Aborting.")
                return SyncResult(SyncOutcome.WRONG_BRANCH, recovered=recovered)

            if not immediate and cfg.debounce_seconds > 0:
                logger.debug(f"Debouncing for {cfg.debounce_seconds}s")
                self._sleep(cfg.debounce_seconds)

            result = self._reconcile(repo)
        except GitOperationError as e:
            logger.error(f"Sync failed: {e}")
            self._log.write("ERROR", f"{e}")
            self._notify("Sync failed. Check sync log.", NotificationType.ERROR)
            result = SyncResult(SyncOutcome.FAILED)
        result.recovered = recovered
        return result

    def _precondition_failed(self, outcome: SyncOutcome, detail: str) -> SyncResult:
        self._log.write("ERROR", detail)
        self._log.trim()
        return SyncResult(outcome)

    # =================================================================
    # Steps
    # =================================================================

    def _recover_interrupted(self, repo: GitRepository) -> tuple[str, ...]:
        """Abort a rebase or merge left over from a crashed run."""
        recovered: list[str] = []
        if repo.rebase_in_progress():
            self._log.write("RECOVERY", "aborting stale rebase from interrupted run.")
            self._notify("Recovered from interrupted rebase.", NotificationType.INFO)
            with contextlib.suppress(GitOperationError):
                repo.abort_rebase()
            recovered.append("rebase")
        if repo.merge_in_progress():
            self._log.write("RECOVERY", "aborting stale merge from interrupted run.")
            self._notify("Recovered from interrupted merge.", NotificationType.INFO)
            with contextlib.suppress(GitOperationError):
                repo.abort_merge()
            recovered.append("merge")
        return tuple(recovered)

    def _refresh_submodules(self, repo: GitRepository) -> None:
        if not repo.has_submodules():
            return
        try:
            repo.update_submodules_from_upstream()
        except GitOperationError as e:
            logger.warning(f"Submodule upstream update failed: {e}")

    def _sync_submodules(self, repo: GitRepository) -> None:
        if not repo.has_submodules():
            return
        try:
            repo.sync_submodules()
        except GitOperationError as e:
            logger.warning(f"Submodule sync failed: {e}")

    def _commit_local_changes(self, repo: GitRepository) -> str | None:
        """Stage and commit everything pending.

        Returns:
            The commit message, or None if there was nothing to commit.
        """
        if not repo.has_local_changes():
            return None

        try:
            repo.stage_all()
            message = build_commit_message(repo.staged_paths(), self._clock())
        except GitOperationError as e:
            logger.warning(f"Staging failed: {e}")
            message = build_commit_message([], self._clock())
        try:
            repo.commit(message)
        except GitOperationError as e:
            # Usually nothing left to commit because of a concurrent edit
            logger.warning(f"Commit failed: {e}")
        self._log.write("COMMIT", message)
        return message

    def _reconcile(self, repo: GitRepository) -> SyncResult:
        cfg = self._config

        self._refresh_submodules(repo)
        commit_message = self._commit_local_changes(repo)

        try:
            repo.fetch(cfg.remote, cfg.branch)
        except GitOperationError as e:
            logger.warning(f"Fetch failed: {e}")
            self._log.write("FETCH", "failed (offline?). Local commit preserved.")
            return SyncResult(SyncOutcome.OFFLINE, commit_message=commit_message)

        local_head = repo.head()
        remote_head = repo.remote_head(cfg.remote, cfg.branch)
        counts = None
        if remote_head is not None and remote_head != local_head:
            counts = repo.ahead_behind(cfg.remote, cfg.branch)
        state = classify(local_head, remote_head, counts)
        logger.info(f"State: {state.value} (counts={counts})")

        if state == SyncState.NO_REMOTE_BRANCH:
            result = self._publish(repo)
        elif state == SyncState.UP_TO_DATE or counts is None:
            self._log.write("SYNC", "already up to date.")
            result = SyncResult(SyncOutcome.UP_TO_DATE)
        elif state == SyncState.AHEAD:
            result = self._push(repo, counts)
        elif state == SyncState.BEHIND:
            result = self._fast_forward(repo, counts)
        else:
            result = self._rebase_and_push(repo, counts)

        result.state = state
        result.counts = counts
        result.commit_message = commit_message
        return result

    # =================================================================
    # Actions
    # =================================================================

    def _publish(self, repo: GitRepository) -> SyncResult:
        cfg = self._config
        try:
            repo.push(cfg.remote, cfg.branch, set_upstream=True)
        except GitOperationError as e:
            logger.warning(f"Initial push failed: {e}")
            self._log.write("PUSH", "initial push failed.")
            return SyncResult(SyncOutcome.PUBLISH_FAILED)
        self._log.write("PUSH", f"initial push to {cfg.remote}/{cfg.branch}.")
        return SyncResult(SyncOutcome.PUBLISHED)

    def _push(self, repo: GitRepository, counts: AheadBehind) -> SyncResult:
        cfg = self._config
        try:
            repo.push(cfg.remote, cfg.branch)
        except GitOperationError as e:
            logger.warning(f"Push failed: {e}")
            self._log.write("PUSH", "failed. Will retry next run.")
            self._notify("Push failed. Will retry next run.", NotificationType.ERROR)
            return SyncResult(SyncOutcome.PUSH_FAILED)
        self._log.write("PUSH", f"{counts.ahead} commit(s) pushed.")
        return SyncResult(SyncOutcome.PUSHED)

    def _fast_forward(self, repo: GitRepository, counts: AheadBehind) -> SyncResult:
        cfg = self._config
        try:
            repo.merge_ff_only(f"{cfg.remote}/{cfg.branch}")
        except GitOperationError as e:
            logger.error(f"Fast-forward failed: {e}")
            self._log.write("PULL", "fast-forward failed. Unexpected state.")
            self._notify("Fast-forward failed. Check sync log.", NotificationType.ERROR)
            return SyncResult(SyncOutcome.FAST_FORWARD_FAILED)
        self._sync_submodules(repo)
        self._log.write("PULL", f"fast-forwarded {counts.behind} commit(s).")
        return SyncResult(SyncOutcome.FAST_FORWARDED)

    def _rebase_and_push(self, repo: GitRepository, counts: AheadBehind) -> SyncResult:
        cfg = self._config
        try:
            repo.rebase(f"{cfg.remote}/{cfg.branch}")
        except GitOperationError as e:
            logger.warning(f"Rebase failed: {e}")
            with contextlib.suppress(GitOperationError):
                repo.abort_rebase()
            command = manual_resolution_command(str(repo.path), cfg.remote, cfg.branch)
            self._log.write("CONFLICT", "rebase aborted. Manual resolution required.")
            self._log.write("CONFLICT", f"run '{command}' to resolve.")
            self._notify("Sync conflict. Manual resolution required.", NotificationType.ERROR)
            return SyncResult(SyncOutcome.CONFLICT)

        self._sync_submodules(repo)
        self._log.write(
            "REBASE",
            f"{counts.ahead} local commit(s) rebased on {counts.behind} remote commit(s).",
        )

        # No retry here: the next run fetches again and either pushes
        # (remote unchanged) or rebases again (remote moved).
        try:
            repo.push(cfg.remote, cfg.branch)
        except GitOperationError as e:
            logger.warning(f"Push after rebase failed: {e}")
            self._log.write("PUSH", "failed after rebase. Will retry next run.")
            self._notify("Push failed after rebase. Will retry.", NotificationType.ERROR)
            return SyncResult(SyncOutcome.REBASE_PUSH_FAILED)
        self._log.write("PUSH", "rebased commits pushed.")
        return SyncResult(SyncOutcome.REBASED)
