"""Tests for the directory-based sync lock."""

from __future__ import annotations

import os
import time
from pathlib import Path
from unittest.mock import patch

from configsync.sync.lock import PID_FILENAME, SyncLock, is_process_alive


def _age_lock(path: Path, seconds: float) -> None:
    past = time.time() - seconds
    os.utime(path, (past, past))


def _plant_lock(path: Path, pid: int | None) -> None:
    path.mkdir(parents=True)
    if pid is not None:
        (path / PID_FILENAME).write_text(f"{pid}\n")


class TestIsProcessAlive:
    """Tests for is_process_alive."""

    def test_current_process(self) -> None:
        assert is_process_alive(os.getpid()) is True

    def test_invalid_pids(self) -> None:
        assert is_process_alive(0) is False
        assert is_process_alive(-5) is False

    def test_unused_pid(self) -> None:
        # Far above any default pid_max
        assert is_process_alive(2**22 + 12345) is False


class TestAcquire:
    """Tests for acquiring and releasing the lock."""

    def test_acquire_free_lock(self, tmp_path: Path) -> None:
        """Should create the directory and record our pid."""
        lock = SyncLock(tmp_path / "sync.lock", pid=4242)

        assert lock.acquire() is True
        assert lock.held is True
        assert (tmp_path / "sync.lock").is_dir()
        assert lock.owner_pid() == 4242

    def test_creates_missing_parent(self, tmp_path: Path) -> None:
        lock = SyncLock(tmp_path / "nested" / "dir" / "sync.lock")
        assert lock.acquire() is True

    def test_release_removes_directory(self, tmp_path: Path) -> None:
        lock = SyncLock(tmp_path / "sync.lock")
        lock.acquire()
        lock.release()

        assert not (tmp_path / "sync.lock").exists()
        assert lock.held is False

    def test_release_without_acquire_leaves_foreign_lock(self, tmp_path: Path) -> None:
        """Should never delete a lock this handle does not own."""
        path = tmp_path / "sync.lock"
        _plant_lock(path, 1)
        SyncLock(path).release()
        assert path.exists()

    def test_context_manager_releases(self, tmp_path: Path) -> None:
        path = tmp_path / "sync.lock"
        with SyncLock(path) as lock:
            assert lock.acquire()
        assert not path.exists()

    def test_live_owner_blocks(self, tmp_path: Path) -> None:
        """Should skip when the recorded owner is alive, whatever the age."""
        path = tmp_path / "sync.lock"
        _plant_lock(path, 1234)
        _age_lock(path, 3600)
        lock = SyncLock(path, is_alive=lambda pid: pid == 1234)

        assert lock.acquire() is False
        assert lock.owner_pid() == 1234

    def test_young_lock_with_dead_owner_blocks(self, tmp_path: Path) -> None:
        """Should treat a fresh lock as a run that is just starting."""
        path = tmp_path / "sync.lock"
        _plant_lock(path, 1234)
        lock = SyncLock(path, is_alive=lambda pid: False)

        assert lock.acquire() is False
        assert path.exists()

    def test_young_lock_without_pid_blocks(self, tmp_path: Path) -> None:
        """Should wait when the owner has not written its pid yet."""
        path = tmp_path / "sync.lock"
        _plant_lock(path, None)
        lock = SyncLock(path, is_alive=lambda pid: True)

        assert lock.acquire() is False

    def test_stale_lock_reclaimed(self, tmp_path: Path) -> None:
        """Should reclaim a lock older than the grace period with a dead owner."""
        path = tmp_path / "sync.lock"
        _plant_lock(path, 1234)
        _age_lock(path, 121)
        lock = SyncLock(path, is_alive=lambda pid: False, pid=999)

        assert lock.acquire() is True
        assert lock.owner_pid() == 999

    def test_concurrent_reclaim_loses_to_later_claim(self, tmp_path: Path) -> None:
        """Should not report ownership when another reclaimer's pid ends up in the lock."""
        path = tmp_path / "sync.lock"
        _plant_lock(path, 1234)
        _age_lock(path, 121)
        lock = SyncLock(path, is_alive=lambda pid: False, pid=999)

        # Stale check sees the dead owner, the claim check sees the rival
        with patch.object(SyncLock, "owner_pid", side_effect=[1234, 555]):
            assert lock.acquire() is False

        assert lock.held is False
        lock.release()
        assert path.exists()

    def test_grace_period_boundary(self, tmp_path: Path) -> None:
        """Should reclaim at exactly the grace period."""
        path = tmp_path / "sync.lock"
        _plant_lock(path, 1234)
        mtime = path.stat().st_mtime
        lock = SyncLock(path, is_alive=lambda pid: False, clock=lambda: mtime + 120.0)

        assert lock.acquire() is True

    def test_just_under_grace_period(self, tmp_path: Path) -> None:
        path = tmp_path / "sync.lock"
        _plant_lock(path, 1234)
        mtime = path.stat().st_mtime
        lock = SyncLock(path, is_alive=lambda pid: False, clock=lambda: mtime + 119.0)

        assert lock.acquire() is False

    def test_second_handle_blocked_by_first(self, tmp_path: Path) -> None:
        """Should give mutual exclusion between two handles."""
        path = tmp_path / "sync.lock"
        first = SyncLock(path)
        second = SyncLock(path)

        assert first.acquire() is True
        assert second.acquire() is False
        first.release()
        assert second.acquire() is True

    def test_acquire_twice_is_idempotent(self, tmp_path: Path) -> None:
        lock = SyncLock(tmp_path / "sync.lock")
        assert lock.acquire() is True
        assert lock.acquire() is True
