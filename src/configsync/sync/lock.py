"""Cross-process lock guarding a config directory.

The lock is a directory: creating it is atomic, so the process whose
mkdir succeeds owns it. The owner records its pid in a file inside the
directory. A lock whose owner is dead and which is older than the grace
period is stale and may be reclaimed.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from collections.abc import Callable
from pathlib import Path

logger = logging.getLogger(__name__)

STALE_LOCK_SECONDS = 120.0
PID_FILENAME = "pid"


def is_process_alive(pid: int) -> bool:
    """Check whether a process with this pid exists.

    Args:
        pid: Process id to probe.

    Returns:
        True if the process exists (even if owned by another user).
    """
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


class SyncLock:
    """Directory-based mutex with stale-lock reclamation."""

    def __init__(
        self,
        path: Path,
        stale_after: float = STALE_LOCK_SECONDS,
        is_alive: Callable[[int], bool] = is_process_alive,
        clock: Callable[[], float] = time.time,
        pid: int | None = None,
    ) -> None:
        """Initialize the lock handle. Nothing touches the filesystem yet.

        Args:
            path: Lock directory.
            stale_after: Grace period in seconds before a dead owner's lock
                can be reclaimed.
            is_alive: Process liveness probe.
            clock: Source of the current time (epoch seconds).
            pid: Pid recorded as owner (defaults to the current process).
        """
        self._path = Path(path)
        self._stale_after = stale_after
        self._is_alive = is_alive
        self._clock = clock
        self._pid = pid if pid is not None else os.getpid()
        self._held = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        """Whether this handle currently owns the lock."""
        return self._held

    def owner_pid(self) -> int | None:
        """Read the pid recorded in the lock, if any."""
        try:
            return int((self._path / PID_FILENAME).read_text().strip())
        except (OSError, ValueError):
            return None

    def age(self) -> float:
        """Seconds since the lock directory was created (0 if absent)."""
        try:
            mtime = self._path.stat().st_mtime
        except OSError:
            return 0.0
        return self._clock() - mtime

    def _try_create(self) -> bool:
        try:
            self._path.mkdir(parents=False)
        except FileExistsError:
            return False
        except FileNotFoundError:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            try:
                self._path.mkdir()
            except FileExistsError:
                return False
        return True

    def acquire(self) -> bool:
        """Try to take the lock once, reclaiming it if stale.

        Returns:
            True if this process now owns the lock. False means another run
            is (or may be) in progress and the caller should exit quietly.
        """
        if self._held:
            return True

        if not self._try_create():
            owner = self.owner_pid()
            if owner is not None and self._is_alive(owner):
                logger.debug(f"Lock {self._path} held by live process {owner}")
                return False
            age = self.age()
            if age < self._stale_after:
                logger.debug(f"Lock {self._path} is {age:.0f}s old, leaving it alone")
                return False
            logger.info(f"Reclaiming stale lock {self._path} (owner {owner}, {age:.0f}s old)")
            shutil.rmtree(self._path, ignore_errors=True)
            if not self._try_create():
                return False

        # Two reclaimers can each remove and recreate the directory; the
        # pid file decides which of them owns it.
        try:
            (self._path / PID_FILENAME).write_text(f"{self._pid}\n")
        except OSError as e:
            logger.debug(f"Lost lock {self._path} while claiming it: {e}")
            return False
        winner = self.owner_pid()
        if winner != self._pid:
            logger.debug(f"Lock {self._path} claimed by process {winner}")
            return False
        self._held = True
        return True

    def release(self) -> None:
        """Remove the lock directory if this handle owns it."""
        if not self._held:
            return
        shutil.rmtree(self._path, ignore_errors=True)
        self._held = False

    def __enter__(self) -> SyncLock:
        return self

    def __exit__(self, *args: object) -> None:
        self.release()
