"""Watch mode: run syncs on file changes and on a timer.

This module provides:
- IgnorePatterns: Paths whose changes never trigger a sync (.git, editor
  swap files)
- ChangeCollector: watchdog handler that coalesces a burst of events and
  fires once the burst has been quiet for `sync_delay_s`; paused while a
  sync runs so the sync's own working tree writes are not picked up
- SyncScheduler: Calls a sync function after each burst and every
  `interval_s` seconds, one call at a time
"""

from __future__ import annotations

import fnmatch
import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 300.0
DEFAULT_SYNC_DELAY_S = 3.0
DEFAULT_SETTLE_S = 0.5

DEFAULT_IGNORE_PATTERNS = [
    ".git",
    ".git/**",
    ".DS_Store",
    "*.tmp",
    "*.swp",
    "*.swo",
    "*~",
    "~*",
    "4913",  # vim's write probe
]


class IgnorePatterns:
    """Matches repository-relative paths against glob patterns."""

    def __init__(self, patterns: list[str] | None = None) -> None:
        self._patterns = list(DEFAULT_IGNORE_PATTERNS)
        if patterns:
            self._patterns.extend(patterns)

    def should_ignore(self, path: Path, base_path: Path) -> bool:
        """Check if a change to `path` should be ignored.

        Paths outside `base_path` are always ignored.
        """
        try:
            rel_path = path.relative_to(base_path)
        except ValueError:
            return True

        rel_str = rel_path.as_posix()
        if rel_str == ".":
            return False
        top = rel_str.split("/", 1)[0]

        for pattern in self._patterns:
            if fnmatch.fnmatch(rel_str, pattern) or fnmatch.fnmatch(path.name, pattern):
                return True
            if "/" not in pattern and "*" not in pattern and top == pattern:
                return True
        return False


class ChangeCollector(FileSystemEventHandler):
    """Coalesces file system events into one callback per burst."""

    def __init__(
        self,
        base_path: Path,
        on_burst: Callable[[list[Path]], None],
        sync_delay_s: float = DEFAULT_SYNC_DELAY_S,
        ignore_patterns: IgnorePatterns | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            base_path: Directory being watched.
            on_burst: Called with the changed paths once events stop arriving.
            sync_delay_s: Quiet period that ends a burst.
            ignore_patterns: Paths to drop.
        """
        super().__init__()
        self._base_path = base_path
        self._on_burst = on_burst
        self._sync_delay_s = sync_delay_s
        self._ignore = ignore_patterns or IgnorePatterns()

        self._pending: dict[str, Path] = {}
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._paused = False
        self._ignore_until = 0.0

    def _flush(self) -> None:
        with self._lock:
            changed = list(self._pending.values())
            self._pending.clear()
            self._timer = None

        if changed:
            self._on_burst(changed)

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        """Drop events until resume(), along with any burst already pending."""
        with self._lock:
            self._paused = True
            if self._timer:
                self._timer.cancel()
                self._timer = None
            self._pending.clear()

    def resume(self, settle_s: float = DEFAULT_SETTLE_S) -> None:
        """Accept events again once `settle_s` seconds have passed."""
        with self._lock:
            self._paused = False
            self._ignore_until = time.monotonic() + settle_s

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Record a change and restart the quiet-period timer."""
        if event.event_type in ("opened", "closed_no_write"):
            return
        with self._lock:
            if self._paused or time.monotonic() < self._ignore_until:
                return

        paths = [event.src_path]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(dest)

        for raw in paths:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8", errors="replace")
            path = Path(raw)
            if self._ignore.should_ignore(path, self._base_path):
                continue
            with self._lock:
                self._pending[str(path)] = path
                if self._timer:
                    self._timer.cancel()
                self._timer = threading.Timer(self._sync_delay_s, self._flush)
                self._timer.daemon = True
                self._timer.start()

    def stop(self) -> None:
        """Stop any pending timers."""
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None
            self._pending.clear()


class SyncScheduler:
    """Runs a sync function on file changes and on a fixed interval.

    Runs never overlap within the scheduler. Each run still takes the
    cross-process lock, so scheduled and manual invocations can coexist.
    """

    def __init__(
        self,
        watch_path: Path,
        run_sync: Callable[[], object],
        interval_s: float = DEFAULT_INTERVAL_S,
        sync_delay_s: float = DEFAULT_SYNC_DELAY_S,
        ignore_patterns: list[str] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            watch_path: Directory to watch.
            run_sync: Called for each triggered sync.
            interval_s: Seconds between periodic syncs.
            sync_delay_s: Quiet period after a burst of changes.
            ignore_patterns: Additional patterns to ignore.
        """
        self._watch_path = Path(watch_path).resolve()
        if not self._watch_path.is_dir():
            raise ValueError(f"Watch path must be a directory: {watch_path}")

        self._run_sync = run_sync
        self._interval_s = interval_s
        self._handler = ChangeCollector(
            base_path=self._watch_path,
            on_burst=self._on_burst,
            sync_delay_s=sync_delay_s,
            ignore_patterns=IgnorePatterns(ignore_patterns),
        )
        self._observer: BaseObserver = Observer()
        self._trigger = threading.Event()
        self._stopped = threading.Event()
        self._runs = 0

    @property
    def runs(self) -> int:
        """Number of syncs run so far."""
        return self._runs

    def _on_burst(self, changed: list[Path]) -> None:
        logger.info(f"{len(changed)} path(s) changed, scheduling sync")
        self.request_sync()

    def request_sync(self) -> None:
        """Ask for a sync as soon as the current one (if any) finishes."""
        self._trigger.set()

    def stop(self) -> None:
        """Make run_forever return after the current sync."""
        self._stopped.set()
        self._trigger.set()

    def _sync_once(self) -> None:
        self._runs += 1
        self._handler.pause()
        try:
            self._run_sync()
        except Exception:
            logger.exception("Sync run raised")
        finally:
            self._handler.resume()

    def run_forever(self) -> None:
        """Sync once, then on every trigger or interval until stopped."""
        self._observer.schedule(self._handler, str(self._watch_path), recursive=True)
        self._observer.start()
        try:
            self._sync_once()
            while not self._stopped.is_set():
                triggered = self._trigger.wait(timeout=self._interval_s)
                self._trigger.clear()
                if self._stopped.is_set():
                    break
                if not triggered:
                    logger.debug("Interval elapsed, syncing")
                self._sync_once()
        finally:
            self._handler.stop()
            self._observer.stop()
            self._observer.join(timeout=5.0)
