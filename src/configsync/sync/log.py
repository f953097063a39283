"""Bounded, append-only sync log.

Every observable transition of a sync run is written as one line:

    [YYYY-MM-DD HH:MM:SS] CATEGORY: detail

The file is trimmed to its most recent lines when a run ends.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

DEFAULT_MAX_LINES = 500
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class SyncLog:
    """Line-oriented log file with a line cap."""

    def __init__(
        self,
        path: Path,
        max_lines: int = DEFAULT_MAX_LINES,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._path = Path(path)
        self._max_lines = max_lines
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_lines(self) -> int:
        return self._max_lines

    def write(self, category: str, detail: str) -> str:
        """Append one entry.

        Args:
            category: Upper-case tag such as COMMIT, PUSH or CONFLICT.
            detail: Human-readable description.

        Returns:
            The line written, without the trailing newline.
        """
        line = f"[{self._clock().strftime(TIMESTAMP_FORMAT)}] {category}: {detail}"
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
        return line

    def read(self) -> list[str]:
        """All entries, oldest first. Empty if the log does not exist."""
        if not self._path.exists():
            return []
        return self._path.read_text(encoding="utf-8").splitlines()

    def tail(self, count: int) -> list[str]:
        """The most recent `count` entries."""
        if count <= 0:
            return []
        return self.read()[-count:]

    def last(self) -> str | None:
        entries = self.tail(1)
        return entries[0] if entries else None

    def trim(self) -> None:
        """Drop the oldest entries so at most max_lines remain."""
        lines = self.read()
        if len(lines) <= self._max_lines:
            return
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text("\n".join(lines[-self._max_lines :]) + "\n", encoding="utf-8")
        os.replace(tmp_path, self._path)
