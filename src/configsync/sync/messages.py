"""Commit messages and user-facing hints for sync runs."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

COMMIT_PREFIX = "auto-sync"
COMMIT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"

# Order in which categories appear in a commit summary
CATEGORY_ORDER = ("settings", "skills", "agents", "commands", "hooks", "config")

# Top-level directories with their own category
DIRECTORY_CATEGORIES = frozenset({"skills", "agents", "commands", "hooks"})
SETTINGS_FILE = "settings.json"


def categorize(path: str) -> str:
    """Map a repository-relative path to its change category."""
    if path == SETTINGS_FILE:
        return "settings"
    top = path.split("/", 1)[0]
    if top in DIRECTORY_CATEGORIES:
        return top
    return "config"


def summarize_changes(paths: Iterable[str]) -> str:
    """Summarize changed paths as a comma-separated category list.

    Returns:
        e.g. "settings, skills", or "config" when there are no paths.
    """
    seen = {categorize(p) for p in paths}
    summary = ", ".join(c for c in CATEGORY_ORDER if c in seen)
    return summary or "config"


def build_commit_message(paths: Iterable[str], now: datetime) -> str:
    """Build the message for an automatic commit.

    Args:
        paths: Staged paths, relative to the repository root.
        now: Commit time.

    Returns:
        e.g. "auto-sync: settings, hooks (2024-05-01 12:30)".
    """
    return f"{COMMIT_PREFIX}: {summarize_changes(paths)} ({now.strftime(COMMIT_TIMESTAMP_FORMAT)})"


def manual_resolution_command(repo: str, remote: str, branch: str) -> str:
    """Shell command a user runs to resolve a sync conflict by hand."""
    return f"cd {repo} && git fetch {remote} {branch} && git rebase {remote}/{branch}"
