"""Git working copy operations used by the reconciler.

This module provides:
- GitRepository: Thin wrapper over a GitPython Repo exposing the
  operations a sync run needs (status, commit, fetch, compare, merge,
  rebase, push, submodules)
- Every failing git command surfaces as GitOperationError
"""

from __future__ import annotations

import logging
from pathlib import Path

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from configsync.core.errors import (
    BranchMismatchError,
    GitOperationError,
    RepositoryError,
)
from configsync.core.types import AheadBehind

logger = logging.getLogger(__name__)


class GitRepository:
    """A git working copy on disk."""

    def __init__(self, path: Path) -> None:
        """Open the working copy.

        Args:
            path: Root of the working copy.

        Raises:
            RepositoryError: If path holds no git metadata.
        """
        try:
            self._repo = Repo(path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryError(f"{path} is not a git repository") from e
        if self._repo.bare:
            raise RepositoryError(f"{path} is a bare repository")
        self._path = Path(str(self._repo.working_tree_dir))

    @property
    def path(self) -> Path:
        """Root of the working tree."""
        return self._path

    @property
    def git_dir(self) -> Path:
        """The repository's metadata directory."""
        return Path(self._repo.git_dir)

    def _git(self, command: str, *args: str) -> str:
        """Run a git subcommand and return its stripped stdout."""
        logger.debug(f"git {command} {' '.join(args)}")
        try:
            return str(getattr(self._repo.git, command)(*args))
        except GitCommandError as e:
            raise GitOperationError([command, *args], str(e.stderr or "")) from e

    # =================================================================
    # Branch and recovery state
    # =================================================================

    def current_branch(self) -> str | None:
        """Get the checked out branch, or None for a detached HEAD.

        Raises:
            GitOperationError: If git cannot read HEAD at all.
        """
        try:
            return str(self._repo.git.symbolic_ref("--quiet", "--short", "HEAD"))
        except GitCommandError as e:
            # --quiet exits 1 without output when HEAD is detached
            if e.status == 1:
                return None
            raise GitOperationError(
                ["symbolic-ref", "--quiet", "--short", "HEAD"], str(e.stderr or "")
            ) from e

    def require_branch(self, expected: str) -> None:
        """Raise BranchMismatchError unless `expected` is checked out."""
        current = self.current_branch()
        if current != expected:
            raise BranchMismatchError(current, expected)

    def rebase_in_progress(self) -> bool:
        """Check for state left behind by an interrupted rebase."""
        return (self.git_dir / "rebase-merge").is_dir() or (
            self.git_dir / "rebase-apply"
        ).is_dir()

    def merge_in_progress(self) -> bool:
        """Check for state left behind by an interrupted merge."""
        return (self.git_dir / "MERGE_HEAD").is_file()

    def abort_rebase(self) -> None:
        self._git("rebase", "--abort")

    def abort_merge(self) -> None:
        self._git("merge", "--abort")

    # =================================================================
    # Local changes
    # =================================================================

    def has_local_changes(self) -> bool:
        """Check for unstaged, staged, or untracked (non-ignored) changes."""
        return self._git("status", "--porcelain", "--untracked-files=all") != ""

    def stage_all(self) -> None:
        self._git("add", "-A")

    def staged_paths(self) -> list[str]:
        """Paths staged for the next commit, relative to the root."""
        output = self._git("diff", "--cached", "--name-only")
        return [line for line in output.splitlines() if line]

    def commit(self, message: str) -> None:
        self._git("commit", "--no-gpg-sign", "-m", message)

    # =================================================================
    # Remote comparison
    # =================================================================

    def fetch(self, remote: str, branch: str) -> None:
        """Fetch one branch from the remote.

        A reachable remote that simply lacks the branch is not an error;
        remote_head() then reports None.

        Raises:
            GitOperationError: If the remote cannot be reached.
        """
        try:
            self._git("fetch", remote, branch)
        except GitOperationError:
            if self._remote_lacks_branch(remote, branch):
                logger.info(f"{remote} has no branch {branch} yet")
                return
            raise

    def _remote_lacks_branch(self, remote: str, branch: str) -> bool:
        try:
            return self._git("ls-remote", "--heads", remote, branch) == ""
        except GitOperationError:
            return False

    def head(self) -> str:
        """Commit id of the local HEAD."""
        return self._git("rev-parse", "HEAD")

    def remote_head(self, remote: str, branch: str) -> str | None:
        """Commit id of the remote-tracking branch, or None if it does not exist."""
        try:
            return self._git("rev-parse", "--verify", "--quiet", f"{remote}/{branch}")
        except GitOperationError:
            return None

    def ahead_behind(self, remote: str, branch: str) -> AheadBehind:
        """Count commits unique to HEAD and to the remote-tracking branch."""
        output = self._git("rev-list", "--count", "--left-right", f"{remote}/{branch}...HEAD")
        parts = output.split()
        if len(parts) != 2:
            raise GitOperationError(
                ["rev-list", "--count", "--left-right", f"{remote}/{branch}...HEAD"],
                f"unexpected output: {output!r}",
            )
        behind, ahead = (int(p) for p in parts)
        return AheadBehind(ahead=ahead, behind=behind)

    # =================================================================
    # Integration
    # =================================================================

    def merge_ff_only(self, ref: str) -> None:
        self._git("merge", "--ff-only", ref)

    def rebase(self, ref: str) -> None:
        self._git("rebase", "--no-gpg-sign", ref)

    def push(self, remote: str, branch: str, set_upstream: bool = False) -> None:
        if set_upstream:
            self._git("push", "--set-upstream", remote, branch)
        else:
            self._git("push", remote, branch)

    # =================================================================
    # Submodules
    # =================================================================

    def has_submodules(self) -> bool:
        return (self._path / ".gitmodules").is_file()

    def update_submodules_from_upstream(self) -> None:
        """Move submodules to the tip of their upstream branches."""
        self._git("submodule", "update", "--remote")

    def sync_submodules(self) -> None:
        """Check out the submodule commits recorded in HEAD."""
        self._git("submodule", "update", "--init", "--recursive")

    def update_submodules_all(self) -> None:
        """Initialize submodules and move them to their upstream tips."""
        self._git("submodule", "update", "--remote", "--init", "--recursive")

    # =================================================================
    # Reporting
    # =================================================================

    def branch_summary(self) -> str:
        return self._git("branch", "-v")

    def remotes(self) -> str:
        return self._git("remote", "-v")

    def short_status(self) -> str:
        return self._git("status", "--short")

    def submodule_status(self) -> str:
        if not self.has_submodules():
            return ""
        return self._git("submodule", "status")

    def diff(self, staged: bool = False) -> str:
        if staged:
            return self._git("diff", "--cached")
        return self._git("diff")

    def untracked_files(self) -> list[str]:
        output = self._git("ls-files", "--others", "--exclude-standard")
        return [line for line in output.splitlines() if line]
