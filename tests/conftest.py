"""Shared fixtures: isolated git/config environment, real repos, fake repos."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from git import Repo

from configsync.core.config import SyncConfig
from configsync.core.errors import BranchMismatchError, GitOperationError
from configsync.core.types import AheadBehind
from configsync.sync import Reconciler, SyncLock, SyncLog


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point configsync and git at throwaway config locations."""
    home = tmp_path / "home"
    home.mkdir()
    gitconfig = home / ".gitconfig"
    gitconfig.write_text(
        "[user]\n"
        "\tname = Sync Test\n"
        "\temail = sync@example.com\n"
        "[init]\n"
        "\tdefaultBranch = main\n"
        "[commit]\n"
        "\tgpgsign = false\n"
        "[protocol \"file\"]\n"
        "\tallow = always\n"
    )
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("CONFIGSYNC_HOME", str(home / ".configsync"))
    return home


# =================================================================
# Real git repositories
# =================================================================


def commit_file(repo: Repo, relpath: str, content: str, message: str | None = None) -> str:
    """Write, stage and commit one file. Returns the new HEAD sha."""
    path = Path(str(repo.working_tree_dir)) / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.git.add(relpath)
    repo.git.commit("-m", message or f"update {relpath}")
    return repo.head.commit.hexsha


def give_away(path: Path, uid: int = 65534) -> None:
    """Hand a tree to another uid so git reports dubious ownership."""
    for root, dirs, files in os.walk(path):
        for name in dirs + files:
            os.lchown(os.path.join(root, name), uid, uid)
    os.lchown(path, uid, uid)


requires_root = pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() != 0, reason="needs root to chown"
)


@pytest.fixture
def remote_repo(
tmp_path: Path) -> Path:
    """A bare remote whose main branch holds settings.json."""
    seed_path = tmp_path / "seed"
    seed = Repo.init(seed_path)
    seed.git.symbolic_ref("HEAD", "refs/heads/main")
    commit_file(seed, "settings.json", '{"theme": "dark"}\n', "initial")
    bare_path = tmp_path / "remote.git"
    Repo.clone_from(str(seed_path), str(bare_path), bare=True)
    return bare_path


@pytest.fixture
def clone_factory(tmp_path: Path, remote_repo: Path) -> Callable[[str], Repo]:
    """Clone the remote into tmp_path/<name> on branch main."""

    def _clone(name: str) -> Repo:
        return Repo.clone_from(str(remote_repo), str(tmp_path / name), branch="main")

    return _clone


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., SyncConfig]:
    """SyncConfig for a working copy with per-test lock and log paths."""

    def _make(repo: Path, **overrides: Any) -> SyncConfig:
        values: dict[str, Any] = {
            "repo": repo,
            "lock_dir": tmp_path / "locks" / f"{Path(repo).name}.lock",
            "log_path": tmp_path / "logs" / f"{Path(repo).name}.log",
            "debounce_seconds": 0,
        }
        values.update(overrides)
        return SyncConfig(**values)

    return _make


@pytest.fixture
def make_reconciler(make_config: Callable[..., SyncConfig]) -> Callable[..., Reconciler]:
    """Reconciler over a real working copy with a mock notifier."""

    def _make(repo: Repo | Path, notify: MagicMock | None = None, **overrides: Any) -> Reconciler:
        path = Path(str(repo.working_tree_dir)) if isinstance(repo, Repo) else repo
        config = make_config(path, **overrides)
        return Reconciler(config, notify=notify or MagicMock())

    return _make


# =================================================================
# Fake repository
# =================================================================

MUTATING_CALLS = frozenset({
    "abort_rebase",
    "abort_merge",
    "stage_all",
    "commit",
    "merge_ff_only",
    "rebase",
    "push",
    "update_submodules_from_upstream",
    "sync_submodules",
})


class FakeRepository:
    """In-memory stand-in for GitRepository recording every call."""

    def __init__(
        self,
        path: Path,
        branch: str | None = "main",
        local_head: str = "a" * 40,
        remote_head: str | None = "a" * 40,
        counts: AheadBehind = AheadBehind(0, 0),
        dirty: bool = False,
        staged: list[str] | None = None,
        failures: set[str] | None = None,
        rebasing: bool = False,
        merging: bool = False,
        submodules: bool = False,
    ) -> None:
        self.path = path
        self.branch = branch
        self.local_head = local_head
        self._remote_head = remote_head
        self.counts = counts
        self.dirty = dirty
        self.staged = staged if staged is not None else ["settings.json"]
        self.failures = failures or set()
        self.rebasing = rebasing
        self.merging = merging
        self.submodules = submodules
        self.calls: list[tuple[Any, ...]] = []

    def _call(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.failures:
            raise GitOperationError([name, *map(str, args)], f"{name} failed")

    def _check(self, name: str) -> None:
        if name in self.failures:
            raise GitOperationError([name], f"{name} failed")

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def mutating_calls(self) -> list[str]:
        return [name for name in self.call_names() if name in MUTATING_CALLS]

    def current_branch(self) -> str | None:
        self._check("current_branch")
        return None if self.rebasing else self.branch

    def require_branch(self, expected: str) -> None:
        if self.current_branch() != expected:
            raise BranchMismatchError(self.current_branch(), expected)

    def rebase_in_progress(self) -> bool:
        return self.rebasing

    def merge_in_progress(self) -> bool:
        return self.merging

    def abort_rebase(self) -> None:
        self.rebasing = False
        self._call("abort_rebase")

    def abort_merge(self) -> None:
        self.merging = False
        self._call("abort_merge")

    def has_local_changes(self) -> bool:
        self._check("has_local_changes")
        return self.dirty

    def stage_all(self) -> None:
        self._call("stage_all")

    def staged_paths(self) -> list[str]:
        return list(self.staged)

    def commit(self, message: str) -> None:
        self._call("commit", message)
        self.dirty = False

    def fetch(self, remote: str, branch: str) -> None:
        self._call("fetch", remote, branch)

    def head(self) -> str:
        return self.local_head

    def remote_head(self, remote: str, branch: str) -> str | None:
        return self._remote_head

    def ahead_behind(self, remote: str, branch: str) -> AheadBehind:
        self._call("ahead_behind", remote, branch)
        return self.counts

    def merge_ff_only(self, ref: str) -> None:
        self._call("merge_ff_only", ref)

    def rebase(self, ref: str) -> None:
        self._call("rebase", ref)

    def push(self, remote: str, branch: str, set_upstream: bool = False) -> None:
        self._call("push", remote, branch, set_upstream)

    def has_submodules(self) -> bool:
        return self.submodules

    def update_submodules_from_upstream(self) -> None:
        self._call("update_submodules_from_upstream")

    def sync_submodules(self) -> None:
        self._call("sync_submodules")


@pytest.fixture
def fake_repo_factory(tmp_path: Path) -> Callable[..., FakeRepository]:
    """Build a FakeRepository rooted at tmp_path/config."""

    def _make(**kwargs: Any) -> FakeRepository:
        return FakeRepository(tmp_path / "config", **kwargs)

    return _make


@pytest.fixture
def fake_reconciler(
    tmp_path: Path,
) -> Callable[..., tuple[Reconciler, MagicMock, MagicMock]]:
    """Reconciler wired to a fake repository, a mock notifier and a mock sleep.

    Returns (reconciler, notify, sleep).
    """

    def _make(
        fake: FakeRepository,
        lock: SyncLock | None = None,
        **overrides: Any,
    ) -> tuple[Reconciler, MagicMock, MagicMock]:
        values: dict[str, Any] = {
            "repo": fake.path,
            "lock_dir": tmp_path / "sync.lock",
            "log_path": tmp_path / "sync.log",
            "debounce_seconds": 5.0,
        }
        values.update(overrides)
        config = SyncConfig(**values)
        notify = MagicMock()
        sleep = MagicMock()
        reconciler = Reconciler(
            config,
            log=SyncLog(config.log_file, max_lines=config.max_log_lines),
            lock=lock or SyncLock(config.lock_path, is_alive=lambda pid: False),
            notify=notify,
            open_repository=lambda path: fake,  # type: ignore[arg-type,return-value]
            sleep=sleep,
        )
        return reconciler, notify, sleep

    return _make
