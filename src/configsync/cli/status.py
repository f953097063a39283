"""Inspection commands for the configsync CLI.

Commands:
- status: Branch, remotes, local changes, submodules and last sync
- log: Recent sync log entries
- diff: Uncommitted changes
- update-submodules: Move submodules to their upstream tips
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from configsync.cli.config import load_sync_config, repo_options
from configsync.core.config import SyncConfig
from configsync.core.errors import GitOperationError, RepositoryError
from configsync.sync import GitRepository, SyncLog


def _open_repository(config: SyncConfig) -> GitRepository:
    try:
        return GitRepository(config.repo)
    except RepositoryError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _section(title: str, body: str, empty: str = "") -> None:
    click.echo(click.style(f"{title}:", bold=True))
    click.echo(body if body else empty)
    click.echo("")


@click.command()
@repo_options
def status(repo: Path | None, branch: str | None, remote: str | None) -> None:
    """Show sync status and local changes."""
    config = load_sync_config(repo=repo, branch=branch, remote=remote)
    git_repo = _open_repository(config)

    try:
        _section("Branch", git_repo.branch_summary())
        _section("Remote", git_repo.remotes(), "  (none)")
        _section("Changes", git_repo.short_status(), "  (clean)")
        _section("Submodules", git_repo.submodule_status(), "  (none)")
    except GitOperationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    last = SyncLog(config.log_file).last()
    click.echo(click.style("Last sync:", bold=True))
    click.echo(last or "  (no log yet)")


@click.command("log")
@click.option("--lines", "-n", default=20, show_default=True, help="Number of entries to show.")
@click.option("--full", is_flag=True, help="Show the whole log.")
@repo_options
def log_cmd(
    lines: int,
    full: bool,
    repo: Path | None,
    branch: str | None,
    remote: str | None,
) -> None:
    """Show recent sync log entries."""
    config = load_sync_config(repo=repo, branch=branch, remote=remote)
    sync_log = SyncLog(config.log_file, max_lines=config.max_log_lines)
    if not sync_log.path.exists():
        click.echo("No sync log found.")
        return

    for entry in sync_log.read() if full else sync_log.tail(lines):
        click.echo(entry)


@click.command()
@repo_options
def diff(repo: Path | None, branch: str | None, remote: str | None) -> None:
    """Show uncommitted changes (unstaged, staged, untracked)."""
    config = load_sync_config(repo=repo, branch=branch, remote=remote)
    git_repo = _open_repository(config)

    try:
        for output in (git_repo.diff(), git_repo.diff(staged=True)):
            if output:
                click.echo(output)
        for path in git_repo.untracked_files():
            click.echo(path)
    except GitOperationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.command("update-submodules")
@repo_options
def update_submodules(repo: Path | None, branch: str | None, remote: str | None) -> None:
    """Pull the latest submodule versions from upstream."""
    config = load_sync_config(repo=repo, branch=branch, remote=remote)
    git_repo = _open_repository(config)

    if not git_repo.has_submodules():
        click.echo("No submodules configured.")
        return

    try:
        git_repo.update_submodules_all()
    except GitOperationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo("Done. Run 'configsync sync --now' to commit and push.")
