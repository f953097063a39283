"""Sync command for the configsync CLI.

Commands:
- sync: Run one sync pass (scheduled or --now)
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from configsync.cli.config import load_sync_config, repo_options
from configsync.sync import Reconciler, SyncOutcome

_SUMMARIES = {
    SyncOutcome.NOT_A_REPOSITORY: "Not a git repository.",
    SyncOutcome.WRONG_BRANCH: "Wrong branch checked out.",
    SyncOutcome.LOCKED: "Another sync is running.",
    SyncOutcome.OFFLINE: "Remote unreachable, local changes kept.",
    SyncOutcome.UP_TO_DATE: "Everything is up to date.",
    SyncOutcome.PUBLISHED: "Branch published to remote.",
    SyncOutcome.PUBLISH_FAILED: "Initial push failed.",
    SyncOutcome.PUSHED: "Local commits pushed.",
    SyncOutcome.PUSH_FAILED: "Push failed, will retry next run.",
    SyncOutcome.FAST_FORWARDED: "Fast-forwarded to remote.",
    SyncOutcome.FAST_FORWARD_FAILED: "Fast-forward failed.",
    SyncOutcome.REBASED: "Rebased onto remote and pushed.",
    SyncOutcome.REBASE_PUSH_FAILED: "Rebased, but push failed; will retry next run.",
    SyncOutcome.CONFLICT: "Conflict: manual resolution required (see log).",
    SyncOutcome.FAILED: "Sync failed (see log).",
}


def summarize(outcome: SyncOutcome) -> str:
    return _SUMMARIES.get(outcome, outcome.value)


@click.command()
@click.option("--now", "immediate", is_flag=True, help="Skip the debounce delay.")
@click.option("--quiet", "-q", is_flag=True, help="Print nothing; rely on the sync log.")
@repo_options
def sync(
    immediate: bool,
    quiet: bool,
    repo: Path | None,
    branch: str | None,
    remote: str | None,
) -> None:
    """Commit local changes and reconcile with the remote.

    Without --now the run waits a few seconds after taking the lock so a
    burst of triggers collapses into one run.
    """
    config = load_sync_config(repo=repo, branch=branch, remote=remote)
    result = Reconciler(config).run(immediate=immediate)

    if not quiet:
        if result.commit_message:
            click.echo(f"Committed: {result.commit_message}")
        message = summarize(result.outcome)
        if result.exit_code:
            click.echo(click.style(message, fg="red"), err=True)
        else:
            click.echo(message)

    if result.exit_code:
        sys.exit(result.exit_code)
