"""Watch command for the configsync CLI.

Commands:
- watch: Sync on file changes and on a fixed interval
"""

from __future__ import annotations

from pathlib import Path

import click

from configsync.cli.config import load_sync_config, repo_options
from configsync.cli.sync import summarize
from configsync.sync import Reconciler
from configsync.watcher import DEFAULT_INTERVAL_S, DEFAULT_SYNC_DELAY_S, SyncScheduler


@click.command()
@click.option(
    "--interval",
    type=float,
    default=DEFAULT_INTERVAL_S,
    show_default=True,
    help="Seconds between periodic syncs.",
)
@click.option(
    "--sync-delay",
    type=float,
    default=DEFAULT_SYNC_DELAY_S,
    show_default=True,
    help="Quiet seconds after a change before syncing.",
)
@repo_options
def watch(
    interval: float,
    sync_delay: float,
    repo: Path | None,
    branch: str | None,
    remote: str | None,
) -> None:
    """Keep syncing: after local changes settle, and every --interval seconds.

    Runs until interrupted with Ctrl+C.
    """
    config = load_sync_config(repo=repo, branch=branch, remote=remote)
    reconciler = Reconciler(config)

    def run_sync() -> None:
        result = reconciler.run(immediate=True)
        click.echo(f"[{result.outcome.value}] {summarize(result.outcome)}")

    try:
        scheduler = SyncScheduler(
            config.repo,
            run_sync,
            interval_s=interval,
            sync_delay_s=sync_delay,
        )
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Watching {config.repo} (Ctrl+C to stop)")
    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        click.echo("\nStopping...")
