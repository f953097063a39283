"""Command-line interface for configsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- sync: Commit local changes and reconcile with the remote
- watch: Sync on file changes and on a fixed interval
- status: Show sync status and local changes
- log: Show recent sync log entries
- diff: Show uncommitted changes
- update-submodules: Pull latest submodule versions from upstream
- config: Show or change stored settings
"""

from __future__ import annotations

import click

from configsync.cli.config import (
    build_sync_config,
    config_cmd,
    get_config_file,
    load_config,
    save_config,
    setup_logging,
)
from configsync.cli.status import diff, log_cmd, status, update_submodules
from configsync.cli.sync import sync
from configsync.cli.watch import watch


@click.group()
@click.version_option(package_name="configsync")
@click.option("--verbose", "-v", is_flag=True, help="Log debug details to stdout.")
def cli(verbose: bool) -> None:
    """configsync - keep a config directory in sync through git."""
    setup_logging(verbose)


# Sync commands
cli.add_command(sync)
cli.add_command(watch)

# Inspection commands
cli.add_command(status)
cli.add_command(log_cmd)
cli.add_command(diff)
cli.add_command(update_submodules)

# Settings
cli.add_command(config_cmd)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "build_sync_config",
    "cli",
    "get_config_file",
    "load_config",
    "main",
    "save_config",
]
