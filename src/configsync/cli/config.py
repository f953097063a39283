"""Configuration utilities and the config command for the configsync CLI.

Commands:
- config: Show or change stored settings
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from configsync.core.config import CONFIG_KEYS, SyncConfig, coerce_value, get_config_dir
from configsync.core.errors import ConfigError

F = TypeVar("F", bound=Callable[..., Any])


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load stored settings from the config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save settings to the config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def build_sync_config(**overrides: Any) -> SyncConfig:
    """Effective settings: stored config with command-line overrides applied.

    Overrides whose value is None are ignored.
    """
    values = load_config()
    values.update({k: v for k, v in overrides.items() if v is not None})
    return SyncConfig.from_mapping(values)


def repo_options(func: F) -> F:
    """Add --repo/--branch/--remote overrides to a command."""
    func = click.option("--remote", default=None, help="Remote to sync with.")(func)
    func = click.option("--branch", default=None, help="Branch to keep in sync.")(func)
    func = click.option(
        "--repo",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Config directory (a git working copy).",
    )(func)
    return func


def load_sync_config(**overrides: Any) -> SyncConfig:
    """build_sync_config for commands: config errors exit with status 2."""
    try:
        return build_sync_config(**overrides)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)


def setup_logging(verbose: bool = False) -> None:
    """Send configsync log records to stdout.

    Args:
        verbose: Log at DEBUG instead of WARNING.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    configsync_logger = logging.getLogger("configsync")
    for existing in configsync_logger.handlers[:]:
        configsync_logger.removeHandler(existing)
    configsync_logger.addHandler(handler)
    configsync_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    configsync_logger.propagate = False


@click.command("config")
@click.option(
    "--set",
    "assignment",
    nargs=2,
    metavar="KEY VALUE",
    default=None,
    help="Store a setting.",
)
@click.option("--unset", "unset_key", metavar="KEY", default=None, help="Remove a stored setting.")
def config_cmd(assignment: tuple[str, str] | None, unset_key: str | None) -> None:
    """Show the effective settings, or change a stored one.

    Keys: repo, branch, remote, lock_dir, log_path, max_log_lines,
    debounce_seconds, stale_lock_seconds, notifications.
    """
    stored = load_config()

    if assignment:
        key, value = assignment
        try:
            coerced = coerce_value(key, value)
            SyncConfig.from_mapping({**stored, key: coerced})
        except ConfigError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(2)
        stored[key] = str(coerced) if isinstance(coerced, Path) else coerced
        save_config(stored)
        click.echo(f"Set {key} = {stored[key]}")
        return

    if unset_key:
        if unset_key not in CONFIG_KEYS:
            click.echo(f"Error: Unknown config key: {unset_key}", err=True)
            sys.exit(2)
        if stored.pop(unset_key, None) is not None:
            save_config(stored)
        click.echo(f"Unset {unset_key}")
        return

    config = load_sync_config()
    click.echo(f"Config file: {get_config_file()}")
    for key, value in config.to_dict().items():
        marker = "" if key in stored else "  (default)"
        click.echo(f"  {key} = {value}{marker}")
