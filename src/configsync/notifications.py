"""Desktop notifications for sync failures and recoveries.

This module provides:
- Native OS notifications (macOS terminal-notifier or osascript,
  Linux notify-send)
- Notifier: callable bound to the sync log and the user's preference
- A missing notifier never raises: sending just reports False
"""

from __future__ import annotations

import logging
import platform
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path

logger = logging.getLogger(__name__)

APP_TITLE = "Config Sync"
NOTIFICATION_GROUP = "configsync"


class NotificationType(Enum):
    """Severity of a notification."""

    INFO = auto()
    ERROR = auto()


@dataclass
class Notification:
    """Represents a notification to display."""

    title: str
    message: str
    type: NotificationType = NotificationType.ERROR
    open_path: Path | None = None  # File opened when the notification is clicked


def _applescript_quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _notify_macos(notification: Notification) -> bool:
    """Send notification on macOS.

    Prefers terminal-notifier (groups notifications and can open the log
    on click), falls back to osascript.

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent successfully.
    """
    sound = "default" if notification.type == NotificationType.INFO else "Basso"

    if shutil.which("terminal-notifier"):
        command = [
            "terminal-notifier",
            "-title", notification.title,
            "-message", notification.message,
            "-sound", sound,
            "-group", NOTIFICATION_GROUP,
        ]
        if notification.open_path is not None:
            command += ["-execute", f"open '{notification.open_path}'"]
        try:
            subprocess.run(command, capture_output=True, check=True)
            return True
        except (OSError, subprocess.CalledProcessError) as e:
            logger.debug(f"terminal-notifier failed: {e}")

    try:
        title = _applescript_quote(notification.title)
        message = _applescript_quote(notification.message)
        script = f'display notification "{message}" with title "{title}" sound name "{sound}"'
        subprocess.run(
            ["osascript", "-e", script],
            capture_output=True,
            check=True,
        )
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        logger.debug(f"macOS notification failed: {e}")
        return False


def _notify_linux(notification: Notification) -> bool:
    """Send notification on Linux using notify-send.

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent successfully.
    """
    urgency = "normal" if notification.type == NotificationType.INFO else "critical"
    try:
        subprocess.run(
            [
                "notify-send",
                "--urgency", urgency,
                "--app-name", notification.title,
                notification.title,
                notification.message,
            ],
            capture_output=True,
            check=True,
        )
        return True
    except FileNotFoundError:
        logger.debug("notify-send not found")
        return False
    except (OSError, subprocess.CalledProcessError) as e:
        logger.debug(f"Linux notification failed: {e}")
        return False


def send_notification(notification: Notification) -> bool:
    """Send a system notification.

    Uses native OS notification system:
    - macOS: terminal-notifier, else Notification Center via osascript
    - Linux: notify-send

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent, False if failed or unavailable.
    """
    system = platform.system()

    if system == "Darwin":
        return _notify_macos(notification)
    elif system == "Linux":
        return _notify_linux(notification)
    else:
        logger.warning(f"Notifications not supported on {system}")
        return False


class Notifier:
    """Sends sync notifications under a fixed title.

    Instances are callable: ``notifier("Push failed.")``.
    """

    def __init__(
        self,
        log_path: Path | None = None,
        enabled: bool = True,
        title: str = APP_TITLE,
    ) -> None:
        self._log_path = log_path
        self._enabled = enabled
        self._title = title

    @property
    def enabled(self) -> bool:
        return self._enabled

    def __call__(self, message: str, level: NotificationType = NotificationType.ERROR) -> bool:
        """Notify the user.

        Args:
            message: Body text.
            level: INFO for recoveries, ERROR for failures.

        Returns:
            True if a notification was shown.
        """
        if not self._enabled:
            logger.debug(f"Notifications disabled, dropping: {message}")
            return False
        return send_notification(Notification(
            title=self._title,
            message=message,
            type=level,
            open_path=self._log_path,
        ))
