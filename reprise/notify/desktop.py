"""Desktop notification sink — hands notifications to the OS notifier.

Uses ``notify-send`` on Linux and ``osascript`` on macOS, whichever is on
PATH.  Delivery is best effort: a missing backend or a failing command
raises ``NotificationError``, which the notifier swallows.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys

from reprise.errors import NotificationError
from reprise.notify import Notification

logger = logging.getLogger(__name__)

APP_NAME = "reprise"


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class DesktopNotificationSink:
    """Shows notifications through the platform's notification daemon.

    Parameters
    ----------
    command_timeout:
        Seconds to wait for the notifier command before giving up.
    """

    def __init__(self, command_timeout: float = 5.0) -> None:
        self._command_timeout = command_timeout

    @property
    def sink_name(self) -> str:
        return "desktop"

    def build_command(self, notification: Notification) -> list[str]:
        """Return the argv that displays *notification* on this platform."""
        if sys.platform == "darwin" and shutil.which("osascript"):
            script = (
                f"display notification {_applescript_quote(notification.body)} "
                f"with title {_applescript_quote(notification.title)}"
            )
            return ["osascript", "-e", script]

        if shutil.which("notify-send"):
            return [
                "notify-send",
                "--app-name",
                APP_NAME,
                "--icon",
                notification.icon,
                "--expire-time",
                str(notification.timeout_ms),
                notification.title,
                notification.body,
            ]

        raise NotificationError("No desktop notification backend found on PATH")

    def send(self, notification: Notification) -> None:
        command = self.build_command(notification)
        try:
            subprocess.run(
                command,
                check=True,
                capture_output=True,
                timeout=self._command_timeout,
            )
        except (subprocess.SubprocessError, OSError) as exc:
            raise NotificationError(f"{command[0]} failed: {exc}") from exc
        logger.debug("Desktop notification shown: %s", notification.title)
