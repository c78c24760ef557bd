"""
Desktop Notifications

Errors from a capture shortcut are easy to miss, so fatal problems and
cached tasks are also reported as a desktop notification.

- macOS: osascript `display notification`
- Linux: notify-send
- anything else, or notifications disabled: log only
"""

import logging
import platform
import subprocess

NOTIFICATION_TITLE = "Godspeed CLI"


class LogNotifier:
    """Fallback notifier that only writes to the log"""

    def __init__(self):
        self.logger = logging.getLogger("GodspeedCli.Notifier")

    def notify(self, message: str) -> None:
        self.logger.info(f"Notification: {message}")


class _CommandNotifier(LogNotifier):
    """Runs an external command; never raises"""

    def notify(self, message: str) -> None:
        super().notify(message)
        try:
            subprocess.run(self._command(message), capture_output=True, timeout=5, check=False)
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.debug(f"Notification failed: {e}")

    def _command(self, message: str):
        raise NotImplementedError


class OsascriptNotifier(_CommandNotifier):
    def _command(self, message: str):
        script = 'display notification "{}" with title "{}"'.format(
            message.replace('\\', '\\\\').replace('"', '\\"'), NOTIFICATION_TITLE
        )
        return ['osascript', '-e', script]


class NotifySendNotifier(_CommandNotifier):
    def _command(self, message: str):
        return ['notify-send', NOTIFICATION_TITLE, message]


def create_notifier(mode: str = 'auto'):
    """
    Create the notifier for the current platform

    Args:
        mode: 'auto', 'osascript', 'notify-send' or 'none'

    Returns:
        Object with a notify(message) method
    """
    if mode == 'auto':
        system = platform.system()
        if system == "Darwin":
            mode = 'osascript'
        elif system == "Linux":
            mode = 'notify-send'
        else:
            mode = 'none'

    if mode == 'osascript':
        return OsascriptNotifier()
    elif mode == 'notify-send':
        return NotifySendNotifier()
    return LogNotifier()
