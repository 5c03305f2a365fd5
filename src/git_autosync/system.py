import logging
import subprocess
import sys

from rich.console import Console
from rich.markup import escape

from .constants import APP_NAME, APP_TITLE

logger = logging.getLogger(APP_NAME)


def _spawn(command: list[str]) -> None:
    """Starts a notifier process without waiting for it.

    The daemon runs on a single event loop, so a hung notifier (e.g.
    `notify-send` with no D-Bus session) must not hold it up.
    """
    subprocess.Popen(
        command,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )


class SystemStrategy:
    """Base class defining the interface for desktop notifications.

    Instances are callable with a single message so they can be handed to
    the sync engine directly as its notification sink.
    """

    def notify(self, title: str, message: str) -> None:
        """Sends a desktop notification.

        Args:
            title (str): The notification title.
            message (str): The notification body text.
        """
        pass

    def __call__(self, message: str) -> None:
        self.notify(APP_TITLE, message)


class MacOSStrategy(SystemStrategy):
    """System strategy implementation for macOS."""

    def notify(self, title: str, message: str) -> None:
        """Sends a notification using AppleScript."""
        # Sanitize quotes to prevent AppleScript syntax errors.
        clean_msg = message.replace('"', "'")
        script = f'display notification "{clean_msg}" with title "{title}"'
        try:
            _spawn(["osascript", "-e", script])
        except OSError as e:
            logger.debug(f"osascript notification failed: {e}")


class LinuxStrategy(SystemStrategy):
    """System strategy implementation for Linux."""

    def notify(self, title: str, message: str) -> None:
        """Sends a notification using `notify-send`."""
        try:
            _spawn(["notify-send", title, message])
        except FileNotFoundError:
            pass


class ConsoleStrategy(SystemStrategy):
    """Prints notifications to the terminal, for interactive CLI runs."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def notify(self, title: str, message: str) -> None:
        self.console.print(f"[bold blue]{title}:[/bold blue] {escape(message)}")


def get_system() -> SystemStrategy:
    """Factory function to retrieve the platform-specific system strategy.

    Returns:
        SystemStrategy: An instance of MacOSStrategy, LinuxStrategy, or the base
        SystemStrategy depending on the operating system.
    """
    if sys.platform == "darwin":
        return MacOSStrategy()
    elif sys.platform.startswith("linux"):
        return LinuxStrategy()
    else:
        return SystemStrategy()
