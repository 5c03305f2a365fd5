import asyncio
import atexit
import logging
import os
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import Config
from .constants import APP_NAME, LOG_FILE, PID_FILE
from .engine import SyncEngine
from .scheduler import AsyncioTimerHost, PosixSignalSource, TriggerScheduler
from .system import get_system

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)

FOCUS_LOST_SIGNAL = signal.SIGUSR1
"""int: Signal a host application sends when its window loses focus."""

MANUAL_SYNC_SIGNAL = signal.SIGUSR2
"""int: Signal requesting a non-silent sync through the running daemon."""

RELOAD_SIGNAL = signal.SIGHUP
"""int: Signal requesting a configuration reload."""


def setup_logging(interactive: bool, max_log_size: int = 5 * 1024 * 1024) -> None:
    """Configures the logging subsystem.

    Args:
        interactive (bool): If True, logs to stdout. If False, logs to file/stderr
                            with rotation enabled.
        max_log_size (int, optional): Rotation threshold in bytes for the log file.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )

    # Always log to stderr (captured by systemd/launchd).
    stream_handler = logging.StreamHandler(
        sys.stderr if not interactive else sys.stdout
    )
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if not interactive:
        # In daemon mode, rotate logs to file.
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=max_log_size,
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def read_pid() -> int | None:
    """Returns the PID of the running daemon, or None if it is not running."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
    except (ValueError, OSError):
        return None
    return pid


def signal_daemon(signum: int) -> bool:
    """Sends a signal to the running daemon.

    Args:
        signum (int): The signal to deliver.

    Returns:
        bool: True if a daemon was found and signalled.
    """
    pid = read_pid()
    if pid is None:
        return False
    try:
        os.kill(pid, signum)
    except OSError as e:
        logger.warning(f"Could not signal daemon (pid {pid}): {e}")
        return False
    return True


async def serve(config_path: Path | None = None) -> None:
    """Runs the triggers until SIGTERM or SIGINT.

    SIGUSR1 reports host focus loss, SIGUSR2 requests a manual sync and
    SIGHUP reloads the configuration.

    Args:
        config_path (Path | None): Configuration file. Defaults to CONFIG_FILE.
    """
    loop = asyncio.get_running_loop()
    config = Config.load(config_path)

    engine = SyncEngine(notifier=get_system())
    # Held for the whole run so focus-lost never hits the default action.
    focus_source = PosixSignalSource(FOCUS_LOST_SIGNAL)
    focus_source.open()
    scheduler = TriggerScheduler(engine, AsyncioTimerHost(), focus_source)
    scheduler.configure(config)

    stop = asyncio.Event()
    manual_tasks: set[asyncio.Task] = set()

    def reload() -> None:
        nonlocal config
        logger.info("RELOAD: Re-reading configuration.")
        config = Config.load(config_path)
        scheduler.configure(config)

    def manual_sync() -> None:
        task = loop.create_task(engine.run(config, silent=False))
        manual_tasks.add(task)
        task.add_done_callback(manual_tasks.discard)

    handled = {
        RELOAD_SIGNAL: reload,
        MANUAL_SYNC_SIGNAL: manual_sync,
        signal.SIGTERM: stop.set,
        signal.SIGINT: stop.set,
    }
    for signum, handler in handled.items():
        loop.add_signal_handler(signum, handler)

    repo = config.sync.repository_path or "(no repository configured)"
    logger.info(f"DAEMON: Started for {repo}.")
    try:
        await stop.wait()
    finally:
        scheduler.shutdown()
        focus_source.close()
        for signum in handled:
            loop.remove_signal_handler(signum)
        # Running syncs are never interrupted mid-command.
        await scheduler.wait_idle()
        if manual_tasks:
            await asyncio.gather(*list(manual_tasks))
        logger.info("DAEMON: Stopped.")


def main(config_path: Path | None = None) -> None:
    """The daemon entry point.

    Args:
        config_path (Path | None, optional): Configuration file.
            Defaults to CONFIG_FILE.
    """
    limits = Config.load(config_path).limits
    setup_logging(interactive=False, max_log_size=limits.max_log_size)

    # PID File Management.
    try:
        with open(PID_FILE, "w") as f:
            f.write(str(os.getpid()))

        # Ensure cleanup on exit.
        atexit.register(lambda: PID_FILE.unlink(missing_ok=True))
    except OSError as e:
        logger.warning(f"Could not write PID file: {e}")

    asyncio.run(serve(config_path))


if __name__ == "__main__":
    main()
