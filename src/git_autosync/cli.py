import argparse
import asyncio
import logging
import os
import subprocess
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import daemon
from .config import Config
from .constants import APP_NAME, CONFIG_FILE, LOG_FILE
from .engine import OutcomeKind, SyncEngine
from .errors import InspectionError
from .git_wrapper import GitRepo
from .inspector import inspect
from .system import ConsoleStrategy

logger = logging.getLogger(APP_NAME)
console = Console()


def run_sync(config: Config, silent: bool = False) -> int:
    """Runs a manual sync in this process.

    Args:
        config (Config): The loaded configuration.
        silent (bool, optional): Suppress progress messages. Defaults to False.

    Returns:
        int: The process exit code (1 on failure).
    """
    engine = SyncEngine(notifier=ConsoleStrategy(console))
    outcome = asyncio.run(engine.run(config, silent=silent))
    if outcome.kind is OutcomeKind.FAILED:
        if outcome.is_partial:
            console.print(
                "[bold yellow]WARNING:[/bold yellow] Local commits were kept. "
                "The next sync will retry the rest."
            )
        return 1
    return 0


def request_daemon_sync() -> int:
    """Asks the running daemon to perform a manual sync."""
    if daemon.signal_daemon(daemon.MANUAL_SYNC_SIGNAL):
        console.print("Sync requested from the running daemon.", style="green")
        return 0
    console.print("[bold red]ERROR:[/bold red] The daemon is not running.")
    return 1


def send_focus_lost() -> int:
    """Reports a host focus loss to the running daemon."""
    if daemon.signal_daemon(daemon.FOCUS_LOST_SIGNAL):
        return 0
    console.print("[bold red]ERROR:[/bold red] The daemon is not running.")
    return 1


def reload_daemon() -> int:
    """Makes the running daemon re-read its configuration."""
    if daemon.signal_daemon(daemon.RELOAD_SIGNAL):
        console.print("Configuration reload requested.", style="green")
        return 0
    console.print("[bold red]ERROR:[/bold red] The daemon is not running.")
    return 1


def show_status(config: Config) -> int:
    """Displays the daemon state, trigger settings and repository state."""
    pid = daemon.read_pid()
    triggers = config.triggers

    content = Text()
    content.append("Daemon:     ", style="bold")
    if pid:
        content.append(f"Running (pid {pid})\n", style="bold green")
    else:
        content.append("Stopped\n", style="bold red")

    content.append("Auto-sync:  ", style="bold")
    if triggers.auto_sync:
        content.append(f"every {triggers.interval} min\n", style="green")
    else:
        content.append("off\n", style="dim")

    content.append("Focus loss: ", style="bold")
    if triggers.sync_on_focus_loss:
        content.append("sync\n", style="green")
    else:
        content.append("off\n", style="dim")

    content.append("Button:     ", style="bold")
    content.append(triggers.button_location.replace("_", " "), style="cyan")

    console.print(Panel(content, title="Agent Status", expand=False))

    if not config.sync.repository_path:
        console.print(
            Panel(
                "No repository configured.\n"
                "Run [bold cyan]git-autosync config[/bold cyan] and set "
                "[bold]sync.repository_path[/bold].",
                title="Repository Status",
                expand=False,
                border_style="yellow",
            )
        )
        return 1

    repo = GitRepo(config.sync.path, remote_branch=config.sync.remote_branch)
    try:
        with console.status("Checking repository...", spinner="dots"):
            state = asyncio.run(inspect(repo))
    except InspectionError as e:
        console.print(
            Panel(
                Text(str(e), style="red"),
                title=f"Repository Status: {repo.path}",
                expand=False,
                border_style="red",
            )
        )
        return 1

    repo_content = Text()
    repo_content.append("Path:           ", style="bold")
    repo_content.append(f"{repo.path}\n", style="cyan")
    repo_content.append("Local changes:  ", style="bold")
    if state.has_local_changes:
        repo_content.append("pending commit\n", style="yellow")
    else:
        repo_content.append("none\n", style="green")
    repo_content.append("Remote changes: ", style="bold")
    if state.has_remote_changes:
        repo_content.append(f"pending pull ({repo.remote_branch})", style="yellow")
    else:
        repo_content.append(f"none ({repo.remote_branch})", style="green")

    console.print(Panel(repo_content, title="Repository Status", expand=False))
    return 0


def open_config(config_file: Path) -> None:
    """Opens the configuration file in the system default editor."""
    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, "w") as f:
            f.write(
                "# Git Auto-Sync Configuration\n\n"
                "[sync]\n"
                '# repository_path = "~/notes"\n\n'
                "[triggers]\n"
                "# auto_sync = true\n"
                '# interval = "30m"\n'
                "# sync_on_focus_loss = false\n"
            )

    editor = os.environ.get("EDITOR")
    if not editor:
        if sys.platform == "darwin":
            editor = "open"
        else:
            editor = "nano"

    console.print(f"Opening [cyan]{config_file}[/cyan]...")

    try:
        subprocess.run([editor, str(config_file)])
    except OSError as e:
        console.print(f"[red]Could not open editor: {e}[/red]")


def tail_log() -> None:
    """Follows the daemon log file in real-time."""
    if not LOG_FILE.exists():
        console.print(f"[red]No log file found yet at {LOG_FILE}.[/red]")
        return

    console.print(f"Tailing [bold cyan]{LOG_FILE}[/bold cyan] (Ctrl+C to stop)...")
    try:
        subprocess.run(["tail", "-n", "1000", "-f", str(LOG_FILE)])
    except KeyboardInterrupt:
        console.print("\nStopped.", style="dim")


def show_config_reference() -> None:
    """Displays a formatted table of all available configuration options."""
    table = Table(title="Git Auto-Sync Configuration Schema", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Type", style="dim")
    table.add_column("Default", style="yellow")
    table.add_column("Description")

    table.add_row(
        "sync",
        "repository_path",
        "str",
        '""',
        "Local repository to keep in sync. Syncs are refused while empty.",
    )
    table.add_row(
        "",
        "remote_branch",
        "str",
        '"origin/master"',
        "Remote branch diffed against HEAD to detect remote changes.",
    )
    table.add_row(
        "triggers", "auto_sync", "bool", "false", "Sync on a recurring timer."
    )
    table.add_row(
        "",
        "interval",
        "int | str",
        "30",
        "Minutes between timer syncs (e.g., 30, '45m', '2h').",
    )
    table.add_row(
        "",
        "sync_on_focus_loss",
        "bool",
        "false",
        "Sync when the host application reports focus loss.",
    )
    table.add_row(
        "",
        "button_location",
        "str",
        '"ribbon"',
        "Where the host shows the sync button: 'ribbon' or 'status_bar'.",
    )
    table.add_row(
        "limits",
        "max_log_size",
        "int | str",
        '"5mb"',
        "Max size for log files before rotation (e.g., '5mb', '1gb').",
    )

    console.print(table)


class AutoSyncHelpFormatter(argparse.HelpFormatter):
    """Groups the subcommands into categories in the help output."""

    def _format_action(self, action: argparse.Action) -> str:
        if isinstance(action, argparse._SubParsersAction):
            parts = []

            groups = {
                "Sync": ["sync", "status"],
                "Daemon": ["daemon", "focus-lost", "reload", "log"],
                "General": ["config", "help"],
            }

            subactions = list(self._iter_indented_subactions(action))

            for group_name, commands in groups.items():
                group_actions = [a for a in subactions if a.dest in commands]
                if not group_actions:
                    continue

                parts.append(f"\n  {group_name}:\n")

                self._indent()
                for subaction in group_actions:
                    parts.append(self._format_action(subaction))
                self._dedent()

            return self._join_parts(parts)

        return super()._format_action(action)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-autosync",
        formatter_class=AutoSyncHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Configuration file (default: {CONFIG_FILE})",
    )

    subparsers = parser.add_subparsers(dest="command")

    sync_parser = subparsers.add_parser("sync", help="Sync the repository now")
    sync_parser.add_argument(
        "--silent", action="store_true", help="Suppress progress messages"
    )
    sync_parser.add_argument(
        "--daemon",
        action="store_true",
        help="Ask the running daemon to sync instead of syncing here",
    )
    subparsers.add_parser("status", help="Show daemon and repository state")

    subparsers.add_parser("daemon", help="Run the background agent in the foreground")
    subparsers.add_parser(
        "focus-lost", help="Report host focus loss to the running daemon"
    )
    subparsers.add_parser("reload", help="Make the running daemon re-read its config")
    subparsers.add_parser("log", help="Tail the daemon log file")

    config_parser = subparsers.add_parser(
        "config", help="Open the config file or view options"
    )
    config_parser.add_argument(
        "--list",
        "-l",
        action="store_true",
        help="List all available configuration options and their descriptions",
    )
    subparsers.add_parser("help", help="Show this help message")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the git-autosync CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config_file = args.config or CONFIG_FILE

    if args.command == "sync":
        if args.daemon:
            sys.exit(request_daemon_sync())
        sys.exit(run_sync(Config.load(config_file), silent=args.silent))
    elif args.command == "status":
        sys.exit(show_status(Config.load(config_file)))
    elif args.command == "daemon":
        daemon.main(config_file)
        return
    elif args.command == "focus-lost":
        sys.exit(send_focus_lost())
    elif args.command == "reload":
        sys.exit(reload_daemon())
    elif args.command == "log":
        tail_log()
        return
    elif args.command == "config":
        if args.list:
            show_config_reference()
        else:
            open_config(config_file)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
