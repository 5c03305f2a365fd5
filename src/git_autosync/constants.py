import os
from pathlib import Path

"""Global constants and path definitions for git-autosync.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the fixed git literals used by the sync engine.
"""

# --- Identity ---
APP_NAME = "git-autosync"
"""str: The application name, also used as the logger name."""

APP_TITLE = "Git Auto-Sync"
"""str: The title shown on desktop notifications."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "git-autosync"
"""Path: The directory for runtime state data (logs, pid file)."""

# Ensure state directory exists immediately upon module import.
STATE_DIR.mkdir(parents=True, exist_ok=True)

LOG_FILE = STATE_DIR / "daemon.log"
"""Path: The file path for the daemon process logs."""

PID_FILE = STATE_DIR / "daemon.pid"
"""Path: The file path storing the daemon's process ID."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/git-autosync"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

# --- Git / Logic Constants ---
DEFAULT_REMOTE_BRANCH = "origin/master"
"""
str: The remote-tracking branch diffed against HEAD to detect remote changes.
Fixed literal; it is never auto-detected.
"""

COMMIT_PREFIX = "Auto-sync: "
"""str: Literal prefix of every automatic commit message."""

COMMIT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
"""str: strftime format of the timestamp in automatic commit messages."""

DEFAULT_INTERVAL_MINUTES = 30
"""int: Minutes between timer-triggered syncs when not configured."""

BUTTON_LOCATIONS = ("ribbon", "status_bar")
"""tuple[str, ...]: Accepted placements for the host's manual sync button."""
