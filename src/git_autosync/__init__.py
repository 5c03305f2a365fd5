"""Git Auto-Sync: keeps a local working directory in sync with its git remote.

This package provides the sync decision engine, the timer and focus-loss
triggers that drive it, a background daemon, and the command-line interface.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    engine,
    errors,
    git_wrapper,
    inspector,
    scheduler,
    system,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "engine",
    "errors",
    "git_wrapper",
    "inspector",
    "scheduler",
    "system",
]
