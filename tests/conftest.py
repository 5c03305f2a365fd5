"""Shared fakes for the sync engine tests."""

import datetime
from collections.abc import Sequence
from pathlib import Path

import pytest

from git_autosync.config import Config
from git_autosync.errors import ExecutionError
from git_autosync.git_wrapper import CommandExecutor

FIXED_NOW = datetime.datetime(2024, 1, 2, 3, 4, 5)


class FakeExecutor(CommandExecutor):
    """Records every command and answers from canned outputs.

    Attributes:
        outputs (dict[str, str]): stdout per git subcommand (e.g. 'status').
        failures (dict[str, str]): stderr per git subcommand that must fail.
        calls (list[tuple[list[str], Path]]): Executed commands with their cwd.
    """

    def __init__(
        self,
        outputs: dict[str, str] | None = None,
        failures: dict[str, str] | None = None,
    ):
        self.outputs = outputs or {}
        self.failures = failures or {}
        self.calls: list[tuple[list[str], Path]] = []

    @property
    def subcommands(self) -> list[str]:
        return [command[1] for command, _ in self.calls]

    async def execute(self, command: Sequence[str], cwd: Path) -> str:
        self.calls.append((list(command), cwd))
        sub = command[1]
        if sub in self.failures:
            raise ExecutionError(command, 1, self.failures[sub])
        return self.outputs.get(sub, "")


def state_outputs(local: bool, remote: bool) -> dict[str, str]:
    """Builds executor outputs describing the given repository state."""
    return {
        "status": " M notes/today.md\n" if local else "",
        "diff": "notes/remote.md\n" if remote else "",
    }


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """A configuration pointing at a temporary repository path."""
    conf = Config()
    conf.sync.repository_path = str(tmp_path)
    return conf
