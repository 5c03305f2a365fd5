import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from .constants import APP_NAME, DEFAULT_REMOTE_BRANCH
from .errors import ExecutionError

logger = logging.getLogger(APP_NAME)


class CommandExecutor:
    """Runs external commands as child processes of the event loop.

    Each call spawns exactly one process. There is no retry and no timeout;
    the caller awaits completion or failure. The executor keeps no state, so
    concurrent calls are fully independent.
    """

    async def execute(self, command: Sequence[str], cwd: Path) -> str:
        """Executes a command within the given working directory.

        Args:
            command (Sequence[str]): The argument vector, program first.
            cwd (Path): The working directory the process is bound to.

        Returns:
            str: The decoded stdout of the command.

        Raises:
            ExecutionError: If the command exits non-zero or cannot be started.
        """
        logger.debug(f"RUN ({cwd}): {' '.join(command)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExecutionError(command, None, str(e)) from e

        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise ExecutionError(
                command, proc.returncode, stderr.decode(errors="replace")
            )
        return stdout.decode(errors="replace")


class GitRepo:
    """The git command forms used by the sync agent, bound to one repository.

    Every method awaits a single `git` invocation through the executor, with
    the repository path as working directory.

    Attributes:
        path (Path): The file system path to the repository root.
        remote_branch (str): The remote-tracking branch diffed against HEAD.
    """

    def __init__(
        self,
        path: Path,
        executor: CommandExecutor | None = None,
        remote_branch: str = DEFAULT_REMOTE_BRANCH,
    ):
        self.path = path
        self.executor = executor or CommandExecutor()
        self.remote_branch = remote_branch

    async def _run(self, args: list[str]) -> str:
        return await self.executor.execute(["git", *args], self.path)

    async def status_porcelain(self) -> str:
        """Returns the raw output of `git status --porcelain`."""
        return await self._run(["status", "--porcelain"])

    async def fetch(self) -> None:
        """Updates the remote-tracking references."""
        await self._run(["fetch"])

    async def diff_names_against_remote(self) -> str:
        """Lists the files that differ between HEAD and the remote branch.

        Returns:
            str: The raw output of `git diff HEAD <remote_branch> --name-only`.
        """
        return await self._run(["diff", "HEAD", self.remote_branch, "--name-only"])

    async def add_all(self) -> None:
        """
        Stages all changes (modified, deleted, and untracked files)
        in the working directory.
        """
        await self._run(["add", "."])

    async def commit(self, message: str) -> None:
        """Creates a new commit with the provided message.

        Args:
            message (str): The commit message.
        """
        await self._run(["commit", "-m", message])

    async def pull(self) -> None:
        await self._run(["pull"])

    async def push(self) -> None:
        await self._run(["push"])
