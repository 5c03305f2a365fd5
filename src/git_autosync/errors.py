"""Error taxonomy for the sync agent."""

from collections.abc import Sequence


class SyncError(Exception):
    """Base class for every error raised by the sync core."""


class ConfigurationError(SyncError):
    """Raised when the configuration does not allow a sync to proceed."""


class ExecutionError(SyncError):
    """An external command exited non-zero or could not be launched.

    Attributes:
        command (list[str]): The argument vector that was executed.
        returncode (int | None): The exit status, or None if the process
            never started.
        stderr (str): The captured standard error (or the OS error text).
    """

    def __init__(
        self, command: Sequence[str], returncode: int | None, stderr: str = ""
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr.strip()
        if returncode is None:
            message = f"Could not run '{' '.join(self.command)}': {self.stderr}"
        else:
            message = f"'{' '.join(self.command)}' exited with {returncode}"
            if self.stderr:
                message += f": {self.stderr}"
        super().__init__(message)


class InspectionError(SyncError):
    """Raised when a repository state query fails.

    Attributes:
        step (str): The inspection step that failed ('status', 'fetch' or 'diff').
    """

    def __init__(self, step: str, cause: Exception):
        self.step = step
        super().__init__(f"{step} failed: {cause}")


class PartialSyncError(SyncError):
    """An action failed after earlier actions already changed the repository.

    Nothing is rolled back: the completed actions stay in effect.

    Attributes:
        step (str): The action that failed.
        completed (list[str]): Actions that finished before the failure.
    """

    def __init__(self, step: str, completed: Sequence[str], cause: Exception):
        self.step = step
        self.completed = list(completed)
        super().__init__(
            f"{step} failed after {', '.join(self.completed)} completed: {cause}"
        )
