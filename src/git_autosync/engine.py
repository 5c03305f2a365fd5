"""The sync decision engine.

Given a fresh `RepositoryState`, the engine picks one of four action
sequences, runs it against the repository and reports a single `SyncOutcome`:

    local  remote  actions               outcome
    -----  ------  --------------------  -----------------
    no     no      (none)                SKIPPED
    no     yes     pull                  PULLED_ONLY
    yes    no      commit, push          PUSHED_ONLY
    yes    yes     commit, pull, push    PULLED_AND_PUSHED

The first failing action aborts the rest. Nothing is rolled back.
"""

import datetime
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .config import Config
from .constants import APP_NAME, COMMIT_PREFIX, COMMIT_TIME_FORMAT
from .errors import (
    ConfigurationError,
    ExecutionError,
    InspectionError,
    PartialSyncError,
)
from .git_wrapper import CommandExecutor, GitRepo
from .inspector import RepositoryState, inspect

logger = logging.getLogger(APP_NAME)

Notifier = Callable[[str], None]
Clock = Callable[[], datetime.datetime]


class Action(str, Enum):
    COMMIT = "commit"
    PULL = "pull"
    PUSH = "push"


class OutcomeKind(Enum):
    SKIPPED = "skipped"
    PULLED_ONLY = "pulled"
    PUSHED_ONLY = "pushed"
    PULLED_AND_PUSHED = "pulled and pushed"
    FAILED = "failed"
    BUSY = "busy"


@dataclass(frozen=True)
class SyncOutcome:
    """The result of one sync invocation.

    Attributes:
        kind (OutcomeKind): What happened.
        step (str | None): The step that failed, for FAILED outcomes.
        error (Exception | None): The underlying error, for FAILED outcomes.
    """

    kind: OutcomeKind
    step: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.kind is not OutcomeKind.FAILED

    @property
    def reason(self) -> str | None:
        """'<step>: <error text>' for failures, None otherwise."""
        if self.kind is not OutcomeKind.FAILED:
            return None
        return f"{self.step}: {self.error}"

    @property
    def is_partial(self) -> bool:
        """True when the failure left earlier actions applied."""
        return isinstance(self.error, PartialSyncError)


MSG_MISSING_PATH = "Set the git repository path in the settings first"
MSG_CHECKING = "Checking for updates..."
MSG_NOTHING = "Nothing to sync: local and remote are both up to date"
MSG_SYNCING = "Syncing..."
MSG_BUSY = "A sync is already in progress"
MSG_FAILED = "Sync failed: {error}"

SUCCESS_MESSAGES = {
    OutcomeKind.PULLED_ONLY: "No local changes; pulled updates from remote",
    OutcomeKind.PUSHED_ONLY: "Local changes pushed to remote",
    OutcomeKind.PULLED_AND_PUSHED: "Pulled remote updates and pushed local changes",
}


def plan_actions(state: RepositoryState) -> list[Action]:
    """Returns the ordered actions needed to reconcile the given state."""
    actions = []
    if state.has_local_changes:
        actions.append(Action.COMMIT)
    # Pull before push: fewer non-fast-forward rejections.
    if state.has_remote_changes:
        actions.append(Action.PULL)
    # Only a new local commit is ever pushed.
    if state.has_local_changes:
        actions.append(Action.PUSH)
    return actions


def classify(state: RepositoryState) -> OutcomeKind:
    """Maps a state to the outcome a successful sync of it produces."""
    if state.has_local_changes and state.has_remote_changes:
        return OutcomeKind.PULLED_AND_PUSHED
    if state.has_local_changes:
        return OutcomeKind.PUSHED_ONLY
    if state.has_remote_changes:
        return OutcomeKind.PULLED_ONLY
    return OutcomeKind.SKIPPED


def commit_message(now: datetime.datetime) -> str:
    """Builds the automatic commit message for a clock reading.

    Example: 'Auto-sync: 2024-01-02 03:04:05'
    """
    return f"{COMMIT_PREFIX}{now.strftime(COMMIT_TIME_FORMAT)}"


class SyncEngine:
    """Inspects a repository, decides what to do and does it.

    One engine serves every trigger (manual, timer, focus loss). Overlapping
    invocations are refused with a BUSY outcome.

    Attributes:
        executor (CommandExecutor): Runs the git commands.
        notifier (Notifier | None): Receives user-facing messages for
            non-silent runs.
        clock (Clock): Source of the commit timestamp.
        last_outcome (SyncOutcome | None): The outcome of the latest run.
    """

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        notifier: Notifier | None = None,
        clock: Clock = datetime.datetime.now,
    ):
        self.executor = executor or CommandExecutor()
        self.notifier = notifier
        self.clock = clock
        self.last_outcome: SyncOutcome | None = None
        self._running = False

    @property
    def in_progress(self) -> bool:
        return self._running

    async def run(self, config: Config, silent: bool = False) -> SyncOutcome:
        """Runs one sync of the configured repository.

        Args:
            config (Config): Read for the repository path and remote branch.
            silent (bool, optional): Suppress all notifications (automatic
                triggers). The outcome is returned either way.
                Defaults to False.

        Returns:
            SyncOutcome: What happened. Errors never propagate out of here.
        """
        if self._running:
            logger.info("BUSY: A sync is already running. Skipped.")
            self._notify(silent, MSG_BUSY)
            return SyncOutcome(OutcomeKind.BUSY)

        self._running = True
        try:
            outcome = await self._sync(config, silent)
        finally:
            self._running = False

        self.last_outcome = outcome
        return outcome

    async def _sync(self, config: Config, silent: bool) -> SyncOutcome:
        # 1. Guard Clause.
        if not config.sync.repository_path:
            error = ConfigurationError("Repository path is not configured")
            logger.warning(f"SKIPPED: {error}")
            self._notify(silent, MSG_MISSING_PATH)
            return SyncOutcome(OutcomeKind.FAILED, "config", error)

        repo = GitRepo(config.sync.path, self.executor, config.sync.remote_branch)
        name = repo.path.name
        self._notify(silent, MSG_CHECKING)

        # 2. Inspection.
        try:
            state = await inspect(repo)
        except InspectionError as e:
            return self._fail(name, e.step, e, silent)

        # 3. Decision.
        actions = plan_actions(state)
        kind = classify(state)
        if not actions:
            logger.info(f"SKIPPED {name}: Nothing to sync.")
            self._notify(silent, MSG_NOTHING)
            return SyncOutcome(OutcomeKind.SKIPPED)

        # 4. Execution.
        self._notify(silent, MSG_SYNCING)
        completed: list[str] = []
        for action in actions:
            try:
                await self._perform(repo, action, completed)
            except ExecutionError as e:
                error: Exception = e
                if completed:
                    error = PartialSyncError(action.value, completed, e)
                return self._fail(name, action.value, error, silent)
            completed.append(action.value)

        logger.info(f"SUCCESS {name}: {kind.value} ({', '.join(completed)}).")
        self._notify(silent, SUCCESS_MESSAGES[kind])
        return SyncOutcome(kind)

    async def _perform(
        self, repo: GitRepo, action: Action, completed: list[str]
    ) -> None:
        if action is Action.COMMIT:
            await repo.add_all()
            # Staging already changed the index.
            completed.append("add")
            await repo.commit(commit_message(self.clock()))
        elif action is Action.PULL:
            await repo.pull()
        elif action is Action.PUSH:
            await repo.push()

    def _fail(
        self, name: str, step: str, error: Exception, silent: bool
    ) -> SyncOutcome:
        logger.error(f"SYNC ERROR {name} ({step}): {error}")
        self._notify(silent, MSG_FAILED.format(error=error))
        return SyncOutcome(OutcomeKind.FAILED, step, error)

    def _notify(self, silent: bool, message: str) -> None:
        if silent or self.notifier is None:
            return
        try:
            self.notifier(message)
        except Exception as e:
            logger.warning(f"Notification failed: {e}")
