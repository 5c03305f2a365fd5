import logging
from dataclasses import dataclass

from .constants import APP_NAME
from .errors import ExecutionError, InspectionError
from .git_wrapper import GitRepo

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class RepositoryState:
    """A snapshot of the repository taken right before a sync decision.

    Attributes:
        has_local_changes (bool): The working tree has uncommitted changes.
        has_remote_changes (bool): HEAD differs from the remote branch.
    """

    has_local_changes: bool
    has_remote_changes: bool


async def inspect(repo: GitRepo) -> RepositoryState:
    """Queries local and remote change presence for a repository.

    Runs `status`, then `fetch`, then the remote diff, strictly in that order:
    the diff is only meaningful once the fetch has updated the tracking ref.

    Args:
        repo (GitRepo): The repository to inspect.

    Returns:
        RepositoryState: A fresh snapshot. It is never cached.

    Raises:
        InspectionError: If any of the underlying git commands fails.
    """
    step = "status"
    try:
        status = await repo.status_porcelain()
        has_local = bool(status.strip())

        step = "fetch"
        await repo.fetch()

        step = "diff"
        diff = await repo.diff_names_against_remote()
        has_remote = bool(diff.strip())
    except ExecutionError as e:
        raise InspectionError(step, e) from e

    state = RepositoryState(has_local_changes=has_local, has_remote_changes=has_remote)
    logger.debug(f"STATE {repo.path.name}: local={has_local} remote={has_remote}")
    return state
