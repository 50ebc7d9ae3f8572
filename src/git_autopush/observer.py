import logging
import os
from collections.abc import Callable
from pathlib import Path

from .constants import APP_NAME
from .git_wrapper import GitRepo
from .tracker import ChangeSnapshot

logger = logging.getLogger(APP_NAME)

MtimeOracle = Callable[[Path], float | None]


def file_mtime(path: Path) -> float | None:
    """Returns the last modification time of `path`, or None if it is gone.

    Symlinks are not followed: git tracks the link itself, so a dangling
    link still exists and an edit to its target is not a change here.

    Args:
        path (Path): The file to inspect.

    Returns:
        float | None: The POSIX mtime, or None if the file cannot be stat'ed.
    """
    try:
        return os.lstat(path).st_mtime
    except OSError:
        return None


class ChangeObserver:
    """Builds a `ChangeSnapshot` of the repository for one polling cycle.

    Attributes:
        repo (GitRepo): The repository being watched.
        mtime (MtimeOracle): Resolves a file's modification time.
    """

    def __init__(self, repo: GitRepo, mtime: MtimeOracle = file_mtime):
        self.repo = repo
        self.mtime = mtime

    def observe(self) -> ChangeSnapshot:
        """Stages all changes and summarizes what is pending.

        Staging first lets added, modified, renamed and untracked files show up
        uniformly in the status.

        Returns:
            ChangeSnapshot: The newest mtime among pending files that still
                            exist, and the set of removed paths.

        Raises:
            RepositoryAccessError: If staging or reading the status fails.
        """
        self.repo.add_all()
        status = self.repo.status()

        # Files staged and then deleted before this read have no mtime.
        mtimes = [
            ts
            for name in status.pending
            if (ts := self.mtime(self.repo.path / name)) is not None
        ]
        latest = max(mtimes) if mtimes else None

        logger.debug(
            f"Observed {len(status.pending)} pending, "
            f"{len(status.removed)} removed path(s)."
        )
        return ChangeSnapshot(latest_modification=latest, deleted_paths=status.removed)
