import datetime
import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from .constants import APP_NAME, DEFAULT_REMOTE

logger = logging.getLogger(APP_NAME)


class RepositoryAccessError(Exception):
    """Raised when a git operation on the monitored repository fails."""


@dataclass(frozen=True)
class WorkingTreeStatus:
    """Categorized paths reported by `git status`, relative to the repo root.

    Attributes:
        added (frozenset[str]): New files in the index.
        modified (frozenset[str]): Files modified in the index or worktree.
        removed (frozenset[str]): Files deleted in the index or worktree.
        untracked (frozenset[str]): Files unknown to git and not ignored.
        staged (frozenset[str]): Other staged entries (renamed, copied,
                                 type-changed or unmerged).
    """

    added: frozenset[str] = field(default_factory=frozenset)
    modified: frozenset[str] = field(default_factory=frozenset)
    removed: frozenset[str] = field(default_factory=frozenset)
    untracked: frozenset[str] = field(default_factory=frozenset)
    staged: frozenset[str] = field(default_factory=frozenset)

    @property
    def pending(self) -> frozenset[str]:
        """Paths that should still exist on disk (everything but removals)."""
        return self.added | self.modified | self.untracked | self.staged

    @property
    def is_clean(self) -> bool:
        return not (self.pending or self.removed)


def parse_porcelain(output: str) -> WorkingTreeStatus:
    """Parses `git status --porcelain=v1 -z` output.

    Each record is `XY PATH`, NUL terminated. Renames and copies carry a second
    NUL terminated field with the original path.

    Args:
        output (str): The raw, unstripped command output.

    Returns:
        WorkingTreeStatus: The categorized paths.
    """
    buckets: dict[str, set[str]] = {
        "added": set(),
        "modified": set(),
        "removed": set(),
        "untracked": set(),
        "staged": set(),
    }
    records = output.split("\0")
    i = 0
    while i < len(records):
        record = records[i]
        i += 1
        if len(record) < 4:
            continue

        x, y, path = record[0], record[1], record[3:]

        if x == "?" and y == "?":
            buckets["untracked"].add(path)
            continue
        if x == "!":
            continue

        if x in "RC" or y in "RC":
            # Origin path follows as its own field.
            origin = records[i] if i < len(records) else ""
            i += 1
            if "R" in (x, y) and origin:
                buckets["removed"].add(origin)
            if y == "D":
                buckets["removed"].add(path)
            else:
                buckets["staged"].add(path)
        elif "U" in (x, y) or (x, y) in (("A", "A"), ("D", "D")):
            # Unmerged.
            buckets["staged"].add(path)
        elif x == "A":
            buckets["added"].add(path)
        elif "D" in (x, y):
            buckets["removed"].add(path)
        elif "M" in (x, y):
            buckets["modified"].add(path)
        else:
            # Type changes.
            buckets["staged"].add(path)

    return WorkingTreeStatus(**{k: frozenset(v) for k, v in buckets.items()})


class GitRepo:
    """A wrapper around the Git command-line interface for a specific repository.

    This class provides the handful of operations the monitor needs (stage,
    status, commit, push) using `subprocess`, abstracting away the command
    construction and output handling. Every failure surfaces as a
    `RepositoryAccessError`.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            RepositoryAccessError: If the path does not contain a .git directory.
        """
        self.path = path
        if not (self.path / ".git").exists():
            raise RepositoryAccessError(f"Not a git repository: {self.path}")

    def _run(
        self,
        args: list[str],
        capture: bool = True,
        env: dict | None = None,
        strip: bool = True,
    ) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            capture (bool, optional):   Whether to capture and return stdout.
                                        Defaults to True.
            env (Optional[dict], optional): Environment variables to pass to the
                                            subprocess. Defaults to None.
            strip (bool, optional): Whether to strip surrounding whitespace from
                                    the output. Defaults to True.

        Returns:
            str:    The stdout of the command if capture is True,
                    otherwise an empty string.

        Raises:
            RepositoryAccessError: If git is missing or exits with a non-zero code.
        """
        try:
            res = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=capture,
                text=True,
                check=True,
                env=env,
            )
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip() or e
            raise RepositoryAccessError(f"Git error: {detail}") from e
        except OSError as e:
            raise RepositoryAccessError(f"Could not run git: {e}") from e

        if not capture:
            return ""
        return res.stdout.strip() if strip else res.stdout

    def add_all(self) -> None:
        """
        Stages all changes (modified, deleted, and untracked files)
        in the working directory.
        """
        self._run(["add", "-A"], capture=False)

    def status(self) -> WorkingTreeStatus:
        """Returns the categorized working tree status of the repository.

        Returns:
            WorkingTreeStatus: Paths grouped by the kind of pending change.
        """
        output = self._run(
            ["status", "--porcelain=v1", "-z", "--untracked-files=all"],
            strip=False,
        )
        return parse_porcelain(output)

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch.

        Returns:
            str: The name of the current branch, or "" on a detached HEAD.
        """
        return self._run(["branch", "--show-current"])

    def upstream_remote(self, branch: str) -> str | None:
        """Returns the remote configured for `branch`, if any."""
        try:
            return self._run(["config", "--get", f"branch.{branch}.remote"]) or None
        except RepositoryAccessError as e:
            # `git config --get` exits 1 when the key is unset.
            logger.debug(f"No remote configured for '{branch}': {e}")
            return None

    def commit(
        self,
        message: str,
        author_name: str,
        author_email: str,
        timestamp: datetime.datetime,
    ) -> str:
        """Commits the index using the given identity for author and committer.

        Args:
            message (str): The commit message.
            author_name (str): Name recorded as author and committer.
            author_email (str): Email recorded as author and committer.
            timestamp (datetime.datetime): Author and committer date.

        Returns:
            str: The SHA-1 hash of the new commit.
        """
        date = timestamp.astimezone().isoformat()
        env = os.environ.copy()
        env.update(
            {
                "GIT_AUTHOR_NAME": author_name,
                "GIT_AUTHOR_EMAIL": author_email,
                "GIT_AUTHOR_DATE": date,
                "GIT_COMMITTER_NAME": author_name,
                "GIT_COMMITTER_EMAIL": author_email,
                "GIT_COMMITTER_DATE": date,
            }
        )
        self._run(["commit", "--no-verify", "-m", message], env=env)
        return self._run(["rev-parse", "HEAD"])

    def push(self, remote: str | None = None) -> None:
        """Pushes the current branch to its remote.

        Args:
            remote (str | None, optional): The remote to push to. Defaults to the
                                           branch's configured remote, then origin.

        Raises:
            RepositoryAccessError: On a detached HEAD or if the push fails.
        """
        branch = self.current_branch()
        if not branch:
            raise RepositoryAccessError("Detached HEAD: no branch to push")

        target = remote or self.upstream_remote(branch) or DEFAULT_REMOTE

        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        env["GIT_SSH_COMMAND"] = "ssh -o BatchMode=yes"
        # capture=True suppresses verbose "Enumerating objects..." output.
        self._run(["push", target, f"{branch}:{branch}"], capture=True, env=env)

    def has_unpushed_commits(self) -> bool:
        """Checks whether the current branch is ahead of its upstream.

        Returns:
            bool: True if local commits are missing upstream. False when there
                  is no upstream or it cannot be resolved.
        """
        try:
            count = self._run(["rev-list", "--count", "@{upstream}..HEAD"])
            return int(count or 0) > 0
        except (RepositoryAccessError, ValueError) as e:
            logger.debug(f"Could not compare with upstream: {e}")
            return False
