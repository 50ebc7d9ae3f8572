import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from .constants import (
    APP_NAME,
    DEFAULT_CHECK_INTERVAL_MINUTES,
    DEFAULT_INACTIVITY_THRESHOLD_MINUTES,
    DEFAULT_REPO_PATH,
    ENV_AUTHOR_EMAIL,
    ENV_AUTHOR_NAME,
    ENV_CHECK_INTERVAL,
    ENV_INACTIVITY_THRESHOLD,
    ENV_LOG_FILE,
    ENV_LOG_LEVEL,
    ENV_REMOTE_NAME,
    ENV_REPO_PATH,
)

logger = logging.getLogger(APP_NAME)


class ConfigurationError(Exception):
    """Raised when the monitor cannot start with the given configuration."""


def parse_minutes(value: int | str, minimum: int = 0) -> int:
    """Converts a whole number of minutes (e.g. '15') to seconds.

    Args:
        value (int | str): The raw value, usually taken from the environment.
        minimum (int): The smallest accepted number of minutes.

    Returns:
        int: The duration in seconds.

    Raises:
        ValueError: If the value is not an integer or is below `minimum`.
    """
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ValueError(f"Invalid minutes value '{value}'") from None
    if value < minimum:
        raise ValueError(f"Minutes value {value} is below {minimum}")
    return value * 60


@dataclass
class Config:
    """Runtime settings of the monitor, read once at startup.

    Attributes:
        repo_path (Path): The working directory to watch.
        author_name (str): Author and committer name of automatic commits.
        author_email (str): Author and committer email of automatic commits.
        check_interval (int): Seconds between two polling cycles.
        inactivity_threshold (int): Seconds without new activity before a flush.
        remote_name (str | None): Remote to push to; None uses the branch upstream.
        log_file (Path | None): Optional rotating log file.
        log_level (str): Name of the logging level.
    """

    repo_path: Path
    author_name: str
    author_email: str
    check_interval: int = DEFAULT_CHECK_INTERVAL_MINUTES * 60
    inactivity_threshold: int = DEFAULT_INACTIVITY_THRESHOLD_MINUTES * 60
    remote_name: str | None = None
    log_file: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        """Builds the configuration from environment variables.

        Missing optional values use their defaults. Malformed intervals are
        logged and replaced by their defaults.

        Args:
            environ (Mapping[str, str] | None): The environment to read.
                                                Defaults to `os.environ`.

        Returns:
            Config: The populated configuration object.

        Raises:
            ConfigurationError: If AUTHOR_NAME or AUTHOR_EMAIL is missing.
        """
        env = os.environ if environ is None else environ

        author_name = env.get(ENV_AUTHOR_NAME, "").strip()
        author_email = env.get(ENV_AUTHOR_EMAIL, "").strip()
        if not author_name:
            raise ConfigurationError(f"Missing {ENV_AUTHOR_NAME} env variable")
        if not author_email:
            raise ConfigurationError(f"Missing {ENV_AUTHOR_EMAIL} env variable")

        log_file = env.get(ENV_LOG_FILE, "").strip()

        return cls(
            repo_path=Path(env.get(ENV_REPO_PATH) or DEFAULT_REPO_PATH),
            author_name=author_name,
            author_email=author_email,
            check_interval=_minutes_from_env(
                env, ENV_CHECK_INTERVAL, DEFAULT_CHECK_INTERVAL_MINUTES, minimum=1
            ),
            inactivity_threshold=_minutes_from_env(
                env, ENV_INACTIVITY_THRESHOLD, DEFAULT_INACTIVITY_THRESHOLD_MINUTES
            ),
            remote_name=env.get(ENV_REMOTE_NAME, "").strip() or None,
            log_file=Path(log_file) if log_file else None,
            log_level=(env.get(ENV_LOG_LEVEL) or "INFO").strip().upper(),
        )

    def with_overrides(
        self, check_minutes: int | None = None, threshold_minutes: int | None = None
    ) -> "Config":
        """Returns a copy with intervals overridden from the command line."""
        updates = {}
        if check_minutes is not None:
            updates["check_interval"] = parse_minutes(check_minutes, minimum=1)
        if threshold_minutes is not None:
            updates["inactivity_threshold"] = parse_minutes(threshold_minutes)
        return replace(self, **updates)

    def validate(self) -> None:
        """Checks that the monitored path is a git working directory.

        Raises:
            ConfigurationError: If `repo_path` has no `.git` metadata directory.
        """
        if not (self.repo_path / ".git").exists():
            raise ConfigurationError(f"Invalid Git repository path: {self.repo_path}")


def _minutes_from_env(
    env: Mapping[str, str], key: str, default: int, minimum: int = 0
) -> int:
    """Reads a minutes variable, falling back to `default` when it is malformed."""
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default * 60
    try:
        return parse_minutes(raw, minimum=minimum)
    except ValueError as e:
        logger.warning(f"Config error in {key}: {e}. Falling back to {default}.")
        return default * 60
