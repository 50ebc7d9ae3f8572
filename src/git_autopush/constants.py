"""Global constants and defaults for Git Autopush.

This module defines the application identity, the environment variables the
monitor reads at startup, and the default timings and formats used across the
application.
"""

# --- Identity ---
APP_NAME = "git-autopush"
"""str: The human-readable application name (also the logger name)."""

# --- Environment Variables ---
ENV_REPO_PATH = "REPO_PATH"
ENV_AUTHOR_NAME = "AUTHOR_NAME"
ENV_AUTHOR_EMAIL = "AUTHOR_EMAIL"
ENV_CHECK_INTERVAL = "CHECK_INTERVAL_MINUTES"
ENV_INACTIVITY_THRESHOLD = "INACTIVITY_THRESHOLD_MINUTES"
ENV_REMOTE_NAME = "REMOTE_NAME"
ENV_LOG_FILE = "LOG_FILE"
ENV_LOG_LEVEL = "LOG_LEVEL"

# --- Defaults ---
DEFAULT_REPO_PATH = "/repo"
"""str: The working directory monitored when REPO_PATH is unset."""

DEFAULT_CHECK_INTERVAL_MINUTES = 5
"""int: Minutes between two polling cycles."""

DEFAULT_INACTIVITY_THRESHOLD_MINUTES = 60
"""int: Minutes of inactivity required before pending changes are flushed."""

DEFAULT_REMOTE = "origin"
"""str: The remote used when the current branch has none configured."""

MAX_LOG_SIZE = 5 * 1024 * 1024
"""int: Max bytes for the optional log file before rotation."""

# --- Formats ---
COMMIT_MESSAGE = "Automatic push {timestamp}"
"""str: Template for automatic commit messages."""

COMMIT_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
"""str: strftime format of the timestamp embedded in commit messages."""

DISPLAY_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
"""str: strftime format used in log lines and console output."""

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
"""str: Format of every log record."""
