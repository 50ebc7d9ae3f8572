"""Git Autopush: commit and push a working directory once it goes quiet.

This package provides the command-line entry point, the polling scheduler, and
the inactivity tracker that decides when pending changes in a single git
working directory have settled long enough to be committed and pushed.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    git_wrapper,
    observer,
    tracker,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "git_wrapper",
    "observer",
    "tracker",
]
