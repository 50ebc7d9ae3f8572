import datetime
import logging
import signal
import sys
import threading
import time
from collections.abc import Callable
from logging.handlers import RotatingFileHandler
from types import FrameType

from .config import Config
from .constants import (
    APP_NAME,
    COMMIT_MESSAGE,
    COMMIT_TIMESTAMP_FORMAT,
    DISPLAY_TIMESTAMP_FORMAT,
    LOG_FORMAT,
    MAX_LOG_SIZE,
)
from .git_wrapper import GitRepo, RepositoryAccessError
from .observer import ChangeObserver
from .tracker import (
    ChangeSnapshot,
    Decision,
    Evaluation,
    InactivityTracker,
    TrackerState,
)

logger = logging.getLogger(APP_NAME)


def format_timestamp(ts: float) -> str:
    """Renders a POSIX timestamp in local time for logs and console output."""
    return datetime.datetime.fromtimestamp(ts).strftime(DISPLAY_TIMESTAMP_FORMAT)


class Scheduler:
    """Drives the polling loop: observe, evaluate, and flush when settled.

    Cycles run strictly one after another. The only suspension point is the
    wait between cycles, which is also where a stop request is honored.

    Attributes:
        config (Config): Runtime settings.
        repo (GitRepo): The monitored repository.
        observer (ChangeObserver): Produces a snapshot each cycle.
        tracker (InactivityTracker): Decides when pending changes have settled.
        clock (Callable[[], float]): Returns the current POSIX time.
        state (TrackerState): State carried between cycles, never persisted.
        push_pending (bool): Whether a local commit still has to be pushed.
    """

    def __init__(
        self,
        config: Config,
        repo: GitRepo | None = None,
        observer: ChangeObserver | None = None,
        tracker: InactivityTracker | None = None,
        clock: Callable[[], float] = time.time,
        stop_event: threading.Event | None = None,
    ):
        self.config = config
        self.repo = repo or GitRepo(config.repo_path)
        self.observer = observer or ChangeObserver(self.repo)
        self.tracker = tracker or InactivityTracker(config.inactivity_threshold)
        self.clock = clock
        self.stop_event = stop_event or threading.Event()
        self.state = TrackerState.empty()
        self.push_pending = False

    def run(self) -> None:
        """Runs cycles until `stop()` is called."""
        if self.repo.has_unpushed_commits():
            logger.info("Unpushed commits found. They will be pushed next cycle.")
            self.push_pending = True

        minutes = self.config.check_interval / 60
        while not self.stop_event.is_set():
            self.run_cycle()

            logger.info(f"  Next check in {minutes:g} minutes...")
            if self.stop_event.wait(self.config.check_interval):
                break

        logger.info("Monitor stopped.")

    def stop(self) -> None:
        """Requests the loop to exit at the next wait between cycles."""
        self.stop_event.set()

    def run_cycle(self) -> Decision | None:
        """Runs a single polling cycle.

        Errors are logged and leave the held state untouched, so the next
        cycle resumes from the same accumulated inactivity.

        Returns:
            Decision | None: The decision taken, or None if the cycle failed.
        """
        logger.info("Checking repository...")
        try:
            return self._cycle()
        except RepositoryAccessError as e:
            cause = f" (caused by {e.__cause__!r})" if e.__cause__ else ""
            logger.error(f"  ERROR: {e}{cause}")
        except Exception:
            logger.exception("  ERROR: Unexpected failure during cycle")
        return None

    def _cycle(self) -> Decision:
        now = self.clock()
        snapshot = self.observer.observe()
        evaluation = self.tracker.evaluate(now, snapshot, self.state)
        self._log_evaluation(evaluation)

        if evaluation.decision is Decision.FLUSH:
            self.flush(now)
        else:
            self.state = evaluation.state
            if self.push_pending:
                logger.info("  Retrying pending push...")
                self._push()

        return evaluation.decision

    def _log_evaluation(self, evaluation: Evaluation) -> None:
        if evaluation.decision is Decision.NOOP:
            logger.info("  No changes detected.")
            return

        detected = evaluation.detected_change_time
        previous = self.state.reference_change_time
        if detected is not None and (previous is None or detected > previous):
            logger.info(f"  New changes detected at {format_timestamp(detected)}")
        minutes = (evaluation.inactivity or 0) / 60
        logger.info(f"  Changes staged. Inactivity: {minutes:.1f} minutes")

    def flush(self, now: float) -> str:
        """Commits the staged changes, then pushes them.

        Tracking is reset as soon as the commit exists. A failed push is logged
        and retried on later cycles instead of re-arming the tracker.

        Args:
            now (float): The cycle time, used for the message and commit date.

        Returns:
            str: The SHA-1 of the new commit.

        Raises:
            RepositoryAccessError: If the commit fails. State is left untouched.
        """
        logger.info("  Inactivity threshold reached. Committing and pushing...")
        timestamp = datetime.datetime.fromtimestamp(now)
        message = COMMIT_MESSAGE.format(
            timestamp=timestamp.strftime(COMMIT_TIMESTAMP_FORMAT)
        )
        sha = self.repo.commit(
            message, self.config.author_name, self.config.author_email, timestamp
        )
        logger.info(f"  Commit created: {sha[:7]}")

        self.state = TrackerState.empty()
        self.push_pending = True
        self._push()
        return sha

    def _push(self) -> None:
        try:
            self.repo.push(self.config.remote_name)
        except RepositoryAccessError as e:
            logger.error(f"  PUSH ERROR: {e}. Retrying next cycle.")
            return

        self.push_pending = False
        logger.info("  Push completed successfully!")

    def preview(self) -> tuple[ChangeSnapshot, Evaluation]:
        """Observes once and evaluates against an empty state, without flushing.

        Returns:
            tuple[ChangeSnapshot, Evaluation]: The snapshot and what a fresh
                                               monitor would decide.
        """
        snapshot = self.observer.observe()
        return snapshot, self.tracker.evaluate(
            self.clock(), snapshot, TrackerState.empty()
        )


def install_signal_handlers(scheduler: Scheduler) -> None:
    """Stops the scheduler on SIGTERM and SIGINT.

    The running cycle is never interrupted; the loop exits at its next wait.

    Args:
        scheduler (Scheduler): The scheduler to stop.
    """

    def shutdown_handler(_signum: int, _frame: FrameType | None) -> None:
        logger.info("Shutting down...")
        scheduler.stop()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)


def setup_logging(config: Config, interactive: bool = False) -> None:
    """Configures the logging subsystem.

    Args:
        config (Config): Provides the log level and optional log file.
        interactive (bool): If True, only logs to stdout. If False, also logs
                            to the configured file with rotation enabled.
    """
    formatter = logging.Formatter(LOG_FORMAT, DISPLAY_TIMESTAMP_FORMAT)

    # Calling twice must not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level = logging.getLevelName(config.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    # stdout is captured by journald/systemd.
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if config.log_file and not interactive:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file,
            maxBytes=MAX_LOG_SIZE,
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
