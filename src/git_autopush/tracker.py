"""Inactivity debouncing for pending working tree changes.

The tracker decides, once per polling cycle, whether the changes currently
pending in the repository have settled. It is a pure function of the current
time, the snapshot observed in this cycle, and the state carried over from the
previous cycle, so it can be exercised without a repository or a real clock.

All times are POSIX timestamps in seconds, the unit of `os.stat` and
`time.time`.
"""

import enum
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChangeSnapshot:
    """Pending changes observed in a single polling cycle.

    Attributes:
        latest_modification (float | None): The newest mtime among pending files
            that still exist on disk, or None if there are none.
        deleted_paths (frozenset[str]): Paths reported as removed.
    """

    latest_modification: float | None = None
    deleted_paths: frozenset[str] = field(default_factory=frozenset)

    @property
    def has_pending_change(self) -> bool:
        return self.latest_modification is not None or bool(self.deleted_paths)


@dataclass(frozen=True)
class TrackerState:
    """What the tracker remembers between cycles.

    Attributes:
        reference_change_time (float | None): Time from which inactivity is
            measured for the change set being tracked. None when nothing is
            being tracked.
        last_deleted_paths (frozenset[str]): The removed paths seen last cycle.
            Deletions have no mtime, so a change in this set is the only way to
            notice them happening.
    """

    reference_change_time: float | None = None
    last_deleted_paths: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def empty(cls) -> "TrackerState":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.reference_change_time is None and not self.last_deleted_paths


class Decision(enum.Enum):
    """Outcome of evaluating one cycle."""

    NOOP = "noop"
    """Nothing is pending."""

    CONTINUE = "continue"
    """Changes are pending but still too recent."""

    FLUSH = "flush"
    """Changes have settled and should be committed and pushed."""


@dataclass(frozen=True)
class Evaluation:
    """Result of `InactivityTracker.evaluate`.

    Attributes:
        decision (Decision): What the scheduler should do this cycle.
        state (TrackerState): The state to hold until the next cycle.
        detected_change_time (float | None): Most recent activity detected.
        inactivity (float | None): Seconds elapsed since that activity.
    """

    decision: Decision
    state: TrackerState
    detected_change_time: float | None = None
    inactivity: float | None = None


class InactivityTracker:
    """Debounces pending changes until they have been idle long enough.

    Attributes:
        threshold (float): Seconds of inactivity required before a flush.
    """

    def __init__(self, threshold: float):
        if threshold < 0:
            raise ValueError(f"Inactivity threshold must be >= 0, got {threshold}")
        self.threshold = threshold

    def detect_change_time(
        self, now: float, snapshot: ChangeSnapshot, state: TrackerState
    ) -> float:
        """Returns the most recent activity time for a snapshot with changes.

        The result is the latest of:
        1. `now`, if the set of deleted paths differs from the previous cycle.
        2. The newest mtime among pending files.
        3. The reference time already held, so it never moves backwards.

        With no candidate at all (unchanged deletions but nothing held, a state
        `evaluate` never produces) the deletions count as seen at `now`.

        Args:
            now (float): The current time.
            snapshot (ChangeSnapshot): This cycle's observation.
            state (TrackerState): The state held from the previous cycle.

        Returns:
            float: The detected change time.

        Raises:
            ValueError: If the snapshot has no pending change.
        """
        if not snapshot.has_pending_change:
            raise ValueError("Snapshot has no pending change")

        candidates = []
        if snapshot.deleted_paths != state.last_deleted_paths:
            candidates.append(now)
        if snapshot.latest_modification is not None:
            candidates.append(snapshot.latest_modification)
        if state.reference_change_time is not None:
            candidates.append(state.reference_change_time)

        if not candidates:
            # Only deletions are pending and they match the last cycle, yet
            # nothing was being tracked. Treat them as seen just now.
            return now
        return max(candidates)

    def evaluate(
        self, now: float, snapshot: ChangeSnapshot, state: TrackerState
    ) -> Evaluation:
        """Decides whether to flush, given this cycle's snapshot.

        Args:
            now (float): The current time.
            snapshot (ChangeSnapshot): This cycle's observation.
            state (TrackerState): The state held from the previous cycle.

        Returns:
            Evaluation: The decision and the state to hold next. The state is
                        empty after NOOP and FLUSH.
        """
        if not snapshot.has_pending_change:
            return Evaluation(Decision.NOOP, TrackerState.empty())

        detected = self.detect_change_time(now, snapshot, state)
        inactivity = now - detected

        if inactivity >= self.threshold:
            return Evaluation(
                Decision.FLUSH, TrackerState.empty(), detected, inactivity
            )

        return Evaluation(
            Decision.CONTINUE,
            TrackerState(
                reference_change_time=detected,
                last_deleted_paths=snapshot.deleted_paths,
            ),
            detected,
            inactivity,
        )
