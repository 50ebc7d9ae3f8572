from hypothesis import given
from hypothesis import strategies as st

from git_autopush.tracker import (
    ChangeSnapshot,
    Decision,
    InactivityTracker,
    TrackerState,
)

# Timestamps within a few decades of the epoch, at millisecond resolution, so
# float subtraction stays exact enough for equality at the threshold boundary.
timestamps = st.integers(min_value=0, max_value=2_000_000_000_000).map(
    lambda ms: ms / 1000
)
paths = st.frozensets(st.sampled_from(["a.txt", "b.txt", "docs/c.md", "d"]))
thresholds = st.integers(min_value=0, max_value=24 * 3600)

snapshots = st.builds(
    ChangeSnapshot,
    latest_modification=st.none() | timestamps,
    deleted_paths=paths,
)
pending_snapshots = snapshots.filter(lambda s: s.has_pending_change)
states = st.builds(
    TrackerState,
    reference_change_time=st.none() | timestamps,
    last_deleted_paths=paths,
)


@given(now=timestamps, state=states, threshold=thresholds)
def test_no_pending_change_is_always_noop(
    now: float, state: TrackerState, threshold: int
) -> None:
    """
    Property: Whatever was tracked before, a clean snapshot yields NOOP and
    the empty state.
    """
    result = InactivityTracker(threshold).evaluate(now, ChangeSnapshot(), state)

    assert result.decision is Decision.NOOP
    assert result.state == TrackerState.empty()


@given(now=timestamps, snapshot=pending_snapshots, state=states, threshold=thresholds)
def test_detected_change_time_never_moves_backwards(
    now: float, snapshot: ChangeSnapshot, state: TrackerState, threshold: int
) -> None:
    """
    Property: The detected change time is never older than the reference time
    already held.
    """
    result = InactivityTracker(threshold).evaluate(now, snapshot, state)

    assert result.detected_change_time is not None
    if state.reference_change_time is not None:
        assert result.detected_change_time >= state.reference_change_time
    if snapshot.latest_modification is not None:
        assert result.detected_change_time >= snapshot.latest_modification


@given(now=timestamps, snapshot=pending_snapshots, state=states, threshold=thresholds)
def test_flush_iff_inactivity_reaches_threshold(
    now: float, snapshot: ChangeSnapshot, state: TrackerState, threshold: int
) -> None:
    """
    Property: FLUSH exactly when `now - detected >= threshold`, CONTINUE
    otherwise. FLUSH always returns the empty state.
    """
    result = InactivityTracker(threshold).evaluate(now, snapshot, state)
    assert result.detected_change_time is not None
    inactivity = now - result.detected_change_time

    assert result.inactivity == inactivity
    if inactivity >= threshold:
        assert result.decision is Decision.FLUSH
        assert result.state == TrackerState.empty()
    else:
        assert result.decision is Decision.CONTINUE
        assert result.state.reference_change_time == result.detected_change_time
        assert result.state.last_deleted_paths == snapshot.deleted_paths


@given(now=timestamps, snapshot=pending_snapshots, state=states, threshold=thresholds)
def test_changed_delete_set_advances_to_now(
    now: float, snapshot: ChangeSnapshot, state: TrackerState, threshold: int
) -> None:
    """
    Property: When the delete set differs from the previous cycle, the
    detected change time is at least the current time.
    """
    result = InactivityTracker(threshold).evaluate(now, snapshot, state)

    if snapshot.deleted_paths != state.last_deleted_paths:
        assert result.detected_change_time is not None
        assert result.detected_change_time >= now


@given(now=timestamps, snapshot=snapshots, state=states, threshold=thresholds)
def test_evaluate_is_pure(
    now: float, snapshot: ChangeSnapshot, state: TrackerState, threshold: int
) -> None:
    """
    Property: Evaluating the same (now, snapshot, state) twice gives identical
    results.
    """
    tracker = InactivityTracker(threshold)

    assert tracker.evaluate(now, snapshot, state) == tracker.evaluate(
        now, snapshot, state
    )


@given(
    start=timestamps,
    steps=st.lists(
        st.tuples(st.integers(min_value=0, max_value=3600), snapshots), max_size=30
    ),
    threshold=thresholds,
)
def test_reference_is_monotonic_until_flush(
    start: float, steps: list[tuple[int, ChangeSnapshot]], threshold: int
) -> None:
    """
    Property: Across a sequence of cycles the held reference time only grows,
    until a NOOP or FLUSH resets it.
    """
    tracker = InactivityTracker(threshold)
    state = TrackerState.empty()
    now = start

    for delay, snapshot in steps:
        now += delay
        result = tracker.evaluate(now, snapshot, state)
        if (
            result.decision is Decision.CONTINUE
            and state.reference_change_time is not None
        ):
            assert result.state.reference_change_time is not None
            assert result.state.reference_change_time >= state.reference_change_time
        if result.decision is not Decision.CONTINUE:
            assert result.state.is_empty
        state = result.state
