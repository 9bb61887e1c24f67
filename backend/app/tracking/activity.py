"""Incremental movement metrics for a live tracking session."""

from __future__ import annotations

from collections.abc import Iterable

from app.core.constants import ACTIVE_SPEED_MPS, HISTORY_SIZE, TIME_QUANTUM_S
from app.tracking.geo import distance_meters, speed_mps
from app.tracking.models import ActivityState, HistoryEntry, PositionSample

ATTRIBUTION_MODES = ("fixed", "elapsed")


def update_position(
    state: ActivityState,
    sample: PositionSample,
    *,
    history_size: int = HISTORY_SIZE,
    attribution: str = "fixed",
) -> ActivityState:
    """Fold one position sample into ``state`` (in place) and return it.

    Speed is measured against the previous sample in the history. With
    ``attribution="fixed"`` every update credits ``TIME_QUANTUM_S`` seconds to
    either the active or the rest bucket; ``"elapsed"`` credits the real time
    since the previous sample instead.
    """
    if attribution not in ATTRIBUTION_MODES:
        raise ValueError(f"Unknown time attribution {attribution!r}")
    if history_size < 1:
        raise ValueError("history_size must be >= 1")

    increment = 0.0
    speed = 0.0
    elapsed = 0.0
    last = state.last
    if last is not None:
        elapsed = (sample.observed_at - last.observed_at) / 1000.0
        increment = distance_meters(last, sample)
        speed = speed_mps(increment, elapsed)

    state.history.append(
        HistoryEntry(lat=sample.latitude, lng=sample.longitude, observed_at=sample.observed_at, speed=speed)
    )
    while len(state.history) > history_size:
        state.history.popleft()

    state.total_distance_m += increment

    moving = [h.speed for h in state.history if h.speed > 0]
    state.average_speed_mps = sum(moving) / len(moving) if moving else 0.0

    quantum = TIME_QUANTUM_S if attribution == "fixed" else max(elapsed, 0.0)
    if speed > ACTIVE_SPEED_MPS:
        state.active_seconds += quantum
    else:
        state.rest_seconds += quantum

    return state


def replay(
    samples: Iterable[PositionSample],
    *,
    history_size: int = HISTORY_SIZE,
    attribution: str = "fixed",
) -> ActivityState:
    """Run a finite sequence of samples through a fresh state."""
    state = ActivityState()
    for sample in samples:
        update_position(state, sample, history_size=history_size, attribution=attribution)
    return state
