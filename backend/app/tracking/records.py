"""Build the tracking records persisted for a live session."""

from __future__ import annotations

import math

from app.tracking.health import activity_level, derive_health_label
from app.tracking.models import ActivityState, PositionSample, TrackingRecord, TrackingSource

# Per front-end: (location prefix, tracking method, notes prefix)
_SOURCE_TAGS = {
    TrackingSource.user: ("Live", "phone_gps_auto", "Auto-calculated"),
    TrackingSource.admin: ("Admin", "admin_gps_auto", "Admin monitoring"),
}

MANUAL_METHOD = "manual_record"


def _round_half_up(value: float) -> int:
    # round() would send 2.5 to 2
    return math.floor(value + 0.5)


def format_location(prefix: str, position: PositionSample, *, with_accuracy: bool = True) -> str:
    text = f"{prefix} GPS: {position.latitude:.6f}, {position.longitude:.6f}"
    if with_accuracy:
        text += f" (±{_round_half_up(position.accuracy)}m)"
    return text


def format_notes(prefix: str, state: ActivityState) -> str:
    return (
        f"{prefix}: Distance: {state.total_distance_m:.1f}m, "
        f"Speed: {state.average_speed_mps:.2f}m/s, "
        f"Active: {_round_half_up(state.active_seconds / 60)}min"
    )


def build_tracking_record(
    pet_id: int,
    position: PositionSample,
    state: ActivityState,
    source: TrackingSource = TrackingSource.user,
) -> TrackingRecord:
    """Snapshot of the session emitted on every timer tick."""
    location_prefix, method, notes_prefix = _SOURCE_TAGS[TrackingSource(source)]
    return TrackingRecord(
        pet_id=pet_id,
        location=format_location(location_prefix, position),
        health_status=derive_health_label(state),
        activity_level=activity_level(state.average_speed_mps),
        phone_coordinates=f"{position.latitude},{position.longitude}",
        tracking_method=method,
        notes=format_notes(notes_prefix, state),
        source=TrackingSource(source),
    )


def build_manual_record(
    pet_id: int,
    position: PositionSample,
    state: ActivityState,
    source: TrackingSource = TrackingSource.user,
) -> TrackingRecord:
    """Record requested explicitly by the operator ("Record Current Status")."""
    return TrackingRecord(
        pet_id=pet_id,
        location=format_location("Manual", position, with_accuracy=False),
        health_status=derive_health_label(state),
        activity_level=activity_level(state.average_speed_mps),
        phone_coordinates=f"{position.latitude},{position.longitude}",
        tracking_method=MANUAL_METHOD,
        notes=None,
        source=TrackingSource(source),
    )
