"""Health score derived from accumulated activity metrics.

The score is a sum of bracketed factors (distance, active ratio, average
speed) plus a bonus for recent movement. Brackets are checked in order and
the first match wins; all bounds are exclusive.
"""

from __future__ import annotations

from itertools import islice

from app.core.constants import (
    ACTIVITY_RATIO_BRACKETS,
    ACTIVITY_RATIO_FALLBACK_POINTS,
    DISTANCE_BRACKETS_M,
    DISTANCE_FALLBACK_POINTS,
    HEALTH_LABEL_THRESHOLDS,
    HIGH_ACTIVITY_SPEED_MPS,
    MODERATE_ACTIVITY_SPEED_MPS,
    MONITORING_MIN_SECONDS,
    MOVEMENT_BONUS_POINTS,
    MOVEMENT_SPEED_MPS,
    MOVEMENT_WINDOW,
    SPEED_BRACKETS_MPS,
    SPEED_FALLBACK_POINTS,
)
from app.tracking.models import ActivityLevel, ActivityState, HealthLabel


def _bracket_points(value: float, brackets, fallback: int) -> int:
    for low, high, points in brackets:
        if value > low and (high is None or value < high):
            return points
    return fallback


def _has_recent_movement(state: ActivityState) -> bool:
    if len(state.history) <= MOVEMENT_WINDOW:
        return False
    start = len(state.history) - MOVEMENT_WINDOW
    return any(h.speed > MOVEMENT_SPEED_MPS for h in islice(state.history, start, None))


def health_score(state: ActivityState) -> int | None:
    """Score in [25, 100], or None while there is too little data to judge."""
    total = state.total_seconds
    if total < MONITORING_MIN_SECONDS:
        return None
    ratio = state.active_seconds / total

    score = _bracket_points(state.total_distance_m, DISTANCE_BRACKETS_M, DISTANCE_FALLBACK_POINTS)
    score += _bracket_points(ratio, ACTIVITY_RATIO_BRACKETS, ACTIVITY_RATIO_FALLBACK_POINTS)
    score += _bracket_points(state.average_speed_mps, SPEED_BRACKETS_MPS, SPEED_FALLBACK_POINTS)
    if _has_recent_movement(state):
        score += MOVEMENT_BONUS_POINTS
    return score


def label_for_score(score: int) -> HealthLabel:
    for threshold, label in HEALTH_LABEL_THRESHOLDS:
        if score >= threshold:
            return HealthLabel(label)
    return HealthLabel.poor


def derive_health_label(state: ActivityState) -> HealthLabel:
    score = health_score(state)
    if score is None:
        return HealthLabel.monitoring
    return label_for_score(score)


def activity_level(average_speed_mps: float) -> ActivityLevel:
    if average_speed_mps > HIGH_ACTIVITY_SPEED_MPS:
        return ActivityLevel.high
    if average_speed_mps > MODERATE_ACTIVITY_SPEED_MPS:
        return ActivityLevel.moderate
    return ActivityLevel.low
