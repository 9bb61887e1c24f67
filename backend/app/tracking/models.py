"""Value types shared by the tracking engine."""

from __future__ import annotations

import uuid
from collections import deque
from dataclasses import dataclass, field
from enum import Enum


class HealthLabel(str, Enum):
    monitoring = "monitoring"
    poor = "poor"
    fair = "fair"
    good = "good"
    excellent = "excellent"


class ActivityLevel(str, Enum):
    low = "low"
    moderate = "moderate"
    high = "high"


class TrackingSource(str, Enum):
    """Which front-end drives the session; selects record tags."""

    user = "user"
    admin = "admin"


@dataclass(frozen=True, slots=True)
class PositionSample:
    """A single position observation.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        accuracy: Estimated horizontal error in meters.
        observed_at: Unix epoch milliseconds.
    """

    latitude: float
    longitude: float
    accuracy: float
    observed_at: int

    @property
    def lat(self) -> float:
        return self.latitude

    @property
    def lng(self) -> float:
        return self.longitude


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    lat: float
    lng: float
    observed_at: int
    speed: float  # m/s over the step that ended at this entry


@dataclass(slots=True)
class ActivityState:
    """Accumulated movement metrics for one tracking session."""

    total_distance_m: float = 0.0
    average_speed_mps: float = 0.0
    active_seconds: float = 0.0
    rest_seconds: float = 0.0
    history: deque[HistoryEntry] = field(default_factory=deque)

    @property
    def total_seconds(self) -> float:
        return self.active_seconds + self.rest_seconds

    @property
    def last(self) -> HistoryEntry | None:
        return self.history[-1] if self.history else None


@dataclass(frozen=True, slots=True)
class TrackingRecord:
    """Snapshot sent to a record sink. The store assigns the timestamp.

    ``record_id`` identifies the snapshot across resubmissions; storing the
    same id twice keeps the first row.
    """

    pet_id: int
    location: str
    health_status: HealthLabel
    activity_level: ActivityLevel
    phone_coordinates: str | None
    tracking_method: str
    notes: str | None
    source: TrackingSource = TrackingSource.user
    record_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_payload(self) -> dict:
        """JSON body accepted by the tracking endpoints."""
        return {
            "pet_id": self.pet_id,
            "location": self.location,
            "health_status": self.health_status.value,
            "activity_level": self.activity_level.value,
            "phone_coordinates": self.phone_coordinates,
            "tracking_method": self.tracking_method,
            "notes": self.notes,
            "record_id": self.record_id,
        }
