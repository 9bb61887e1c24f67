from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.tracking.errors import PositionErrorKind
from app.tracking.models import ActivityLevel, HealthLabel, TrackingSource


class TrackingDataCreate(BaseModel):
    """Body of POST /pet-tracking and /admin/pet-tracking."""

    pet_id: Optional[int] = None
    location: Optional[str] = None
    health_status: Optional[HealthLabel] = None
    activity_level: Optional[ActivityLevel] = None
    phone_coordinates: Optional[str] = None
    tracking_method: Optional[str] = None
    notes: Optional[str] = None
    record_id: Optional[str] = Field(default=None, max_length=64)

    # Be lenient with extra fields from clients
    model_config = ConfigDict(extra="ignore")


class TrackingDataRead(BaseModel):
    id: int
    pet_id: int
    location: Optional[str] = None
    health_status: Optional[str] = None
    activity_level: Optional[str] = None
    phone_coordinates: Optional[str] = None
    tracking_method: Optional[str] = None
    notes: Optional[str] = None
    record_id: Optional[str] = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class SessionStart(BaseModel):
    source: TrackingSource = TrackingSource.user


class PositionIn(BaseModel):
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)
    accuracy: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    observed_at: Optional[int] = None  # epoch ms; server time when omitted


class PositionErrorIn(BaseModel):
    kind: PositionErrorKind
    detail: Optional[str] = None


class LastPosition(BaseModel):
    latitude: float
    longitude: float
    accuracy: float
    observed_at: int


class SessionStatus(BaseModel):
    pet_id: int
    source: TrackingSource
    active: bool
    started_at: Optional[datetime] = None
    health_status: HealthLabel
    health_score: Optional[int] = None
    activity_level: ActivityLevel
    total_distance_m: float
    average_speed_mps: float
    active_seconds: float
    rest_seconds: float
    active_time: str  # "HH:MM:SS"
    positions: int
    position: Optional[LastPosition] = None
    records_emitted: int
    dead_letters: int
    last_error: Optional[str] = None


class TrackAnalysis(BaseModel):
    """Engine output for an uploaded GPX track."""

    points: int
    total_distance_m: float
    average_speed_mps: float
    active_seconds: float
    rest_seconds: float
    health_status: HealthLabel
    health_score: Optional[int] = None
    activity_level: ActivityLevel


class NotificationRead(BaseModel):
    id: int
    user_id: int
    message: str
    type: str
    seen: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
