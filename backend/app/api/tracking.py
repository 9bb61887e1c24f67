import asyncio
import os
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from gpxpy.gpx import GPXException
from loguru import logger
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.time_utils import now_ms
from app.db import SessionLocal, get_db
from app.models.pet import Pet
from app.models.tracking_data import TrackingData
from app.schemas.tracking import (
    PositionErrorIn,
    PositionIn,
    SessionStart,
    SessionStatus,
    TrackAnalysis,
    TrackingDataCreate,
    TrackingDataRead,
)
from app.tracking.activity import replay
from app.tracking.errors import NoPositionError, SessionNotActiveError, SubmissionError
from app.tracking.health import activity_level, derive_health_label, health_score
from app.tracking.models import PositionSample
from app.tracking.session import SessionRegistry, TrackingSession, build_sink
from app.tracking.sources import parse_gpx_samples
from app.tracking.store import save_tracking_data

router = APIRouter(tags=["tracking"])
sessions_router = APIRouter(prefix="/tracking/sessions", tags=["live tracking"])

# Seconds a push waits for its sample to be applied by the session
APPLY_TIMEOUT_S = 5.0

_registry: Optional[SessionRegistry] = None


def get_registry() -> SessionRegistry:
    global _registry
    if _registry is None:
        _registry = SessionRegistry(settings, build_sink(settings, SessionLocal))
    return _registry


async def shutdown_registry() -> None:
    if _registry is not None:
        await _registry.stop_all()


def _get_pet_or_404(db: Session, pet_id: int) -> Pet:
    pet = db.query(Pet).filter(Pet.id == pet_id).first()
    if not pet:
        raise HTTPException(status_code=404, detail="Pet not found")
    return pet


def _record_fields(payload: TrackingDataCreate) -> dict:
    data = payload.model_dump(exclude_none=True)
    for key in ("health_status", "activity_level"):
        if key in data:
            data[key] = data[key].value
    return data


# --------- Stored tracking records --------- #

@router.get("/pet-tracking/{pet_id}", response_model=list[TrackingDataRead])
def list_tracking_data(pet_id: int, db: Session = Depends(get_db)):
    """Tracking records for a pet, most recent first."""
    return (
        db.query(TrackingData)
        .filter(TrackingData.pet_id == pet_id)
        .order_by(TrackingData.timestamp.desc(), TrackingData.id.desc())
        .all()
    )


@router.post("/pet-tracking", response_model=TrackingDataRead)
def add_tracking_data(payload: TrackingDataCreate, db: Session = Depends(get_db)):
    if payload.pet_id is None:
        raise HTTPException(status_code=400, detail="Pet ID is required")
    _get_pet_or_404(db, payload.pet_id)
    return save_tracking_data(db, _record_fields(payload))


@router.post("/admin/pet-tracking", response_model=TrackingDataRead, status_code=201)
def add_admin_tracking_data(payload: TrackingDataCreate, db: Session = Depends(get_db)):
    """Store a record on behalf of an admin and notify the foster parent."""
    if payload.pet_id is None:
        raise HTTPException(status_code=400, detail="Invalid tracking data")
    _get_pet_or_404(db, payload.pet_id)
    return save_tracking_data(db, _record_fields(payload), notify=True)


@router.post("/pet-tracking/{pet_id}/gpx", response_model=TrackAnalysis)
def analyze_gpx_track(pet_id: int, file: UploadFile = File(...), db: Session = Depends(get_db)):
    """Run an uploaded GPX track through the activity engine (nothing is stored)."""
    _get_pet_or_404(db, pet_id)

    filename = file.filename or "upload.gpx"
    ext = os.path.splitext(filename)[1].lower()
    if ext != ".gpx":
        raise HTTPException(status_code=400, detail="Only .gpx files are supported")

    data = file.file.read()
    try:
        samples = parse_gpx_samples(data.decode("utf-8"))
    except (GPXException, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid file: {e}")

    state = replay(
        samples,
        history_size=settings.tracking_history_size,
        attribution=settings.tracking_time_attribution,
    )
    return TrackAnalysis(
        points=len(samples),
        total_distance_m=state.total_distance_m,
        average_speed_mps=state.average_speed_mps,
        active_seconds=state.active_seconds,
        rest_seconds=state.rest_seconds,
        health_status=derive_health_label(state),
        health_score=health_score(state),
        activity_level=activity_level(state.average_speed_mps),
    )


# --------- Live sessions --------- #

def _session_or_404(registry: SessionRegistry, pet_id: int) -> TrackingSession:
    session = registry.get(pet_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Pet is not being tracked")
    return session


def _active_session(registry: SessionRegistry, pet_id: int) -> TrackingSession:
    session = _session_or_404(registry, pet_id)
    if not session.active:
        raise HTTPException(status_code=409, detail=session.last_error or "Tracking stopped")
    return session


async def _push(session: TrackingSession, push) -> None:
    try:
        push(session.positions)
    except SessionNotActiveError as e:
        raise HTTPException(status_code=409, detail=str(e))
    try:
        await asyncio.wait_for(session.positions.drain(), APPLY_TIMEOUT_S)
    except asyncio.TimeoutError:
        raise HTTPException(status_code=503, detail="Position not applied in time")


@sessions_router.post("/{pet_id}", response_model=SessionStatus)
async def start_tracking(
    pet_id: int,
    payload: SessionStart | None = None,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    pet = _get_pet_or_404(db, pet_id)
    if pet.status != "fostered":
        raise HTTPException(status_code=409, detail="Only fostered pets can be tracked")
    source = payload.source if payload is not None else SessionStart().source
    session = await registry.start(pet_id, source)
    return session.status()


@sessions_router.get("/{pet_id}", response_model=SessionStatus)
async def get_tracking_status(pet_id: int, registry: SessionRegistry = Depends(get_registry)):
    return _session_or_404(registry, pet_id).status()


@sessions_router.post("/{pet_id}/positions", response_model=SessionStatus)
async def push_position(
    pet_id: int,
    payload: PositionIn,
    registry: SessionRegistry = Depends(get_registry),
):
    session = _active_session(registry, pet_id)
    sample = PositionSample(
        latitude=payload.latitude,
        longitude=payload.longitude,
        accuracy=payload.accuracy,
        observed_at=payload.observed_at if payload.observed_at is not None else now_ms(),
    )
    await _push(session, lambda source: source.push(sample))
    return session.status()


@sessions_router.post("/{pet_id}/errors", response_model=SessionStatus)
async def report_position_error(
    pet_id: int,
    payload: PositionErrorIn,
    registry: SessionRegistry = Depends(get_registry),
):
    """The client's location provider failed; tracking stops."""
    session = _active_session(registry, pet_id)
    await _push(session, lambda source: source.fail(payload.kind, payload.detail))
    return session.status()


@sessions_router.post("/{pet_id}/record")
async def record_current_status(pet_id: int, registry: SessionRegistry = Depends(get_registry)):
    session = _active_session(registry, pet_id)
    try:
        record = await session.record_now()
    except NoPositionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SubmissionError as e:
        logger.error(f"Manual tracking record for pet {pet_id} failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to add tracking data")
    return record.to_payload()


@sessions_router.delete("/{pet_id}")
async def stop_tracking(pet_id: int, registry: SessionRegistry = Depends(get_registry)):
    if not await registry.stop(pet_id):
        raise HTTPException(status_code=404, detail="Pet is not being tracked")
    return {"message": "Tracking stopped"}
