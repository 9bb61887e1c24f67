"""Live tracking sessions.

A ``TrackingSession`` owns everything that runs while one pet is being
tracked: the task consuming its position source, the periodic emission
timer and the accumulated ``ActivityState``. ``stop()`` cancels both tasks
and discards the state; it is safe to call more than once and runs on every
exit path when the session is used as an async context manager.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from loguru import logger

from app.core.config import Settings
from app.core.constants import HISTORY_SIZE, TIME_QUANTUM_S
from app.core.time_utils import seconds_to_hhmmss
from app.tracking.activity import update_position
from app.tracking.errors import NoPositionError, PositionError, SubmissionError
from app.tracking.health import activity_level, derive_health_label, health_score
from app.tracking.models import ActivityState, PositionSample, TrackingRecord, TrackingSource
from app.tracking.records import build_manual_record, build_tracking_record
from app.tracking.sinks import DatabaseRecordSink, HttpRecordSink, RecordSink, ReliableSink
from app.tracking.sources import PositionSource, QueuePositionSource


class TrackingSession:
    def __init__(
        self,
        pet_id: int,
        positions: PositionSource,
        sink: RecordSink,
        *,
        source: TrackingSource = TrackingSource.user,
        emit_interval_s: float = TIME_QUANTUM_S,
        history_size: int = HISTORY_SIZE,
        attribution: str = "fixed",
    ):
        self.pet_id = pet_id
        self.positions = positions
        self.sink = sink
        self.source = TrackingSource(source)
        self.emit_interval_s = emit_interval_s
        self.history_size = history_size
        self.attribution = attribution

        self.state = ActivityState()
        self.position: PositionSample | None = None
        self.last_error: str | None = None
        self.records_emitted = 0
        self.started_at: datetime | None = None
        self._watch_task: asyncio.Task | None = None
        self._emit_task: asyncio.Task | None = None
        self._running = False

    @property
    def active(self) -> bool:
        return self._running

    async def start(self) -> "TrackingSession":
        if self._running:
            await self.stop()
        self._reset()
        self.last_error = None
        self.records_emitted = 0
        self.started_at = datetime.now(timezone.utc)
        self._running = True
        self._watch_task = asyncio.create_task(self._watch(), name=f"tracking-watch-{self.pet_id}")
        self._emit_task = asyncio.create_task(self._emit_loop(), name=f"tracking-emit-{self.pet_id}")
        logger.info(f"Live tracking started for pet {self.pet_id} ({self.source.value})")
        return self

    async def stop(self) -> None:
        # Mark stopped before the first await so readers never see a
        # half-stopped session as active.
        was_running = self._running
        self._running = False
        self._reset()
        current = asyncio.current_task()
        tasks = [t for t in (self._watch_task, self._emit_task) if t is not None and t is not current]
        self._watch_task = None
        self._emit_task = None
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.positions.close()
        if was_running:
            logger.info(f"Live tracking stopped for pet {self.pet_id}")

    async def __aenter__(self) -> "TrackingSession":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def apply(self, sample: PositionSample) -> None:
        self.position = sample
        update_position(
            self.state,
            sample,
            history_size=self.history_size,
            attribution=self.attribution,
        )

    async def emit_once(self) -> TrackingRecord | None:
        """Build and submit the periodic snapshot; None before the first position."""
        if self.position is None:
            return None
        record = build_tracking_record(self.pet_id, self.position, self.state, self.source)
        await self.sink.submit(record)
        self.records_emitted += 1
        logger.debug(
            f"Tracking record emitted for pet {self.pet_id}: "
            f"{record.health_status.value}/{record.activity_level.value}"
        )
        return record

    async def record_now(self) -> TrackingRecord:
        if self.position is None:
            raise NoPositionError("No position received yet")
        record = build_manual_record(self.pet_id, self.position, self.state, self.source)
        await self.sink.submit(record)
        return record

    def status(self) -> dict:
        state = self.state
        dead_letters = getattr(self.sink, "dead_letters", ())
        return {
            "pet_id": self.pet_id,
            "source": self.source.value,
            "active": self._running,
            "started_at": self.started_at,
            "health_status": derive_health_label(state).value,
            "health_score": health_score(state),
            "activity_level": activity_level(state.average_speed_mps).value,
            "total_distance_m": state.total_distance_m,
            "average_speed_mps": state.average_speed_mps,
            "active_seconds": state.active_seconds,
            "rest_seconds": state.rest_seconds,
            "active_time": seconds_to_hhmmss(state.active_seconds),
            "positions": len(state.history),
            "position": None if self.position is None else {
                "latitude": self.position.latitude,
                "longitude": self.position.longitude,
                "accuracy": self.position.accuracy,
                "observed_at": self.position.observed_at,
            },
            "records_emitted": self.records_emitted,
            "dead_letters": len(dead_letters),
            "last_error": self.last_error,
        }

    def _reset(self) -> None:
        self.state = ActivityState()
        self.position = None

    async def _watch(self) -> None:
        try:
            async for sample in self.positions:
                self.apply(sample)
        except PositionError as exc:
            self.last_error = exc.message
            detail = f" ({exc.detail})" if exc.detail else ""
            logger.warning(f"Position error for pet {self.pet_id}: {exc.message}{detail}")
            await self.stop()
            return
        except Exception as exc:
            self.last_error = f"Position update failed: {exc}"
            logger.exception(f"Position update failed for pet {self.pet_id}")
            await self.stop()
            return
        # Source exhausted (e.g. end of a replayed track): flush a final snapshot
        try:
            await self.emit_once()
        except SubmissionError as exc:
            self.last_error = str(exc)
            logger.error(f"Final tracking record for pet {self.pet_id} not stored: {exc}")
        except Exception as exc:
            self.last_error = f"Tracking record not built: {exc}"
            logger.exception(f"Final tracking record for pet {self.pet_id} not built")
        await self.stop()

    async def _emit_loop(self) -> None:
        # Ticks follow a fixed schedule; a tick missed during a slow
        # submission is skipped rather than replayed.
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.emit_interval_s
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            next_tick += self.emit_interval_s
            try:
                await self.emit_once()
            except SubmissionError as exc:
                # Non-fatal; the next tick runs as scheduled
                self.last_error = str(exc)
                logger.error(f"Tracking record for pet {self.pet_id} not stored: {exc}")
            except Exception as exc:
                self.last_error = f"Tracking record not built: {exc}"
                logger.exception(f"Tracking record for pet {self.pet_id} not built")
            now = loop.time()
            while next_tick <= now:
                next_tick += self.emit_interval_s


def build_sink(settings: Settings, session_factory) -> RecordSink:
    if settings.tracking_sink_url:
        return HttpRecordSink(settings.tracking_sink_url, timeout=settings.tracking_submit_timeout_s)
    return DatabaseRecordSink(session_factory)


class SessionRegistry:
    """At most one live session per pet; starting again restarts it."""

    def __init__(self, settings: Settings, sink: RecordSink):
        self.settings = settings
        self.sink = sink
        self._sessions: dict[int, TrackingSession] = {}

    def get(self, pet_id: int) -> TrackingSession | None:
        return self._sessions.get(pet_id)

    async def start(self, pet_id: int, source: TrackingSource = TrackingSource.user) -> TrackingSession:
        await self.stop(pet_id)
        s = self.settings
        session = TrackingSession(
            pet_id,
            QueuePositionSource(idle_timeout_s=s.tracking_position_idle_timeout_s),
            ReliableSink(
                self.sink,
                timeout_s=s.tracking_submit_timeout_s,
                attempts=s.tracking_retry_attempts,
                base_delay_s=s.tracking_retry_base_delay_s,
                max_delay_s=s.tracking_retry_max_delay_s,
                dead_letter_size=s.tracking_dead_letter_size,
            ),
            source=source,
            emit_interval_s=s.tracking_emit_interval_s,
            history_size=s.tracking_history_size,
            attribution=s.tracking_time_attribution,
        )
        self._sessions[pet_id] = session
        return await session.start()

    async def stop(self, pet_id: int) -> bool:
        session = self._sessions.pop(pet_id, None)
        if session is None:
            return False
        await session.stop()
        return True

    async def stop_all(self) -> None:
        for pet_id in list(self._sessions):
            await self.stop(pet_id)
