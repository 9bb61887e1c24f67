"""Position sources feeding a tracking session.

A source is an async iterator of ``PositionSample``. It ends normally when it
runs out of positions and raises ``PositionError`` when the location provider
fails; either way the session stops consuming it.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import gpxpy
import gpxpy.gpx
from loguru import logger

from app.core.time_utils import epoch_ms_from_dt
from app.tracking.errors import PositionError, PositionErrorKind, SessionNotActiveError
from app.tracking.models import PositionSample

# Typical GPS user-equivalent range error; accuracy ≈ HDOP × UERE
GPS_UERE_M = 5.0

# Queued by close() to wake a consumer blocked on an empty queue
_CLOSED = object()


class PositionSource(Protocol):
    def __aiter__(self): ...

    async def __anext__(self) -> PositionSample: ...

    async def close(self) -> None: ...


class QueuePositionSource:
    """Positions pushed in by a client (e.g. a browser geolocation watch).

    ``drain()`` waits until every pushed sample has been handed to the
    consumer and the consumer has asked for the next one, which is how the
    HTTP layer knows a sample has been applied.
    """

    def __init__(self, idle_timeout_s: float | None = None):
        self.idle_timeout_s = idle_timeout_s
        self._queue: asyncio.Queue = asyncio.Queue()
        self._in_flight = False
        self._closed = False

    def push(self, sample: PositionSample) -> None:
        if self._closed:
            raise SessionNotActiveError("Position source is closed")
        self._queue.put_nowait(sample)

    def fail(self, kind: PositionErrorKind, detail: str | None = None) -> None:
        if self._closed:
            raise SessionNotActiveError("Position source is closed")
        self._queue.put_nowait(PositionError(kind, detail))

    async def drain(self) -> None:
        if self._closed:
            return
        await self._queue.join()

    def __aiter__(self):
        return self

    async def __anext__(self) -> PositionSample:
        self._mark_done()
        if self._closed:
            raise StopAsyncIteration
        if self.idle_timeout_s is None:
            item = await self._queue.get()
        else:
            try:
                item = await asyncio.wait_for(self._queue.get(), self.idle_timeout_s)
            except asyncio.TimeoutError:
                raise PositionError(
                    PositionErrorKind.timeout,
                    f"no position within {self.idle_timeout_s}s",
                ) from None
        if item is _CLOSED:
            raise StopAsyncIteration
        self._in_flight = True
        if isinstance(item, PositionError):
            self._mark_done()
            raise item
        return item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._mark_done()
        # Release anyone blocked in drain()
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        # Counted as done up front so drain() never waits on the sentinel
        self._queue.put_nowait(_CLOSED)
        self._queue.task_done()

    def _mark_done(self) -> None:
        if self._in_flight:
            self._in_flight = False
            self._queue.task_done()


def samples_from_gpx(gpx: gpxpy.gpx.GPX) -> list[PositionSample]:
    """Flatten GPX tracks into timestamped samples; untimed points are skipped."""
    samples: list[PositionSample] = []
    skipped = 0
    for track in gpx.tracks:
        for segment in track.segments:
            for p in segment.points:
                if p.time is None:
                    skipped += 1
                    continue
                accuracy = p.horizontal_dilution * GPS_UERE_M if p.horizontal_dilution else 0.0
                samples.append(
                    PositionSample(
                        latitude=p.latitude,
                        longitude=p.longitude,
                        accuracy=accuracy,
                        observed_at=epoch_ms_from_dt(p.time),
                    )
                )
    if skipped:
        logger.debug(f"Skipped {skipped} GPX points without timestamps")
    return samples


def parse_gpx_samples(text: str) -> list[PositionSample]:
    return samples_from_gpx(gpxpy.parse(text))


class GpxPositionSource:
    """Replay the trackpoints of a GPX document.

    With ``speedup`` set, waits between points for the recorded interval
    divided by ``speedup``; otherwise yields as fast as it is consumed.
    """

    def __init__(self, samples: list[PositionSample], speedup: float | None = None):
        self._samples = list(samples)
        self._index = 0
        self.speedup = speedup
        self._closed = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> PositionSample:
        if self._closed or self._index >= len(self._samples):
            raise StopAsyncIteration
        sample = self._samples[self._index]
        if self.speedup and self._index > 0:
            gap_s = (sample.observed_at - self._samples[self._index - 1].observed_at) / 1000.0
            if gap_s > 0:
                await asyncio.sleep(gap_s / self.speedup)
        self._index += 1
        return sample

    async def close(self) -> None:
        self._closed = True
