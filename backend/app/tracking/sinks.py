"""Destinations for tracking records, plus the retrying wrapper around them."""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from typing import Awaitable, Callable, Protocol

import httpx
from loguru import logger

from app.tracking.errors import SubmissionError
from app.tracking.models import TrackingRecord, TrackingSource
from app.tracking.store import save_tracking_data


class RecordSink(Protocol):
    async def submit(self, record: TrackingRecord) -> None: ...


class DatabaseRecordSink:
    """Write records straight to the tracking_data table.

    Admin records also notify the pet's foster parent, the same as records
    posted to ``/admin/pet-tracking``.

    Writes run one at a time in worker threads. An attempt abandoned by a
    timeout still finishes, so a retry of the same record finds its row by
    ``record_id`` instead of inserting it again.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._lock = threading.Lock()

    async def submit(self, record: TrackingRecord) -> None:
        await asyncio.to_thread(self.write, record)

    def write(self, record: TrackingRecord):
        with self._lock:
            db = self.session_factory()
            try:
                return save_tracking_data(
                    db,
                    record.to_payload(),
                    notify=record.source == TrackingSource.admin,
                )
            finally:
                db.close()


class HttpRecordSink:
    """POST records to a remote pet-tracking API."""

    PATHS = {
        TrackingSource.user: "/pet-tracking",
        TrackingSource.admin: "/admin/pet-tracking",
    }

    def __init__(self, base_url: str, timeout: float = 30, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def submit(self, record: TrackingRecord) -> None:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            r = await client.post(self.PATHS[record.source], json=record.to_payload())
            r.raise_for_status()


class ReliableSink:
    """Bounded retries with exponential backoff, then a dead-letter buffer.

    Each attempt is limited to ``timeout_s``. Records that exhaust their
    attempts are kept (up to ``dead_letter_size``, oldest dropped first) and
    redelivered after the next successful submission.
    Every attempt resends the same ``record_id``, so a sink that stored an
    attempt after it timed out keeps a single copy.
    """

    def __init__(
        self,
        inner: RecordSink,
        *,
        timeout_s: float = 10.0,
        attempts: int = 3,
        base_delay_s: float = 1.0,
        max_delay_s: float = 10.0,
        dead_letter_size: int = 500,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.inner = inner
        self.timeout_s = timeout_s
        self.attempts = attempts
        self.base_delay_s = base_delay_s
        self.max_delay_s = max_delay_s
        self.dead_letters: deque[TrackingRecord] = deque(maxlen=dead_letter_size)
        self._sleep = sleep

    def backoff(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1`` (attempt is 0-based)."""
        return min(self.base_delay_s * 2**attempt, self.max_delay_s)

    async def submit(self, record: TrackingRecord) -> None:
        try:
            await self._deliver(record)
        except SubmissionError:
            self.dead_letters.append(record)
            logger.error(
                f"Tracking record for pet {record.pet_id} dead-lettered "
                f"({len(self.dead_letters)} buffered)"
            )
            raise
        if self.dead_letters:
            await self.redeliver()

    async def redeliver(self) -> int:
        """Retry buffered records oldest-first, stopping at the first failure."""
        delivered = 0
        while self.dead_letters:
            record = self.dead_letters[0]
            try:
                await asyncio.wait_for(self.inner.submit(record), self.timeout_s)
            except Exception as e:
                logger.warning(f"Redelivery of buffered tracking record failed: {e!r}")
                break
            self.dead_letters.popleft()
            delivered += 1
        if delivered:
            logger.info(f"Redelivered {delivered} buffered tracking records")
        return delivered

    async def _deliver(self, record: TrackingRecord) -> None:
        last_error: Exception | None = None
        for attempt in range(self.attempts):
            try:
                await asyncio.wait_for(self.inner.submit(record), self.timeout_s)
                return
            except Exception as e:
                last_error = e
                if attempt < self.attempts - 1:
                    wait_time = self.backoff(attempt)
                    logger.warning(
                        f"Tracking record submit failed for pet {record.pet_id}: {e!r}. "
                        f"Retrying in {wait_time}s (attempt {attempt + 1}/{self.attempts})"
                    )
                    await self._sleep(wait_time)
        raise SubmissionError(
            f"Failed to submit tracking record after {self.attempts} attempts: {last_error!r}"
        ) from last_error
