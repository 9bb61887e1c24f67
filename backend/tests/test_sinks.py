import asyncio
import json
import time

import httpx
import pytest

from conftest import wait_until

from app.tracking.errors import SubmissionError
from app.tracking.models import ActivityLevel, HealthLabel, TrackingRecord, TrackingSource
from app.tracking.sinks import DatabaseRecordSink, HttpRecordSink, ReliableSink


def record(pet_id=1, source=TrackingSource.user, method="phone_gps_auto"):
    return TrackingRecord(
        pet_id=pet_id,
        location="Live GPS: 1.000000, 2.000000 (±5m)",
        health_status=HealthLabel.good,
        activity_level=ActivityLevel.moderate,
        phone_coordinates="1.0,2.0",
        tracking_method=method,
        notes="Auto-calculated: Distance: 10.0m, Speed: 0.10m/s, Active: 1min",
        source=source,
    )


class FlakySink:
    """Fails the first ``failures`` submissions, then accepts everything."""

    def __init__(self, failures=0):
        self.failures = failures
        self.calls = 0
        self.stored = []

    async def submit(self, rec):
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("sink unavailable")
        self.stored.append(rec)


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.mark.asyncio
async def test_retries_with_exponential_backoff():
    inner = FlakySink(failures=2)
    sleeps = SleepRecorder()
    sink = ReliableSink(inner, attempts=3, base_delay_s=1.0, sleep=sleeps)
    await sink.submit(record())
    assert inner.calls == 3
    assert sleeps.delays == [1.0, 2.0]
    assert len(inner.stored) == 1
    assert not sink.dead_letters


def test_backoff_is_capped():
    sink = ReliableSink(FlakySink(), base_delay_s=1.0, max_delay_s=10.0)
    assert [sink.backoff(n) for n in range(6)] == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]


@pytest.mark.asyncio
async def test_exhausted_record_is_dead_lettered_then_redelivered():
    inner = FlakySink(failures=2)
    sink = ReliableSink(inner, attempts=2, sleep=SleepRecorder())
    first = record(pet_id=1)
    with pytest.raises(SubmissionError):
        await sink.submit(first)
    assert list(sink.dead_letters) == [first]

    second = record(pet_id=2)
    await sink.submit(second)
    assert inner.stored == [second, first]
    assert not sink.dead_letters


@pytest.mark.asyncio
async def test_dead_letter_buffer_is_bounded():
    sink = ReliableSink(FlakySink(failures=100), attempts=1, dead_letter_size=2)
    for pet_id in range(3):
        with pytest.raises(SubmissionError):
            await sink.submit(record(pet_id=pet_id))
    assert [r.pet_id for r in sink.dead_letters] == [1, 2]


@pytest.mark.asyncio
async def test_each_attempt_is_time_limited():
    class HangingSink:
        async def submit(self, rec):
            await asyncio.sleep(10)

    sink = ReliableSink(HangingSink(), attempts=2, timeout_s=0.01, sleep=SleepRecorder())
    with pytest.raises(SubmissionError):
        await asyncio.wait_for(sink.submit(record()), 1.0)
    assert len(sink.dead_letters) == 1


def test_attempts_must_be_positive():
    with pytest.raises(ValueError):
        ReliableSink(FlakySink(), attempts=0)


@pytest.mark.asyncio
async def test_http_sink_posts_to_source_endpoint():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(201, json={"id": 1})

    sink = HttpRecordSink("http://tracker.test/api", transport=httpx.MockTransport(handler))
    await sink.submit(record(source=TrackingSource.admin, method="admin_gps_auto"))
    await sink.submit(record())

    assert [path for path, _ in seen] == ["/api/admin/pet-tracking", "/api/pet-tracking"]
    assert seen[0][1]["tracking_method"] == "admin_gps_auto"
    assert seen[0][1]["health_status"] == "good"


@pytest.mark.asyncio
async def test_http_sink_raises_on_error_status():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"message": "boom"}))
    sink = HttpRecordSink("http://tracker.test", transport=transport)
    with pytest.raises(httpx.HTTPStatusError):
        await sink.submit(record())


def test_database_sink_notifies_foster_parent_for_admin_records(db_session, seeded_pets):
    from app.db import SessionLocal
    from app.models.notification import Notification
    from app.models.tracking_data import TrackingData

    pet_id = seeded_pets["fostered"]
    sink = DatabaseRecordSink(SessionLocal)
    sink.write(record(pet_id=pet_id))
    row = sink.write(record(pet_id=pet_id, source=TrackingSource.admin, method="admin_gps_auto"))

    assert row.id is not None
    assert row.timestamp is not None
    assert db_session.query(TrackingData).filter(TrackingData.pet_id == pet_id).count() == 2
    notes = db_session.query(Notification).all()
    assert [(n.user_id, n.type, n.seen) for n in notes] == [(7, "tracking", False)]


def test_database_sink_without_foster_parent(db_session, seeded_pets):
    from app.db import SessionLocal
    from app.models.notification import Notification

    sink = DatabaseRecordSink(SessionLocal)
    sink.write(record(pet_id=seeded_pets["available"], source=TrackingSource.admin))
    assert db_session.query(Notification).count() == 0


def test_database_sink_stores_a_resubmitted_record_once(db_session, seeded_pets):
    from app.db import SessionLocal
    from app.models.notification import Notification
    from app.models.tracking_data import TrackingData

    sink = DatabaseRecordSink(SessionLocal)
    rec = record(pet_id=seeded_pets["fostered"], source=TrackingSource.admin, method="admin_gps_auto")
    first = sink.write(rec)
    again = sink.write(rec)

    assert again.id == first.id
    assert again.record_id == rec.record_id
    assert db_session.query(TrackingData).count() == 1
    assert db_session.query(Notification).count() == 1


@pytest.mark.asyncio
async def test_timed_out_database_write_is_not_duplicated_by_retries(db_session, seeded_pets):
    from app.db import SessionLocal
    from app.models.notification import Notification
    from app.models.tracking_data import TrackingData

    def slow_session():
        time.sleep(0.2)
        return SessionLocal()

    class CountingSink(DatabaseRecordSink):
        def __init__(self, session_factory):
            super().__init__(session_factory)
            self.finished = []

        def write(self, rec):
            try:
                return super().write(rec)
            finally:
                self.finished.append(rec.record_id)

    inner = CountingSink(slow_session)
    sink = ReliableSink(inner, attempts=3, timeout_s=0.05, base_delay_s=0.0)
    rec = record(pet_id=seeded_pets["fostered"], source=TrackingSource.admin, method="admin_gps_auto")

    with pytest.raises(SubmissionError):
        await sink.submit(rec)
    assert list(sink.dead_letters) == [rec]

    # The abandoned attempts still run to completion in their threads
    await wait_until(lambda: len(inner.finished) == 3, timeout=5.0)
    sink.timeout_s = 5.0
    assert await sink.redeliver() == 1

    assert db_session.query(TrackingData).count() == 1
    assert db_session.query(Notification).count() == 1
