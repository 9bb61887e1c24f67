import asyncio

import pytest

from app.tracking.errors import PositionError, PositionErrorKind, SessionNotActiveError
from app.tracking.models import PositionSample
from app.tracking.sources import GpxPositionSource, QueuePositionSource, parse_gpx_samples


GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <trk><trkseg>
    <trkpt lat="40.0000" lon="-74.0000"><time>2025-05-01T08:00:00Z</time><hdop>2.0</hdop></trkpt>
    <trkpt lat="40.0001" lon="-74.0000"><time>2025-05-01T08:00:10Z</time></trkpt>
    <trkpt lat="40.0002" lon="-74.0000"></trkpt>
    <trkpt lat="40.0003" lon="-74.0000"><time>2025-05-01T08:00:30Z</time></trkpt>
  </trkseg></trk>
</gpx>
"""


def sample(t_ms=0):
    return PositionSample(latitude=1.0, longitude=2.0, accuracy=3.0, observed_at=t_ms)


def test_gpx_points_become_samples():
    samples = parse_gpx_samples(GPX)
    assert len(samples) == 3  # untimed point skipped
    assert samples[0].accuracy == pytest.approx(10.0)
    assert samples[1].accuracy == 0.0
    assert samples[1].observed_at - samples[0].observed_at == 10_000
    assert samples[2].latitude == pytest.approx(40.0003)


@pytest.mark.asyncio
async def test_gpx_source_replays_in_order():
    source = GpxPositionSource(parse_gpx_samples(GPX))
    seen = [s.observed_at async for s in source]
    assert seen == sorted(seen)
    assert len(seen) == 3


@pytest.mark.asyncio
async def test_gpx_source_stops_when_closed():
    source = GpxPositionSource(parse_gpx_samples(GPX))
    await source.__anext__()
    await source.close()
    with pytest.raises(StopAsyncIteration):
        await source.__anext__()


@pytest.mark.asyncio
async def test_queue_source_yields_pushed_samples():
    source = QueuePositionSource()
    source.push(sample(1))
    source.push(sample(2))
    assert (await source.__anext__()).observed_at == 1
    assert (await source.__anext__()).observed_at == 2


@pytest.mark.asyncio
async def test_queue_source_raises_reported_error():
    source = QueuePositionSource()
    source.fail(PositionErrorKind.permission_denied)
    with pytest.raises(PositionError) as exc_info:
        await source.__anext__()
    assert exc_info.value.kind == PositionErrorKind.permission_denied
    assert str(exc_info.value) == "Location access denied by user"


@pytest.mark.asyncio
async def test_queue_source_idle_timeout():
    source = QueuePositionSource(idle_timeout_s=0.01)
    with pytest.raises(PositionError) as exc_info:
        await source.__anext__()
    assert exc_info.value.kind == PositionErrorKind.timeout
    assert exc_info.value.message == "Location request timed out"


@pytest.mark.asyncio
async def test_drain_waits_for_consumer():
    source = QueuePositionSource()
    applied = []

    async def consume():
        async for s in source:
            applied.append(s.observed_at)

    task = asyncio.create_task(consume())
    source.push(sample(1))
    source.push(sample(2))
    await asyncio.wait_for(source.drain(), 1.0)
    assert applied == [1, 2]
    await source.close()
    await asyncio.wait_for(task, 1.0)


@pytest.mark.asyncio
async def test_closed_source_rejects_pushes_and_releases_drain():
    source = QueuePositionSource()
    source.push(sample(1))
    await source.close()
    await asyncio.wait_for(source.drain(), 1.0)
    with pytest.raises(SessionNotActiveError):
        source.push(sample(2))
    with pytest.raises(StopAsyncIteration):
        await source.__anext__()
