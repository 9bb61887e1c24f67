import pytest

from app.tracking.activity import replay, update_position
from app.tracking.models import ActivityState, PositionSample


def sample(lat, lng, t_s, accuracy=5.0):
    return PositionSample(latitude=lat, longitude=lng, accuracy=accuracy, observed_at=int(t_s * 1000))


def walk(n, step_deg=0.0001, every_s=10):
    """n samples heading north, ~11 m apart."""
    return [sample(40.0 + i * step_deg, -74.0, i * every_s) for i in range(n)]


def test_first_sample_has_no_distance_or_speed():
    state = update_position(ActivityState(), sample(40.0, -74.0, 0))
    assert state.total_distance_m == 0.0
    assert state.average_speed_mps == 0.0
    assert state.history[-1].speed == 0.0
    # a stationary first step counts as rest
    assert state.rest_seconds == 30.0
    assert state.active_seconds == 0.0


def test_speed_and_distance_accumulate():
    state = replay(walk(3))
    assert state.total_distance_m == pytest.approx(22.24, rel=0.01)
    assert state.history[-1].speed == pytest.approx(1.112, rel=0.01)
    assert state.average_speed_mps == pytest.approx(1.112, rel=0.01)
    assert state.active_seconds == 60.0
    assert state.rest_seconds == 30.0


def test_history_keeps_most_recent_fifty():
    samples = walk(75)
    state = replay(samples)
    assert len(state.history) == 50
    assert state.history[0].observed_at == samples[25].observed_at
    assert state.history[-1].observed_at == samples[-1].observed_at


def test_custom_history_size():
    state = replay(walk(8), history_size=5)
    assert len(state.history) == 5


def test_total_distance_never_decreases():
    state = ActivityState()
    previous = 0.0
    path = [(0, 0), (0.001, 0), (0.001, 0.001), (0, 0), (0, 0), (-0.002, 0.003)]
    for i, (dlat, dlng) in enumerate(path):
        update_position(state, sample(10 + dlat, 20 + dlng, i * 5))
        assert state.total_distance_m >= previous
        previous = state.total_distance_m


def test_identical_timestamps_do_not_divide_by_zero():
    state = ActivityState()
    update_position(state, sample(40.0, -74.0, 100))
    update_position(state, sample(40.001, -74.0, 100))
    assert state.history[-1].speed == 0.0
    assert state.average_speed_mps == 0.0
    assert state.rest_seconds == 60.0


def test_average_speed_is_zero_when_never_moving():
    state = replay([sample(40.0, -74.0, t) for t in range(0, 100, 10)])
    assert state.average_speed_mps == 0.0
    assert state.total_distance_m == 0.0


def test_average_ignores_stationary_steps():
    samples = walk(3) + [sample(40.0002, -74.0, 30)]
    state = replay(samples)
    # last step stationary: excluded from the mean
    assert state.history[-1].speed == 0.0
    assert state.average_speed_mps == pytest.approx(1.112, rel=0.01)


def test_slow_movement_counts_as_rest():
    # ~1.1 m over 30 s = 0.037 m/s, under the 0.05 m/s activity threshold
    state = replay([sample(40.0, -74.0, 0), sample(40.00001, -74.0, 30)])
    assert state.history[-1].speed < 0.05
    assert state.active_seconds == 0.0
    assert state.rest_seconds == 60.0


def test_elapsed_attribution_uses_real_time():
    state = replay(walk(3, every_s=7), attribution="elapsed")
    assert state.active_seconds == pytest.approx(14.0)
    assert state.rest_seconds == 0.0


def test_unknown_attribution_is_rejected():
    with pytest.raises(ValueError):
        update_position(ActivityState(), sample(0, 0, 0), attribution="wallclock")


def test_empty_history_window_is_rejected():
    with pytest.raises(ValueError):
        update_position(ActivityState(), sample(0, 0, 0), history_size=0)
