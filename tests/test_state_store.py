from __future__ import annotations

import math
from datetime import UTC, datetime

import pytest

from bydhass.models.snapshot import Location, Snapshot
from bydhass.state.health import HealthGate
from bydhass.state.policy import ChangeDetector, DeadBand, changed, exponential_backoff, heading_delta, haversine_meters
from bydhass.state.store import SnapshotStore

_LAT = 59.9139
_LON = 10.7522


def _dt(second: int = 0) -> datetime:
    return datetime(2026, 1, 1, 12, 0, second, tzinfo=UTC)


def _north(meters: float) -> float:
    return math.degrees(meters / 6_371_000.0)


def _snap(values: dict[str, float] | None = None, *, location: Location | None = None, second: int = 0) -> Snapshot:
    if values is None:
        values = {"battery_percentage": 80.0}
    return Snapshot(values=values, captured_at=_dt(second), location=location)


def _loc(meters_north: float = 0.0, bearing: float = 90.0) -> Location:
    return Location(latitude=_LAT + _north(meters_north), longitude=_LON, bearing=bearing, accuracy=5.0)


# ------------------------------------------------------------------
# Change detection
# ------------------------------------------------------------------


def test_cold_start_is_always_changed() -> None:
    assert changed(None, _snap()) is True


def test_identical_values_with_different_capture_time_are_unchanged() -> None:
    assert changed(_snap(second=0), _snap(second=30)) is False


def test_wall_clock_fields_are_ignored() -> None:
    previous = _snap({"battery_percentage": 80.0, "minute": 1.0, "hour": 12.0})
    current = _snap({"battery_percentage": 80.0, "minute": 2.0, "hour": 13.0})
    assert changed(previous, current) is False


def test_value_change_is_detected() -> None:
    assert changed(_snap({"battery_percentage": 80.0}), _snap({"battery_percentage": 79.0})) is True


def test_absent_field_differs_from_zero() -> None:
    assert changed(_snap({"speed": 0.0}), _snap({})) is True


def test_position_inside_deadband_is_unchanged() -> None:
    previous = _snap(location=_loc(0.0, bearing=90.0))
    current = _snap(location=_loc(5.0, bearing=92.0))
    assert changed(previous, current) is False


def test_position_outside_deadband_is_changed() -> None:
    previous = _snap(location=_loc(0.0))
    current = _snap(location=_loc(15.0))
    assert changed(previous, current) is True


def test_heading_turn_outside_deadband_is_changed() -> None:
    previous = _snap(location=_loc(0.0, bearing=90.0))
    current = _snap(location=_loc(1.0, bearing=100.0))
    assert changed(previous, current) is True


def test_heading_wraps_around_north() -> None:
    previous = _snap(location=_loc(0.0, bearing=359.0))
    current = _snap(location=_loc(2.0, bearing=1.0))
    assert changed(previous, current) is False


def test_position_appearing_is_changed() -> None:
    assert changed(_snap(), _snap(location=_loc())) is True
    assert changed(_snap(location=_loc()), _snap()) is True


def test_detector_uses_configured_deadband() -> None:
    detector = ChangeDetector(DeadBand(distance_m=20.0, heading_deg=5.0))
    assert detector(_snap(location=_loc(0.0)), _snap(location=_loc(15.0))) is False


def test_geometry_helpers() -> None:
    assert haversine_meters(_LAT, _LON, _LAT + _north(100.0), _LON) == pytest.approx(100.0, rel=1e-6)
    assert heading_delta(350.0, 10.0) == pytest.approx(20.0)
    assert heading_delta(10.0, 350.0) == pytest.approx(20.0)
    assert heading_delta(0.0, 180.0) == pytest.approx(180.0)


# ------------------------------------------------------------------
# Snapshot store
# ------------------------------------------------------------------


def test_store_starts_empty_and_sinks_start_dirty() -> None:
    store = SnapshotStore()
    store.register("abrp")
    store.register("mqtt")

    assert store.latest is None
    assert store.dirty_sinks() == ["abrp", "mqtt"]


def test_replace_marks_every_sink_dirty() -> None:
    store = SnapshotStore()
    store.register("abrp")
    store.register("mqtt")
    version = store.replace(_snap())
    assert store.clear_dirty("abrp", version) is True
    assert store.clear_dirty("mqtt", version) is True

    store.replace(_snap({"battery_percentage": 79.0}))

    assert store.is_dirty("abrp")
    assert store.is_dirty("mqtt")


def test_clear_dirty_is_per_sink() -> None:
    store = SnapshotStore()
    store.register("abrp")
    store.register("mqtt")
    version = store.replace(_snap())

    store.clear_dirty("abrp", version)

    assert not store.is_dirty("abrp")
    assert store.is_dirty("mqtt")


def test_clear_dirty_with_stale_version_keeps_flag() -> None:
    store = SnapshotStore()
    store.register("abrp")
    sent_version = store.replace(_snap())
    store.replace(_snap({"battery_percentage": 79.0}))

    assert store.clear_dirty("abrp", sent_version) is False
    assert store.is_dirty("abrp")


def test_read_returns_snapshot_version_and_flag() -> None:
    store = SnapshotStore()
    store.register("abrp")
    snapshot = _snap()
    version = store.replace(snapshot)

    assert store.read("abrp") == (snapshot, version, True)


def test_clear_dirty_for_unknown_sink_raises() -> None:
    store = SnapshotStore()
    with pytest.raises(KeyError):
        store.clear_dirty("nope", 0)


# ------------------------------------------------------------------
# Backoff / health gate
# ------------------------------------------------------------------


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_backoff_is_monotonic_and_capped() -> None:
    delays = [exponential_backoff(n, base=5.0, ceiling=60.0) for n in range(0, 12)]

    assert delays[0] == 0.0
    assert delays[1] == 5.0
    assert all(later >= earlier for earlier, later in zip(delays, delays[1:], strict=False))
    assert max(delays) == 60.0


def test_backoff_survives_huge_failure_counts() -> None:
    assert exponential_backoff(10_000, base=5.0, ceiling=300.0) == 300.0


def test_gate_closes_after_failure_and_reopens_after_cooldown() -> None:
    clock = _Clock()
    gate = HealthGate(clock, base=5.0, ceiling=60.0)
    assert gate.is_open("abrp")

    gate.record_failure("abrp")
    assert not gate.is_open("abrp")
    assert gate.cooldown_remaining("abrp") == pytest.approx(5.0)

    clock.now += 5.0
    assert gate.is_open("abrp")


def test_gate_cooldown_grows_with_consecutive_failures() -> None:
    clock = _Clock()
    gate = HealthGate(clock, base=5.0, ceiling=12.0)
    cooldowns = []
    for _ in range(4):
        state = gate.record_failure("abrp")
        assert state.cooldown_until is not None
        cooldowns.append(state.cooldown_until - clock.now)

    assert cooldowns == [5.0, 10.0, 12.0, 12.0]
    assert gate.health("abrp").consecutive_failures == 4
    assert gate.health("abrp").last_failure_at == clock.now


def test_gate_success_resets_to_zero() -> None:
    clock = _Clock()
    gate = HealthGate(clock, base=5.0, ceiling=60.0)
    gate.record_failure("abrp")
    gate.record_failure("abrp")

    gate.record_success("abrp")

    assert gate.is_open("abrp")
    assert gate.health("abrp").consecutive_failures == 0
    assert gate.cooldown_remaining("abrp") == 0.0
    # The next failure starts the curve from the bottom again.
    assert gate.record_failure("abrp").cooldown_until == clock.now + 5.0


def test_gate_state_is_per_sink() -> None:
    gate = HealthGate(_Clock(), base=5.0, ceiling=60.0)
    gate.record_failure("abrp")

    assert not gate.is_open("abrp")
    assert gate.is_open("mqtt")
