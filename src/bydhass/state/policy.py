"""Change detection and backoff policy.

Pure functions only: the store and the health gate decide *when* to call
them, these decide *what* counts as a change and how long a sink rests.
"""

from __future__ import annotations

import dataclasses
import math

from bydhass import _constants as const
from bydhass.models.snapshot import Location, Snapshot
from bydhass.sensors import VOLATILE_FIELDS

_EARTH_RADIUS_M = 6_371_000.0

# 2**30 * any sane base is far beyond every ceiling.
_MAX_EXPONENT = 30


@dataclasses.dataclass(frozen=True)
class DeadBand:
    """Tolerance within which two positions are treated as the same.

    Both conditions must hold: the fixes are closer than ``distance_m``
    *and* the headings differ by less than ``heading_deg``.
    """

    distance_m: float = const.DEADBAND_DISTANCE_M
    heading_deg: float = const.DEADBAND_HEADING_DEG


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in metres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return _EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def heading_delta(a: float, b: float) -> float:
    """Smallest angle between two headings, in ``[0, 180]``."""
    diff = abs(a - b) % 360.0
    if diff > 180.0:
        diff = 360.0 - diff
    return diff


def within_deadband(previous: Location, current: Location, deadband: DeadBand) -> bool:
    distance = haversine_meters(previous.latitude, previous.longitude, current.latitude, current.longitude)
    # A missing bearing reads as north.
    turn = heading_delta(previous.bearing or 0.0, current.bearing or 0.0)
    return distance < deadband.distance_m and turn < deadband.heading_deg


def _comparable(values: dict[str, float]) -> dict[str, float]:
    return {key: value for key, value in values.items() if key not in VOLATILE_FIELDS}


def changed(previous: Snapshot | None, current: Snapshot, *, deadband: DeadBand | None = None) -> bool:
    """Return ``True`` when *current* differs meaningfully from *previous*.

    - No previous snapshot is always a change (cold start).
    - ``captured_at`` and the wall-clock fields in
      :data:`~bydhass.sensors.VOLATILE_FIELDS` are ignored.
    - Two positions inside the dead-band compare equal; a position present
      on only one side is a change.
    """
    if previous is None:
        return True

    if _comparable(previous.values) != _comparable(current.values):
        return True

    prev_loc, cur_loc = previous.location, current.location
    if prev_loc is None or cur_loc is None:
        return prev_loc is not cur_loc
    if within_deadband(prev_loc, cur_loc, deadband or DeadBand()):
        return False
    return prev_loc != cur_loc


class ChangeDetector:
    """:func:`changed` bound to a configured dead-band."""

    def __init__(self, deadband: DeadBand | None = None) -> None:
        self.deadband = deadband or DeadBand()

    def __call__(self, previous: Snapshot | None, current: Snapshot) -> bool:
        return changed(previous, current, deadband=self.deadband)


def exponential_backoff(failures: int, *, base: float, ceiling: float) -> float:
    """Cooldown after *failures* consecutive failures.

    ``0`` for no failures, then ``base``, ``2*base``, ``4*base`` ... capped at
    ``ceiling``. Non-decreasing in *failures*.
    """
    if failures <= 0:
        return 0.0
    exponent = min(failures - 1, _MAX_EXPONENT)
    return min(ceiling, base * (2**exponent))
