"""Snapshot and location models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from bydhass.ingestion.normalize import parse_epoch_timestamp, safe_float


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Location(BaseModel):
    """A GPS fix attached to a snapshot.

    Parameters
    ----------
    latitude, longitude : float
        Position in degrees.
    altitude : float or None
        Metres above sea level.
    accuracy : float or None
        Horizontal accuracy in metres.
    bearing : float or None
        Heading in degrees (0-360).
    speed : float or None
        GPS speed in m/s.
    provider : str or None
        Android location provider that produced the fix.
    timestamp : datetime or None
        Time of the fix (UTC).
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lon", "lng"))
    altitude: float | None = Field(default=None, validation_alias=AliasChoices("altitude", "elevation"))
    accuracy: float | None = None
    bearing: float | None = Field(default=None, validation_alias=AliasChoices("bearing", "heading", "direction"))
    speed: float | None = None
    provider: str | None = None
    timestamp: datetime | None = None

    @field_validator("altitude", "accuracy", "bearing", "speed", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return parse_epoch_timestamp(value)
        return value


class Snapshot(BaseModel):
    """One immutable point-in-time set of telemetry values.

    ``values`` only holds fields the source actually reported; a missing
    key means "absent", which is distinct from ``0.0``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    values: dict[str, float] = Field(default_factory=dict)
    captured_at: datetime = Field(default_factory=_utcnow)
    location: Location | None = None

    def get(self, key: str) -> float | None:
        return self.values.get(key)

    def has(self, key: str) -> bool:
        return key in self.values

    def with_location(self, location: Location | None) -> Snapshot:
        """Return a copy with *location* attached."""
        return self.model_copy(update={"location": location})
