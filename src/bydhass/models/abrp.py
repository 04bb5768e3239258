"""ABRP telemetry payload model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class AbrpTelemetry(BaseModel):
    """The ``tlm`` object accepted by ``/1/tlm/send``.

    ``utc`` and ``soc`` are required by ABRP; every other field is only
    sent when it is known.

    Power is in kW (positive while driving, negative while charging),
    pressures in kPa and temperatures in °C.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    utc: int
    soc: float

    power: float | None = None
    speed: float | None = None
    lat: float | None = None
    lon: float | None = None
    is_charging: bool | None = None
    is_dcfc: bool | None = None
    is_parked: bool | None = None

    capacity: float | None = None
    soe: float | None = None
    heading: float | None = None
    elevation: float | None = None
    ext_temp: float | None = None
    batt_temp: float | None = None
    cabin_temp: float | None = None
    voltage: float | None = None
    current: float | None = None
    odometer: float | None = None
    est_battery_range: float | None = None
    hvac_power: float | None = None
    hvac_setpoint: float | None = None
    tire_pressure_fl: float | None = None
    tire_pressure_fr: float | None = None
    tire_pressure_rl: float | None = None
    tire_pressure_rr: float | None = None

    def to_payload(self) -> dict[str, Any]:
        """Request body with unknown fields omitted."""
        return {"tlm": self.model_dump(exclude_none=True)}
