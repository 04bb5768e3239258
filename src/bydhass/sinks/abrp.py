"""ABRP (A Better Route Planner) telemetry sink."""

from __future__ import annotations

import logging

from bydhass import _constants as const
from bydhass._redact import redact_for_log
from bydhass._transport import Transport
from bydhass.exceptions import AbrpError, TransportError
from bydhass.models.abrp import AbrpTelemetry
from bydhass.models.snapshot import Snapshot
from bydhass.sensors import derive_charging_status

_logger = logging.getLogger(__name__)

# Rough figures used where the car does not report the value directly.
_AC_CHARGE_POWER_KW = 22.0
_DRIVE_BASE_POWER_KW = 15.0
_HVAC_BASE_POWER_KW = 2.0
_BASE_EFFICIENCY_KM_PER_KWH = 5.0
_MAX_FAN_LEVEL = 3.0


def _charging_power(engine_power: float | None) -> float:
    """Charging power in kW, negative as ABRP expects."""
    if engine_power:
        return -abs(engine_power)
    return -_AC_CHARGE_POWER_KW


def _driving_power(speed: float, outside_temp: float | None) -> float:
    power = _DRIVE_BASE_POWER_KW + (speed / 100.0) * 10.0
    if outside_temp is not None and (outside_temp < 0 or outside_temp > 30):
        power += 5.0
    return power


def _estimated_range(soe: float, outside_temp: float | None, speed: float | None) -> float:
    efficiency = _BASE_EFFICIENCY_KM_PER_KWH
    if outside_temp is not None:
        if outside_temp < 0:
            efficiency *= 0.75
        elif outside_temp < 10:
            efficiency *= 0.85
        elif outside_temp > 35:
            efficiency *= 0.90
    if speed is not None and speed > 100:
        efficiency *= 0.8
    elif speed is not None and speed > 80:
        efficiency *= 0.9
    return soe * efficiency


def _hvac_power(cabin: float | None, outside: float | None, fan_level: float | None) -> float:
    power = _HVAC_BASE_POWER_KW
    if cabin is not None and outside is not None:
        power += abs(cabin - outside) / 10.0
    if fan_level is not None:
        power *= fan_level / _MAX_FAN_LEVEL
    return power


def build_telemetry(snapshot: Snapshot) -> AbrpTelemetry:
    """Map a snapshot onto ABRP's telemetry fields.

    Power is the reported engine power while driving and an estimate
    otherwise; while charging it is negative and ``is_dcfc`` is set once
    the draw exceeds what an AC charger delivers.
    """
    get = snapshot.get
    speed = get("speed")
    outside = get("outside_temperature")
    soc = get("battery_percentage")
    capacity = get("battery_capacity")
    engine_power = get("engine_power")

    fields: dict[str, object] = {
        "utc": int(snapshot.captured_at.timestamp()),
        "soc": soc if soc is not None else 0.0,
        "speed": speed,
        "ext_temp": outside,
        "batt_temp": get("avg_battery_temp"),
        "cabin_temp": get("cabin_temperature"),
        "odometer": get("mileage"),
        "hvac_setpoint": get("driver_ac_temperature"),
        "capacity": capacity,
        "voltage": get("max_battery_voltage"),
    }
    if speed is not None:
        fields["is_parked"] = speed == 0

    location = snapshot.location
    if location is not None:
        fields.update(
            lat=location.latitude,
            lon=location.longitude,
            elevation=location.altitude,
            heading=location.bearing,
        )

    power: float | None = None
    if snapshot.has("charge_gun_state"):
        is_charging = derive_charging_status(snapshot.values) == "charging"
        fields["is_charging"] = is_charging
        if is_charging:
            power = _charging_power(engine_power)
            fields["is_dcfc"] = abs(power) > _AC_CHARGE_POWER_KW

    if speed is not None and speed > 0:
        power = engine_power if engine_power is not None else _driving_power(speed, outside)
    fields["power"] = power

    voltage = get("max_battery_voltage")
    if power is not None and voltage:
        # I = P / V, kW -> W
        fields["current"] = power * 1000.0 / voltage

    if capacity is not None and soc is not None:
        soe = capacity * soc / 100.0
        fields["soe"] = soe
        fields["est_battery_range"] = _estimated_range(soe, outside, speed)

    ac_status = get("ac_status")
    if ac_status is not None and ac_status > 0:
        fields["hvac_power"] = _hvac_power(get("cabin_temperature"), outside, get("fan_speed_level"))

    # Di-Plus reports tire pressure in hundredths of a bar, numerically kPa.
    for key, field in (
        ("left_front_tire_pressure", "tire_pressure_fl"),
        ("right_front_tire_pressure", "tire_pressure_fr"),
        ("left_rear_tire_pressure", "tire_pressure_rl"),
        ("right_rear_tire_pressure", "tire_pressure_rr"),
    ):
        fields[field] = get(key)

    return AbrpTelemetry.model_validate(fields)


class AbrpSink:
    """Uploads each snapshot to ``/1/tlm/send``.

    Parameters
    ----------
    api_key : str
        ABRP application key.
    token : str
        ABRP user token for the vehicle.
    transport : Transport
        JSON transport.
    url : str
        Telemetry endpoint.
    """

    def __init__(
        self,
        api_key: str,
        token: str,
        transport: Transport,
        *,
        url: str = const.ABRP_TELEMETRY_URL,
    ) -> None:
        self._api_key = api_key
        self._token = token
        self._transport = transport
        self._url = url

    @property
    def name(self) -> str:
        return "abrp"

    def healthy(self) -> bool:
        return bool(self._api_key) and bool(self._token)

    async def transmit(self, snapshot: Snapshot) -> None:
        payload = build_telemetry(snapshot).to_payload()
        params = {"token": self._token, "api_key": self._api_key}
        _logger.debug("ABRP request params=%s payload=%s", redact_for_log(params), payload)

        try:
            body = await self._transport.post_json(self._url, payload, params=params)
        except TransportError as exc:
            raise AbrpError(f"ABRP upload failed: {exc}", sink=self.name) from exc

        if isinstance(body, dict):
            status = body.get("status")
            if status is not None and status != "ok":
                raise AbrpError(
                    f"ABRP rejected telemetry: status={status} {body.get('errors') or ''}".rstrip(),
                    sink=self.name,
                )
        _logger.debug("ABRP telemetry accepted soc=%s", payload["tlm"].get("soc"))
