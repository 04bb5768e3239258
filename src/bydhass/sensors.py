"""Di-Plus sensor catalog.

Each sensor is addressed on the head unit by its Chinese display name.
The bridge asks Di-Plus to echo values back under the CamelCase
``field_name`` and stores them in snapshots under the snake_case key.

Only :data:`MONITORED_SENSOR_IDS` are polled; sensors whose ``publish``
flag is set there also appear in the Home Assistant state payload.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterable, Mapping

_FIRST_CAP = re.compile(r"(.)([A-Z][a-z]+)")
_ALL_CAP = re.compile(r"([a-z0-9])([A-Z])")


def to_snake_case(name: str) -> str:
    """``"BatteryPercentage"`` -> ``"battery_percentage"``, ``"ACStatus"`` -> ``"ac_status"``."""
    snake = _FIRST_CAP.sub(r"\1_\2", name)
    snake = _ALL_CAP.sub(r"\1_\2", snake)
    return snake.lower()


@dataclasses.dataclass(frozen=True)
class SensorDefinition:
    """One Di-Plus sensor.

    Parameters
    ----------
    id : int
        Stable catalog id.
    chinese_name : str
        Name Di-Plus resolves in its ``text`` template.
    field_name : str
        CamelCase key Di-Plus echoes back.
    description : str
        English display name (used for Home Assistant entities).
    unit, device_class, state_class : str or None
        Home Assistant metadata.
    """

    id: int
    chinese_name: str
    field_name: str
    description: str
    unit: str | None = None
    device_class: str | None = None
    state_class: str | None = None

    @property
    def key(self) -> str:
        """Snapshot value key."""
        return to_snake_case(self.field_name)


def _s(
    id_: int,
    chinese: str,
    field: str,
    desc: str,
    unit: str | None = None,
    device_class: str | None = None,
    state_class: str | None = None,
) -> SensorDefinition:
    return SensorDefinition(id_, chinese, field, desc, unit, device_class, state_class)


ALL_SENSORS: tuple[SensorDefinition, ...] = (
    _s(1, "电源状态", "PowerStatus", "Power Status"),
    _s(2, "车速", "Speed", "Vehicle Speed", "km/h", "speed", "measurement"),
    _s(3, "里程", "Mileage", "Mileage", "km", "distance", "total_increasing"),
    _s(4, "档位", "GearPosition", "Gear Position"),
    _s(5, "发动机转速", "EngineRPM", "Engine RPM", "rpm", None, "measurement"),
    _s(10, "发动机功率", "EnginePower", "Engine Power", "kW", "power", "measurement"),
    _s(12, "充电枪插枪状态", "ChargeGunState", "Charging Plug Status"),
    _s(13, "百公里电耗", "PowerConsumption100km", "Power Consumption per 100km", "kWh", None, "measurement"),
    _s(14, "最高电池温度", "MaxBatteryTemp", "Max Battery Temperature", "°C", "temperature", "measurement"),
    _s(15, "平均电池温度", "AvgBatteryTemp", "Avg Battery Temperature", "°C", "temperature", "measurement"),
    _s(16, "最低电池温度", "MinBatteryTemp", "Min Battery Temperature", "°C", "temperature", "measurement"),
    _s(17, "最高电池电压", "MaxBatteryVoltage", "Max Battery Voltage", "V", "voltage", "measurement"),
    _s(18, "最低电池电压", "MinBatteryVoltage", "Min Battery Voltage", "V", "voltage", "measurement"),
    _s(22, "远程锁车状态", "RemoteLockStatus", "Remote Lock Status"),
    _s(25, "车内温度", "CabinTemperature", "Cabin Temperature", "°C", "temperature", "measurement"),
    _s(26, "车外温度", "OutsideTemperature", "Outside Temperature", "°C", "temperature", "measurement"),
    _s(27, "主驾驶空调温度", "DriverACTemperature", "Driver AC Temperature", "°C", "temperature", "measurement"),
    _s(29, "电池容量", "BatteryCapacity", "Battery Capacity", "kWh", "energy_storage", "measurement"),
    _s(32, "总电耗", "TotalPowerConsumption", "Total Power Consumption", "kWh", "energy", "total_increasing"),
    _s(33, "电量百分比", "BatteryPercentage", "Battery Percentage", "%", "battery", "measurement"),
    _s(34, "油量百分比", "FuelPercentage", "Fuel Percentage", "%", None, "measurement"),
    _s(39, "蓄电池电压", "BatteryVoltage12V", "12V Battery Voltage", "V", "voltage", "measurement"),
    _s(52, "充电状态", "ChargingStatus", "Charging Status"),
    _s(53, "左前轮气压", "LeftFrontTirePressure", "Left Front Tire Pressure", "kPa", "pressure", "measurement"),
    _s(54, "右前轮气压", "RightFrontTirePressure", "Right Front Tire Pressure", "kPa", "pressure", "measurement"),
    _s(55, "左后轮气压", "LeftRearTirePressure", "Left Rear Tire Pressure", "kPa", "pressure", "measurement"),
    _s(56, "右后轮气压", "RightRearTirePressure", "Right Rear Tire Pressure", "kPa", "pressure", "measurement"),
    _s(59, "主驾车门锁", "DriverDoorLock", "Driver Door Lock"),
    _s(69, "月", "Month", "Month"),
    _s(70, "日", "Day", "Day"),
    _s(71, "时", "Hour", "Hour"),
    _s(72, "分", "Minute", "Minute"),
    _s(77, "空调状态", "ACStatus", "AC Status"),
    _s(78, "风量档位", "FanSpeedLevel", "Fan Speed Level"),
    _s(81, "主驾车门", "DriverDoor", "Driver Door"),
    _s(86, "后备箱门", "TrunkDoor", "Trunk Door"),
    _s(108, "发动机水温", "EngineCoolantTemp", "Engine Coolant Temperature", "°C", "temperature", "measurement"),
    _s(1003, "哨兵状态", "SentryModeStatus", "Sentry Mode Status"),
)

_BY_ID: dict[int, SensorDefinition] = {s.id: s for s in ALL_SENSORS}
_BY_FIELD: dict[str, SensorDefinition] = {s.field_name: s for s in ALL_SENSORS}

# (sensor id, publish externally)
# Keep this list tidy: every entry is part of each Di-Plus request.
MONITORED_SENSORS: tuple[tuple[int, bool], ...] = (
    (33, True),  # BatteryPercentage - HA battery, location attr, ABRP soc
    (2, True),  # Speed - HA + device_tracker state, ABRP speed/is_parked
    (3, True),  # Mileage - odometer
    (53, True),  # LeftFrontTirePressure
    (54, True),  # RightFrontTirePressure
    (55, True),  # LeftRearTirePressure
    (56, True),  # RightRearTirePressure
    (10, True),  # EnginePower - power gauge
    (26, True),  # OutsideTemperature
    (25, True),  # CabinTemperature
    (12, False),  # ChargeGunState - feeds the derived charging_status
    (1, False),  # PowerStatus - derived device_tracker state
    (15, False),  # AvgBatteryTemp - ABRP batt_temp
    (17, False),  # MaxBatteryVoltage - ABRP voltage/current
    (27, False),  # DriverACTemperature - ABRP hvac_setpoint
    (29, False),  # BatteryCapacity - ABRP capacity/soe
    (77, False),  # ACStatus - ABRP hvac_power
    (78, False),  # FanSpeedLevel - ABRP hvac_power
)

MONITORED_SENSOR_IDS: tuple[int, ...] = tuple(sensor_id for sensor_id, _ in MONITORED_SENSORS)
PUBLISHED_SENSOR_IDS: tuple[int, ...] = tuple(sensor_id for sensor_id, publish in MONITORED_SENSORS if publish)

#: Wall-clock fields that tick every minute and carry no telemetry.
VOLATILE_FIELDS: frozenset[str] = frozenset({"year", "month", "day", "hour", "minute"})


def get_sensor_by_id(sensor_id: int) -> SensorDefinition | None:
    return _BY_ID.get(sensor_id)


def get_sensor_by_field(field_name: str) -> SensorDefinition | None:
    return _BY_FIELD.get(field_name)


def build_api_template(sensor_ids: Iterable[int]) -> str:
    """Build the Di-Plus ``text`` template, e.g. ``"Speed:{车速}|Mileage:{里程}"``.

    Unknown ids are skipped.
    """
    parts: list[str] = []
    for sensor_id in sensor_ids:
        sensor = _BY_ID.get(sensor_id)
        if sensor is None:
            continue
        parts.append(f"{sensor.field_name}:{{{sensor.chinese_name}}}")
    return "|".join(parts)


# ------------------------------------------------------------------
# Derived values
# ------------------------------------------------------------------


def derive_charging_status(values: Mapping[str, float]) -> str:
    """Derive a charging state from raw Di-Plus metrics.

    1. Charge gun missing or not ``2`` -> ``"disconnected"``.
    2. Gun connected and engine power above ``-1`` -> ``"charging"``.
    3. Otherwise -> ``"connected"``.
    """
    gun = values.get("charge_gun_state")
    if gun is None or gun != 2:
        return "disconnected"
    power = values.get("engine_power")
    if power is not None and power > -1:
        return "charging"
    return "connected"


def derive_vehicle_state(values: Mapping[str, float]) -> str:
    """Coarse device-tracker state: ``moving``, ``charging``, ``online`` or ``parked``."""
    speed = values.get("speed")
    if speed is not None and speed > 0:
        return "moving"
    if derive_charging_status(values) == "charging":
        return "charging"
    power = values.get("power_status")
    if power is not None and power > 0:
        return "online"
    return "parked"


def validate_values(values: Mapping[str, float]) -> list[str]:
    """Return human-readable warnings for implausible readings."""
    warnings: list[str] = []

    battery = values.get("battery_percentage")
    if battery is not None and not 0 <= battery <= 100:
        warnings.append(f"Battery percentage out of range: {battery:.1f}%")

    speed = values.get("speed")
    if speed is not None and not 0 <= speed <= 300:
        warnings.append(f"Speed out of reasonable range: {speed:.1f} km/h")

    cabin = values.get("cabin_temperature")
    if cabin is not None and not -40 <= cabin <= 80:
        warnings.append(f"Cabin temperature out of reasonable range: {cabin:.1f}°C")

    outside = values.get("outside_temperature")
    if outside is not None and not -50 <= outside <= 60:
        warnings.append(f"Outside temperature out of reasonable range: {outside:.1f}°C")

    return warnings
