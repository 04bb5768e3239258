"""Home Assistant MQTT discovery payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HaDevice(BaseModel):
    """Device block shared by every entity of one car."""

    model_config = ConfigDict(frozen=True)

    identifiers: list[str]
    name: str = "BYD Car"
    model: str = "Car"
    manufacturer: str = "BYD"
    sw_version: str | None = None


class _DiscoveryBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    unique_id: str
    availability_topic: str
    device: HaDevice

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class SensorDiscovery(_DiscoveryBase):
    """Discovery config for one ``sensor`` entity reading from the shared state topic."""

    state_topic: str
    value_template: str | None = None
    device_class: str | None = None
    unit_of_measurement: str | None = None
    state_class: str | None = None
    icon: str | None = None
    entity_category: str | None = None


class TrackerDiscovery(_DiscoveryBase):
    """Discovery config for the GPS ``device_tracker`` entity."""

    json_attributes_topic: str
    source_type: str = Field(default="gps")
