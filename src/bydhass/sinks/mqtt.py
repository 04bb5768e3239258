"""Home Assistant sink over MQTT discovery."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any, Protocol

from bydhass import _constants as const
from bydhass.exceptions import MqttPublishError
from bydhass.models.discovery import HaDevice, SensorDiscovery, TrackerDiscovery
from bydhass.models.snapshot import Snapshot
from bydhass.sensors import (
    PUBLISHED_SENSOR_IDS,
    SensorDefinition,
    derive_charging_status,
    derive_vehicle_state,
    get_sensor_by_id,
)

_logger = logging.getLogger(__name__)

_TRACKER_KEY = "device_tracker"


class Publisher(Protocol):
    @property
    def connected(self) -> bool:
        ...

    async def publish(self, topic: str, payload: str | bytes, *, retain: bool = False) -> None:
        ...


class HomeAssistantSink:
    """Publishes snapshots as a Home Assistant device.

    Per transmit: discovery configs for entities not yet announced, the
    retained state document, the device-tracker attributes when a position
    is known, and the ``online`` availability marker.

    Parameters
    ----------
    connection : Publisher
        Normally :class:`~bydhass._mqtt.MqttConnection`.
    device_id : str
        Used in topics and unique ids.
    discovery_prefix : str
        Home Assistant discovery prefix.
    sensor_ids : sequence of int
        Catalog ids exposed as ``sensor`` entities.
    """

    def __init__(
        self,
        connection: Publisher,
        device_id: str,
        *,
        discovery_prefix: str = const.DEFAULT_DISCOVERY_PREFIX,
        sensor_ids: Sequence[int] = PUBLISHED_SENSOR_IDS,
    ) -> None:
        self._connection = connection
        self._device_id = device_id
        self._discovery_prefix = discovery_prefix
        self._sensors: list[SensorDefinition] = [s for s in map(get_sensor_by_id, sensor_ids) if s is not None]
        self._announced: set[str] = set()
        self.base_topic = f"byd_car/{device_id}"
        self.device = HaDevice(identifiers=[f"byd_car_{device_id}"], sw_version=const.USER_AGENT.split("/")[-1])

    @property
    def name(self) -> str:
        return "mqtt"

    @property
    def state_topic(self) -> str:
        return f"{self.base_topic}/state"

    @property
    def location_topic(self) -> str:
        return f"{self.base_topic}/location"

    @property
    def availability_topic(self) -> str:
        return f"{self.base_topic}/availability"

    def healthy(self) -> bool:
        return self._connection.connected

    def discovery_topic(self, component: str, entity: str) -> str:
        return f"{self._discovery_prefix}/{component}/byd_car_{self._device_id}/{entity}/config"

    @property
    def tracker_discovery_topic(self) -> str:
        return f"{self._discovery_prefix}/{_TRACKER_KEY}/byd_car_{self._device_id}/config"

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------

    def sensor_discovery(self, key: str, name: str, sensor: SensorDefinition | None = None) -> SensorDiscovery:
        return SensorDiscovery(
            name=name,
            unique_id=f"{self._device_id}_{key}",
            state_topic=self.state_topic,
            value_template=f"{{{{ value_json.{key} | default(0) }}}}",
            availability_topic=self.availability_topic,
            device=self.device,
            device_class=sensor.device_class if sensor else None,
            unit_of_measurement=sensor.unit if sensor else None,
            state_class=sensor.state_class if sensor else None,
        )

    def tracker_discovery(self) -> TrackerDiscovery:
        return TrackerDiscovery(
            name="Location",
            unique_id=f"{self._device_id}_location",
            json_attributes_topic=self.location_topic,
            availability_topic=self.availability_topic,
            device=self.device,
        )

    def state_payload(self, snapshot: Snapshot) -> dict[str, Any]:
        state: dict[str, Any] = {}
        for sensor in self._sensors:
            value = snapshot.get(sensor.key)
            if value is not None:
                state[sensor.key] = value
        state["charging_status"] = derive_charging_status(snapshot.values)
        state["state"] = derive_vehicle_state(snapshot.values)
        return state

    def location_payload(self, snapshot: Snapshot) -> dict[str, Any] | None:
        location = snapshot.location
        if location is None:
            return None
        return {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "gps_accuracy": location.accuracy,
            "battery": snapshot.get("battery_percentage"),
            "speed": snapshot.get("speed"),
        }

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def _announce(self, key: str, topic: str, config: SensorDiscovery | TrackerDiscovery) -> None:
        if key in self._announced:
            return
        try:
            await self._connection.publish(topic, json.dumps(config.to_payload()), retain=True)
        except MqttPublishError as exc:
            _logger.warning("Failed to publish %s discovery config: %s", key, exc)
            return
        self._announced.add(key)
        _logger.info("Published discovery config topic=%s", topic)

    async def publish_discovery(self) -> None:
        """Announce every entity not announced yet. Failures are retried next transmit."""
        await self._announce(_TRACKER_KEY, self.tracker_discovery_topic, self.tracker_discovery())
        for sensor in self._sensors:
            await self._announce(
                sensor.key,
                self.discovery_topic("sensor", sensor.key),
                self.sensor_discovery(sensor.key, sensor.description, sensor),
            )
        await self._announce(
            "charging_status",
            self.discovery_topic("sensor", "charging_status"),
            self.sensor_discovery("charging_status", "Charging Status"),
        )

    async def transmit(self, snapshot: Snapshot) -> None:
        if not self._connection.connected:
            raise MqttPublishError("MQTT client not connected", sink=self.name)

        await self.publish_discovery()

        state = self.state_payload(snapshot)
        await self._connection.publish(self.state_topic, json.dumps(state), retain=True)
        _logger.debug("Published state topic=%s payload=%s", self.state_topic, state)

        location = self.location_payload(snapshot)
        if location is not None:
            try:
                await self._connection.publish(self.location_topic, json.dumps(location))
            except MqttPublishError as exc:
                _logger.warning("Failed to publish location: %s", exc)

        await self._connection.publish(self.availability_topic, "online", retain=True)
