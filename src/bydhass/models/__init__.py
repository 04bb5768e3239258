"""Data models shared by the engine, the source and the sinks."""

from bydhass.models.abrp import AbrpTelemetry
from bydhass.models.discovery import HaDevice, SensorDiscovery, TrackerDiscovery
from bydhass.models.snapshot import Location, Snapshot

__all__ = [
    "AbrpTelemetry",
    "HaDevice",
    "Location",
    "SensorDiscovery",
    "Snapshot",
    "TrackerDiscovery",
]
