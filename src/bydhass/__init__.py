"""bydhass - Bridge BYD Di-Plus telemetry to Home Assistant (MQTT) and ABRP."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bydhass")
except PackageNotFoundError:
    __version__ = "0+local"
from bydhass.config import BridgeConfig
from bydhass.engine import PollLoop, SinkScheduler, SyncEngine, SystemClock
from bydhass.exceptions import (
    AbrpError,
    BydHassConfigError,
    BydHassError,
    DiplusError,
    LocationUnavailableError,
    MqttPublishError,
    SinkError,
    SourceError,
    TransportError,
)
from bydhass.models import AbrpTelemetry, Location, Snapshot
from bydhass.sinks import AbrpSink, HomeAssistantSink
from bydhass.sources import DiplusClient, FileLocationProvider
from bydhass.state import ChangeDetector, DeadBand, HealthGate, SnapshotStore, changed

__all__ = [
    "AbrpError",
    "AbrpSink",
    "AbrpTelemetry",
    "BridgeConfig",
    "BydHassConfigError",
    "BydHassError",
    "ChangeDetector",
    "DeadBand",
    "DiplusClient",
    "DiplusError",
    "FileLocationProvider",
    "HealthGate",
    "HomeAssistantSink",
    "Location",
    "LocationUnavailableError",
    "MqttPublishError",
    "PollLoop",
    "SinkError",
    "SinkScheduler",
    "Snapshot",
    "SnapshotStore",
    "SourceError",
    "SyncEngine",
    "SystemClock",
    "TransportError",
    "__version__",
    "changed",
]
