"""Custom exception hierarchy for bydhass."""

from __future__ import annotations


class BydHassError(Exception):
    """Base exception for all bydhass errors."""


class BydHassConfigError(BydHassError):
    """Invalid or missing configuration."""


class TransportError(BydHassError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class SourceError(BydHassError):
    """The poll source could not produce a snapshot."""


class DiplusError(SourceError):
    """Di-Plus answered, but the payload was unusable (``success=false``, empty ``val``)."""


class LocationUnavailableError(SourceError):
    """No usable GPS fix (file missing, unreadable or older than the cache TTL)."""


class SinkError(BydHassError):
    """A sink failed to accept a snapshot."""

    def __init__(self, message: str, *, sink: str = "") -> None:
        self.sink = sink
        super().__init__(message)


class AbrpError(SinkError):
    """ABRP telemetry upload was rejected."""


class MqttPublishError(SinkError):
    """MQTT publish failed, timed out, or the client is not connected."""
