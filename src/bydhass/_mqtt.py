"""Internal MQTT broker parsing and publish runtime."""

from __future__ import annotations

import asyncio
import logging
import ssl
import threading
from dataclasses import dataclass
from typing import Any, cast
from urllib.parse import unquote, urlsplit

import paho.mqtt.client as mqtt

from bydhass import _constants as const
from bydhass.exceptions import BydHassConfigError, MqttPublishError

_DEFAULT_PORTS: dict[str, int] = {
    "mqtt": 1883,
    "mqtts": 8883,
    "ws": 80,
    "wss": 443,
}


@dataclass(frozen=True)
class BrokerSettings:
    """Connection details derived from an MQTT URL."""

    host: str
    port: int
    transport: str
    tls: bool
    path: str = "/mqtt"
    username: str | None = None
    password: str | None = None


def parse_broker_url(url: str) -> BrokerSettings:
    """Turn ``mqtt://``, ``mqtts://``, ``ws://`` or ``wss://`` URLs into :class:`BrokerSettings`.

    Credentials are taken from the URL userinfo.
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    if scheme not in const.SUPPORTED_MQTT_SCHEMES:
        raise BydHassConfigError(
            f"Unsupported MQTT scheme {scheme!r} (supported: ws, wss, mqtt, mqtts)",
        )
    if not parts.hostname:
        raise BydHassConfigError("MQTT URL is missing a host")

    websockets = scheme in {"ws", "wss"}
    return BrokerSettings(
        host=parts.hostname,
        port=parts.port or _DEFAULT_PORTS[scheme],
        transport="websockets" if websockets else "tcp",
        tls=scheme in {"mqtts", "wss"},
        path=(parts.path or "/mqtt") if websockets else "/mqtt",
        username=unquote(parts.username) if parts.username else None,
        password=unquote(parts.password) if parts.password else None,
    )


class MqttConnection:
    """Threaded paho-mqtt client used for publishing.

    paho's network loop runs on its own thread; :meth:`publish` hands the
    blocking wait to a worker thread so the event loop never blocks. A
    worker abandoned by a cancelled caller still owns the connection until
    its ack wait ends, and further publishes are refused until then.
    TLS connections accept self-signed broker certificates.
    """

    def __init__(
        self,
        settings: BrokerSettings,
        client_id: str,
        *,
        keepalive: int = 60,
        publish_timeout: float = const.MQTT_TIMEOUT,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._client_id = client_id
        self._keepalive = keepalive
        self._publish_timeout = publish_timeout
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._ever_connected = False
        self._connected_event = threading.Event()
        self._inflight: asyncio.Future[None] | None = None

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def connected(self) -> bool:
        client = self._client
        return client is not None and client.is_connected()

    @property
    def publishing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def _on_connect(
        self,
        _client: mqtt.Client | None,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        if self._ever_connected:
            self._logger.info("MQTT reconnected")
        else:
            self._logger.info("MQTT connected to %s:%s", self._settings.host, self._settings.port)
        self._ever_connected = True
        self._connected_event.set()

    def _on_disconnect(
        self,
        _client: mqtt.Client | None,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        self._connected_event.clear()
        if self._client is not None:
            self._logger.warning("MQTT connection lost: %s", reason_code)

    def start(self) -> None:
        """Start connecting in the background; paho reconnects on its own afterwards.

        Use :meth:`wait_until_connected` to wait for the broker's CONNACK.
        """
        self.stop()
        settings = self._settings
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s transport=%s tls=%s client_id=%s",
            settings.host,
            settings.port,
            settings.transport,
            settings.tls,
            self._client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            transport=settings.transport,
            clean_session=True,
        )
        client.enable_logger(self._logger)
        if settings.transport == "websockets":
            client.ws_set_options(path=settings.path)
        if settings.tls:
            client.tls_set(cert_reqs=ssl.CERT_NONE)
            client.tls_insecure_set(True)
        if settings.username:
            client.username_pw_set(settings.username, settings.password)
        client.reconnect_delay_set(min_delay=1, max_delay=10)

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect

        client.connect_async(settings.host, settings.port, keepalive=self._keepalive)
        client.loop_start()
        self._client = client
        self._logger.debug("MQTT network loop started")

    def wait_connected(self, timeout: float) -> bool:
        """Block until the broker accepted the connection or *timeout* elapses."""
        return self._connected_event.wait(timeout)

    async def wait_until_connected(self, timeout: float) -> bool:
        """Async :meth:`wait_connected`. Returns ``False`` on timeout."""
        if self._connected_event.is_set():
            return True
        return await asyncio.to_thread(self.wait_connected, timeout)

    def stop(self) -> None:
        """Disconnect and stop the network loop if running."""
        client = self._client
        self._client = None
        self._connected_event.clear()
        if client is None:
            return
        try:
            client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def publish_blocking(self, topic: str, payload: str | bytes, *, retain: bool = False) -> None:
        """Publish at QoS 1 and wait up to ``publish_timeout`` for the broker ack."""
        client = self._client
        if client is None or not client.is_connected():
            raise MqttPublishError("MQTT client not connected", sink="mqtt")

        info = client.publish(topic, payload, qos=1, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise MqttPublishError(
                f"Failed to publish to {topic}: {mqtt.error_string(info.rc)}",
                sink="mqtt",
            )
        try:
            info.wait_for_publish(timeout=self._publish_timeout)
        except (RuntimeError, ValueError) as exc:
            raise MqttPublishError(f"Failed to publish to {topic}: {exc}", sink="mqtt") from exc
        if not info.is_published():
            raise MqttPublishError(
                f"Publish to {topic} timed out after {self._publish_timeout:.0f}s",
                sink="mqtt",
            )
        self._logger.debug("Published MQTT message topic=%s size=%d retained=%s", topic, len(payload), retain)

    async def publish(self, topic: str, payload: str | bytes, *, retain: bool = False) -> None:
        if self.publishing:
            raise MqttPublishError(
                f"Cannot publish to {topic}: previous publish still waiting for broker ack",
                sink="mqtt",
            )
        inflight = asyncio.ensure_future(asyncio.to_thread(self.publish_blocking, topic, payload, retain=retain))
        inflight.add_done_callback(_discard_result)
        self._inflight = inflight
        await asyncio.shield(inflight)


def _discard_result(future: asyncio.Future[None]) -> None:
    # Abandoned workers have no awaiter left to collect their error.
    if not future.cancelled():
        future.exception()
