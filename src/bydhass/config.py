"""Bridge configuration for bydhass."""

from __future__ import annotations

import dataclasses
import os
from typing import Any
from urllib.parse import urlsplit

from bydhass import _constants as const
from bydhass.exceptions import BydHassConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class BridgeConfig:
    """Bridge configuration.

    Parameters
    ----------
    device_id : str
        Stable identifier used in MQTT topics and Home Assistant unique ids.
    diplus_url : str
        ``host:port`` of the local Di-Plus service.
    mqtt_url : str or None
        Broker URL (``mqtt://``, ``mqtts://``, ``ws://`` or ``wss://``).
        ``None`` disables the Home Assistant sink.
    discovery_prefix : str
        Home Assistant MQTT discovery prefix.
    abrp_api_key : str or None
        ABRP application API key.
    abrp_token : str or None
        ABRP user/vehicle token. Both key and token are required to
        enable the ABRP sink.
    location_enabled : bool
        Attach GPS fixes read from ``gps_file`` to each snapshot.
    gps_file : str
        JSON file written by the on-device GPS helper.
    verbose : bool
        Enable DEBUG logging.
    poll_interval : float
        Seconds between Di-Plus polls.
    poll_timeout : float
        Upper bound for a single poll. Enrichment gets its own bound of
        the same length.
    abrp_interval : float
        Seconds between ABRP scheduling decisions.
    abrp_timeout : float
        Upper bound for a single ABRP upload.
    mqtt_interval : float
        Seconds between MQTT scheduling decisions.
    mqtt_timeout : float
        Upper bound for a single MQTT transmit.
    mqtt_connect_timeout : float
        How long startup waits for the broker before the first transmit.
    backoff_base : float
        Cooldown after the first consecutive sink failure.
    backoff_ceiling : float
        Maximum cooldown regardless of failure count.
    deadband_distance_m : float
        Position changes below this distance (metres) are ignored ...
    deadband_heading_deg : float
        ... when the heading also moved less than this many degrees.
    """

    device_id: str = const.DEFAULT_DEVICE_ID
    diplus_url: str = const.DEFAULT_DIPLUS_URL
    mqtt_url: str | None = None
    discovery_prefix: str = const.DEFAULT_DISCOVERY_PREFIX
    abrp_api_key: str | None = None
    abrp_token: str | None = None
    location_enabled: bool = True
    gps_file: str = const.DEFAULT_GPS_FILE
    verbose: bool = False
    poll_interval: float = const.POLL_INTERVAL
    poll_timeout: float = const.POLL_TIMEOUT
    abrp_interval: float = const.ABRP_INTERVAL
    abrp_timeout: float = const.ABRP_TIMEOUT
    mqtt_interval: float = const.MQTT_INTERVAL
    mqtt_timeout: float = const.MQTT_TIMEOUT
    mqtt_connect_timeout: float = const.MQTT_CONNECT_TIMEOUT
    backoff_base: float = const.BACKOFF_BASE
    backoff_ceiling: float = const.BACKOFF_CEILING
    deadband_distance_m: float = const.DEADBAND_DISTANCE_M
    deadband_heading_deg: float = const.DEADBAND_HEADING_DEG

    @property
    def has_mqtt(self) -> bool:
        return bool(self.mqtt_url)

    @property
    def has_abrp(self) -> bool:
        return bool(self.abrp_api_key) and bool(self.abrp_token)

    @property
    def diplus_endpoint(self) -> str:
        base = self.diplus_url.rstrip("/")
        if "://" not in base:
            base = f"http://{base}"
        return f"{base}{const.DIPLUS_ENDPOINT}"

    def validate(self) -> BridgeConfig:
        """Raise :class:`BydHassConfigError` for unusable settings.

        Returns ``self`` so calls can be chained.
        """
        if not self.device_id.strip():
            raise BydHassConfigError("device id is required")

        if self.mqtt_url:
            scheme = urlsplit(self.mqtt_url).scheme
            if scheme not in const.SUPPORTED_MQTT_SCHEMES:
                raise BydHassConfigError(
                    "MQTT URL must use supported protocol (ws://, wss://, mqtt://, or mqtts://)",
                )

        if self.abrp_api_key and not self.abrp_token:
            raise BydHassConfigError("ABRP token is required when API key is provided")
        if self.abrp_token and not self.abrp_api_key:
            raise BydHassConfigError("ABRP API key is required when token is provided")

        for name in (
            "poll_interval",
            "poll_timeout",
            "abrp_interval",
            "abrp_timeout",
            "mqtt_interval",
            "mqtt_timeout",
            "mqtt_connect_timeout",
            "backoff_base",
        ):
            if getattr(self, name) <= 0:
                raise BydHassConfigError(f"{name} must be positive")

        if self.backoff_ceiling < self.backoff_base:
            raise BydHassConfigError("backoff_ceiling must not be smaller than backoff_base")
        if self.deadband_distance_m < 0 or self.deadband_heading_deg < 0:
            raise BydHassConfigError("dead-band thresholds must not be negative")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> BridgeConfig:
        """Create configuration from ``BYD_HASS_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        BridgeConfig
            Populated (not yet validated) configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "BYD_HASS_DEVICE_ID": "device_id",
            "BYD_HASS_DIPLUS_URL": "diplus_url",
            "BYD_HASS_MQTT_URL": "mqtt_url",
            "BYD_HASS_DISCOVERY_PREFIX": "discovery_prefix",
            "BYD_HASS_ABRP_API_KEY": "abrp_api_key",
            "BYD_HASS_ABRP_TOKEN": "abrp_token",
            "BYD_HASS_GPS_FILE": "gps_file",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "BYD_HASS_POLL_INTERVAL": "poll_interval",
            "BYD_HASS_POLL_TIMEOUT": "poll_timeout",
            "BYD_HASS_ABRP_INTERVAL": "abrp_interval",
            "BYD_HASS_ABRP_TIMEOUT": "abrp_timeout",
            "BYD_HASS_MQTT_INTERVAL": "mqtt_interval",
            "BYD_HASS_MQTT_TIMEOUT": "mqtt_timeout",
            "BYD_HASS_MQTT_CONNECT_TIMEOUT": "mqtt_connect_timeout",
            "BYD_HASS_BACKOFF_BASE": "backoff_base",
            "BYD_HASS_BACKOFF_CEILING": "backoff_ceiling",
            "BYD_HASS_DEADBAND_DISTANCE": "deadband_distance_m",
            "BYD_HASS_DEADBAND_HEADING": "deadband_heading_deg",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise BydHassConfigError(f"{env_key} must be a number, got {val!r}") from exc

        if "verbose" not in overrides:
            config_kwargs["verbose"] = _env_bool(env.get("BYD_HASS_VERBOSE"), False)

        # The environment speaks in terms of disabling, the config of enabling.
        if "location_enabled" not in overrides:
            config_kwargs["location_enabled"] = not _env_bool(env.get("BYD_HASS_DISABLE_LOCATION"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
