"""Internal constants shared across the package."""

USER_AGENT = "byd-hass/1.0.0"

DEFAULT_DEVICE_ID = "byd_car"
DEFAULT_DIPLUS_URL = "localhost:8988"
DIPLUS_ENDPOINT = "/api/getDiPars"
DEFAULT_DISCOVERY_PREFIX = "homeassistant"
DEFAULT_GPS_FILE = "/storage/emulated/0/bydhass/gps"

ABRP_TELEMETRY_URL = "https://api.iternio.com/1/tlm/send"

# ------------------------------------------------------------------
# Cadences and operation timeouts (seconds)
# ------------------------------------------------------------------

POLL_INTERVAL = 8.0
POLL_TIMEOUT = 8.0
ABRP_INTERVAL = 10.0
ABRP_TIMEOUT = 5.0
MQTT_INTERVAL = 60.0
MQTT_TIMEOUT = 5.0
MQTT_CONNECT_TIMEOUT = 10.0

# ------------------------------------------------------------------
# Sink backoff and position dead-band
# ------------------------------------------------------------------

BACKOFF_BASE = 5.0
BACKOFF_CEILING = 300.0
DEADBAND_DISTANCE_M = 10.0
DEADBAND_HEADING_DEG = 5.0

#: GPS fixes older than this are not attached to snapshots.
LOCATION_CACHE_TTL = 120.0

SUPPORTED_MQTT_SCHEMES: frozenset[str] = frozenset({"ws", "wss", "mqtt", "mqtts"})
