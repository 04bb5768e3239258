"""Parse Di-Plus ``getDiPars`` responses into snapshot values."""

from __future__ import annotations

import logging
from typing import Any

from bydhass.exceptions import DiplusError
from bydhass.ingestion.normalize import safe_float
from bydhass.sensors import get_sensor_by_field

_logger = logging.getLogger(__name__)


def parse_value_string(val: str) -> dict[str, float]:
    """Parse ``"Key:value|Key:value"`` into ``{snake_key: float}``.

    Keys not in the sensor catalog, empty values and unparseable values
    are dropped so that "absent" stays distinct from zero.
    """
    values: dict[str, float] = {}
    for pair in val.split("|"):
        key, sep, raw = pair.partition(":")
        if not sep:
            continue
        key = key.strip()
        sensor = get_sensor_by_field(key)
        if sensor is None:
            _logger.debug("Skipping unknown Di-Plus key %r", key)
            continue
        number = safe_float(raw.strip())
        if number is None:
            continue
        values[sensor.key] = number
    return values


def parse_diplus_response(body: Any) -> dict[str, float]:
    """Validate a decoded Di-Plus response envelope and return its values.

    Raises
    ------
    DiplusError
        If the body is not an object, ``success`` is false or ``val`` is empty.
    """
    if not isinstance(body, dict):
        raise DiplusError(f"Unexpected Di-Plus response type: {type(body).__name__}")
    if not body.get("success"):
        raise DiplusError("Di-Plus API returned success=false")

    val = body.get("val")
    if not isinstance(val, str) or not val.strip():
        raise DiplusError("Di-Plus API returned an empty value string")

    return parse_value_string(val)
