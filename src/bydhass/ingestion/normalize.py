"""Normalization helpers.

Centralizes defensive parsing of the numeric strings Di-Plus and the GPS
helper produce.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

# Di-Plus renders negatives with a Unicode minus on some head units.
_MINUS_VARIANTS = ("−", "‒", "–")


def normalize_numeric_value(value: str) -> str:
    """Convert European/locale number renderings to a ``float()``-parsable string."""
    text = value.strip()
    if not text:
        return ""
    for variant in _MINUS_VARIANTS:
        text = text.replace(variant, "-")
    return text.replace(",", ".")


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, str):
        value = normalize_numeric_value(value)
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1e11


def parse_epoch_timestamp(value: Any) -> datetime | None:
    """Convert an epoch timestamp (seconds **or** milliseconds) to a UTC datetime.

    - Empty/missing/non-numeric -> None
    - <= 0 -> None
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    ts = safe_float(value)
    if ts is None or ts <= 0:
        return None
    if ts > _MS_THRESHOLD:
        ts /= 1000.0
    return datetime.fromtimestamp(ts, tz=UTC)
