"""Helpers for safe debug logging.

The bridge handles ABRP credentials (passed as URL query parameters) and
MQTT broker passwords (embedded in the broker URL). These helpers redact
them before anything reaches a log record.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "api_key",
        "apikey",
        "token",
        "abrp_api_key",
        "abrp_token",
        "authorization",
        "cookie",
    }
)

_REDACTED = "<redacted>"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                redacted[key] = _REDACTED
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)


def redact_url(url: str) -> str:
    """Mask userinfo passwords and sensitive query parameters in *url*."""
    parts = urlsplit(url)

    netloc = parts.netloc
    if "@" in netloc:
        userinfo, _, hostport = netloc.rpartition("@")
        username = userinfo.split(":", 1)[0]
        netloc = f"{username}:{_REDACTED}@{hostport}" if ":" in userinfo else f"{username}@{hostport}"

    query = parts.query
    if query:
        pairs = [
            (key, _REDACTED if key.lower() in _SENSITIVE_VALUE_KEYS else val)
            for key, val in parse_qsl(query, keep_blank_values=True)
        ]
        query = urlencode(pairs, safe="<>")

    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))
