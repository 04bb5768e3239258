"""GPS enrichment from the file written by the on-device location helper."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from bydhass import _constants as const
from bydhass.exceptions import LocationUnavailableError
from bydhass.models.snapshot import Location, Snapshot

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FileLocationProvider:
    """Caches the last GPS fix read from *path*.

    The file holds one JSON object (``latitude``, ``longitude``, ``speed``,
    ``accuracy`` and optionally ``bearing``, ``altitude``, ``timestamp``).
    When ``timestamp`` is missing the file's mtime is used. The cache only
    moves forward when the mtime advances, and fixes older than
    *cache_ttl* seconds are not handed out.
    """

    def __init__(
        self,
        path: str = const.DEFAULT_GPS_FILE,
        *,
        cache_ttl: float = const.LOCATION_CACHE_TTL,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._path = path
        self._cache_ttl = cache_ttl
        self._now = now
        self._cached: Location | None = None
        self._mtime: float | None = None

    @property
    def path(self) -> str:
        return self._path

    def _read_file(self) -> tuple[Location, float]:
        mtime = os.stat(self._path).st_mtime
        with open(self._path, encoding="utf-8") as fh:
            raw: Any = json.load(fh)
        if not isinstance(raw, dict):
            raise ValueError("GPS file does not contain a JSON object")

        data = dict(raw)
        if data.get("timestamp") is None:
            data["timestamp"] = datetime.fromtimestamp(mtime, tz=UTC)
        data.setdefault("provider", "file")
        return Location.model_validate(data), mtime

    async def refresh(self) -> Location | None:
        """Re-read the file off the event loop and update the cache if it is newer."""
        try:
            location, mtime = await asyncio.to_thread(self._read_file)
        except (OSError, ValueError) as exc:
            raise LocationUnavailableError(f"Cannot read GPS file {self._path}: {exc}") from exc

        if self._mtime is None or mtime > self._mtime:
            self._cached = location
            self._mtime = mtime
            _logger.debug("GPS fix updated lat=%.6f lon=%.6f", location.latitude, location.longitude)
        return self._cached

    def get_location(self) -> Location:
        """Return the cached fix.

        Raises
        ------
        LocationUnavailableError
            Nothing has been read yet or the fix is older than the TTL.
        """
        cached = self._cached
        if cached is None:
            raise LocationUnavailableError("No location data available yet")
        if self._cache_ttl > 0 and cached.timestamp is not None:
            age = (self._now() - cached.timestamp).total_seconds()
            if age > self._cache_ttl:
                raise LocationUnavailableError(
                    f"Location data is stale (age {age:.0f}s, ttl {self._cache_ttl:.0f}s)",
                )
        return cached

    async def enrich(self, snapshot: Snapshot) -> Snapshot:
        try:
            await self.refresh()
        except LocationUnavailableError as exc:
            # A fresh cached fix is still usable.
            _logger.debug("%s", exc)
        return snapshot.with_location(self.get_location())
