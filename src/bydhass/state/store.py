"""Latest-snapshot store with per-sink dirty flags.

All methods are synchronous and the engine runs on a single event loop,
so every call is atomic with respect to the poll and sink tasks.
"""

from __future__ import annotations

import logging

from bydhass.models.snapshot import Snapshot

_logger = logging.getLogger(__name__)


class SnapshotStore:
    """Holds the single latest snapshot and, per registered sink, whether it still needs sending.

    Every replacement bumps :attr:`version`. A sink clears its flag with the
    version it actually sent, so a snapshot that lands while a transmit is
    in flight stays dirty for that sink.
    """

    def __init__(self) -> None:
        self._latest: Snapshot | None = None
        self._version = 0
        self._dirty: dict[str, bool] = {}

    @property
    def latest(self) -> Snapshot | None:
        return self._latest

    @property
    def version(self) -> int:
        return self._version

    @property
    def sinks(self) -> tuple[str, ...]:
        return tuple(self._dirty)

    def register(self, sink: str) -> None:
        """Track *sink*. New sinks start dirty."""
        self._dirty.setdefault(sink, True)

    def replace(self, snapshot: Snapshot) -> int:
        """Store *snapshot* and mark every sink dirty. Returns the new version."""
        self._latest = snapshot
        self._version += 1
        for sink in self._dirty:
            self._dirty[sink] = True
        _logger.debug("Snapshot v%d stored; dirty sinks: %s", self._version, ", ".join(self._dirty) or "-")
        return self._version

    def read(self, sink: str) -> tuple[Snapshot | None, int, bool]:
        """Return ``(latest, version, dirty)`` for *sink* in one step."""
        return self._latest, self._version, self._dirty.get(sink, False)

    def is_dirty(self, sink: str) -> bool:
        return self._dirty.get(sink, False)

    def clear_dirty(self, sink: str, version: int) -> bool:
        """Clear *sink*'s flag if *version* is still the latest.

        Returns ``False`` (flag left set) when a newer snapshot arrived in
        the meantime.
        """
        if sink not in self._dirty:
            raise KeyError(f"Unknown sink: {sink}")
        if version != self._version:
            return False
        self._dirty[sink] = False
        return True

    def dirty_sinks(self) -> list[str]:
        return [sink for sink, dirty in self._dirty.items() if dirty]
