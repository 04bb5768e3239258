"""Interface every downstream sink implements."""

from __future__ import annotations

from typing import Protocol

from bydhass.models.snapshot import Snapshot


class Sink(Protocol):
    @property
    def name(self) -> str:
        """Stable key used for dirty flags and health bookkeeping."""
        ...

    async def transmit(self, snapshot: Snapshot) -> None:
        """Deliver *snapshot* or raise."""
        ...

    def healthy(self) -> bool:
        """Informational connectivity hint; the engine does not gate on it."""
        ...
