"""Interfaces between the engine and its snapshot producers."""

from __future__ import annotations

from typing import Protocol

from bydhass.models.snapshot import Snapshot


class PollSource(Protocol):
    async def poll(self) -> Snapshot:
        """Fetch a fresh snapshot or raise."""
        ...


class Enricher(Protocol):
    async def enrich(self, snapshot: Snapshot) -> Snapshot:
        """Return a decorated copy of *snapshot* or raise."""
        ...
