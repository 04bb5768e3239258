"""Poll loop: fetch from the source, detect change, update the store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from bydhass.engine._inflight import SingleFlight
from bydhass.models.snapshot import Snapshot
from bydhass.sources.base import Enricher, PollSource
from bydhass.state.policy import ChangeDetector
from bydhass.state.store import SnapshotStore

_logger = logging.getLogger(__name__)


class PollLoop:
    """Polls *source* with a bounded timeout; at most one poll runs at a time.

    Parameters
    ----------
    source : PollSource
        Produces snapshots.
    store : SnapshotStore
        Receives changed snapshots.
    timeout : float
        Upper bound for ``source.poll()``.
    detector : ChangeDetector, optional
        Decides whether a fetched snapshot replaces the stored one.
    enricher : Enricher, optional
        Best-effort decoration (GPS). Its failures never fail the poll.
    enrich_timeout : float, optional
        Upper bound for one enrichment; defaults to *timeout*.
    """

    def __init__(
        self,
        source: PollSource,
        store: SnapshotStore,
        *,
        timeout: float,
        detector: ChangeDetector | None = None,
        enricher: Enricher | None = None,
        enrich_timeout: float | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._timeout = timeout
        self._detector = detector or ChangeDetector()
        self._enricher = enricher
        self._enrich_timeout = timeout if enrich_timeout is None else enrich_timeout
        self._flight = SingleFlight("poll")

    @property
    def busy(self) -> bool:
        return self._flight.busy

    def tick(self) -> asyncio.Task[Any] | None:
        """Start a poll unless one is already in flight."""
        task = self._flight.try_start(self.poll_once)
        if task is None:
            _logger.debug("Previous poll still running, skipping tick")
        return task

    async def _enrich(self, snapshot: Snapshot) -> Snapshot:
        if self._enricher is None:
            return snapshot
        try:
            return await asyncio.wait_for(self._enricher.enrich(snapshot), timeout=self._enrich_timeout)
        except TimeoutError:
            _logger.debug("Snapshot enrichment timed out after %.1fs", self._enrich_timeout)
        except Exception as exc:
            _logger.debug("Snapshot enrichment skipped: %s", exc)
        return snapshot

    async def poll_once(self) -> bool:
        """Run one poll. Returns ``True`` when the store was updated."""
        try:
            snapshot = await asyncio.wait_for(self._source.poll(), timeout=self._timeout)
        except TimeoutError:
            _logger.warning("Poll timed out after %.1fs", self._timeout)
            return False
        except Exception as exc:
            _logger.warning("Poll failed: %s", exc)
            return False

        snapshot = await self._enrich(snapshot)

        if not self._detector(self._store.latest, snapshot):
            _logger.debug("Polled snapshot unchanged")
            return False

        self._store.replace(snapshot)
        return True

    async def cancel(self) -> None:
        await self._flight.cancel()
