"""Per-sink scheduler."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from bydhass.engine._inflight import SingleFlight
from bydhass.models.snapshot import Snapshot
from bydhass.sinks.base import Sink
from bydhass.state.health import HealthGate
from bydhass.state.store import SnapshotStore

_logger = logging.getLogger(__name__)


class SinkScheduler:
    """Decides on every tick whether *sink* gets the latest snapshot.

    A tick only dispatches when a snapshot exists, the sink is dirty, no
    transmit for it is in flight and its health gate is open. Everything
    else is a routine skip logged at DEBUG.
    """

    def __init__(
        self,
        sink: Sink,
        store: SnapshotStore,
        gate: HealthGate,
        *,
        interval: float,
        timeout: float,
    ) -> None:
        self.sink = sink
        self.name = sink.name
        self.interval = interval
        self._store = store
        self._gate = gate
        self._timeout = timeout
        self._flight = SingleFlight(f"transmit:{self.name}")
        store.register(self.name)

    @property
    def busy(self) -> bool:
        return self._flight.busy

    def tick(self) -> asyncio.Task[Any] | None:
        snapshot, version, dirty = self._store.read(self.name)
        if snapshot is None:
            _logger.debug("%s: no snapshot yet, skipping", self.name)
            return None
        if not dirty:
            _logger.debug("%s: nothing new to send", self.name)
            return None
        if self._flight.busy:
            _logger.debug("%s: previous transmit still running, skipping", self.name)
            return None
        if not self._gate.is_open(self.name):
            _logger.debug(
                "%s: backing off for another %.1fs",
                self.name,
                self._gate.cooldown_remaining(self.name),
            )
            return None
        return self._flight.try_start(lambda: self._send(snapshot, version))

    async def _send(self, snapshot: Snapshot, version: int) -> bool:
        try:
            await asyncio.wait_for(self.sink.transmit(snapshot), timeout=self._timeout)
        except TimeoutError:
            self._gate.record_failure(self.name)
            _logger.warning("%s: transmit timed out after %.1fs", self.name, self._timeout)
            return False
        except Exception as exc:
            self._gate.record_failure(self.name)
            _logger.warning("%s: transmit failed: %s", self.name, exc)
            return False

        self._gate.record_success(self.name)
        if not self._store.clear_dirty(self.name, version):
            _logger.debug("%s: newer snapshot arrived during transmit, staying dirty", self.name)
        else:
            _logger.debug("%s: snapshot v%d delivered", self.name, version)
        return True

    async def join(self) -> None:
        await self._flight.join()

    async def cancel(self) -> None:
        await self._flight.cancel()
