"""Telemetry synchronization engine.

Wires one :class:`PollLoop` and any number of :class:`SinkScheduler` to
their own periodic timers on a single event loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from bydhass import _constants as const
from bydhass.config import BridgeConfig
from bydhass.engine.clock import Clock, SystemClock
from bydhass.engine.poller import PollLoop
from bydhass.engine.scheduler import SinkScheduler
from bydhass.sinks.base import Sink
from bydhass.sources.base import Enricher, PollSource
from bydhass.state.health import HealthGate
from bydhass.state.policy import ChangeDetector, DeadBand
from bydhass.state.store import SnapshotStore

_logger = logging.getLogger(__name__)


class SyncEngine:
    """Polls one source and fans changed snapshots out to independently scheduled sinks.

    Parameters
    ----------
    source : PollSource
        Snapshot producer.
    clock : Clock, optional
        Monotonic time and sleep; defaults to :class:`SystemClock`.
    poll_interval, poll_timeout : float
        Poll cadence and per-poll bound.
    enricher : Enricher, optional
        Best-effort snapshot decoration.
    deadband : DeadBand, optional
        Position tolerance for change detection.
    backoff_base, backoff_ceiling : float
        Sink cooldown curve.
    """

    def __init__(
        self,
        source: PollSource,
        *,
        clock: Clock | None = None,
        poll_interval: float = const.POLL_INTERVAL,
        poll_timeout: float = const.POLL_TIMEOUT,
        enricher: Enricher | None = None,
        deadband: DeadBand | None = None,
        backoff_base: float = const.BACKOFF_BASE,
        backoff_ceiling: float = const.BACKOFF_CEILING,
    ) -> None:
        self._clock: Clock = clock or SystemClock()
        self.store = SnapshotStore()
        self.gate = HealthGate(self._clock.monotonic, base=backoff_base, ceiling=backoff_ceiling)
        self.poller = PollLoop(
            source,
            self.store,
            timeout=poll_timeout,
            detector=ChangeDetector(deadband),
            enricher=enricher,
        )
        self.poll_interval = poll_interval
        self.schedulers: dict[str, SinkScheduler] = {}
        self._timers: list[asyncio.Task[None]] = []

    @classmethod
    def from_config(
        cls,
        config: BridgeConfig,
        source: PollSource,
        *,
        enricher: Enricher | None = None,
        clock: Clock | None = None,
    ) -> SyncEngine:
        return cls(
            source,
            clock=clock,
            poll_interval=config.poll_interval,
            poll_timeout=config.poll_timeout,
            enricher=enricher,
            deadband=DeadBand(config.deadband_distance_m, config.deadband_heading_deg),
            backoff_base=config.backoff_base,
            backoff_ceiling=config.backoff_ceiling,
        )

    @property
    def running(self) -> bool:
        return bool(self._timers)

    def add_sink(self, sink: Sink, *, interval: float, timeout: float) -> SinkScheduler:
        if self.running:
            raise RuntimeError("Sinks must be added before the engine starts")
        if sink.name in self.schedulers:
            raise ValueError(f"Sink {sink.name!r} already registered")
        scheduler = SinkScheduler(sink, self.store, self.gate, interval=interval, timeout=timeout)
        self.schedulers[sink.name] = scheduler
        _logger.info("Sink %s scheduled every %.0fs", sink.name, interval)
        return scheduler

    async def transmit_all(self) -> None:
        """Tick every sink once and wait for the resulting transmits."""
        tasks = [task for task in (s.tick() for s in self.schedulers.values()) if task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def start(self) -> None:
        """Run the initial poll and transmit, then start the periodic timers."""
        if self.running:
            raise RuntimeError("Engine already started")

        _logger.info("Initial poll and transmit")
        task = self.poller.tick()
        if task is not None:
            await task
        await self.transmit_all()

        self._timers.append(asyncio.create_task(self._every(self.poll_interval, self.poller.tick), name="timer:poll"))
        for scheduler in self.schedulers.values():
            self._timers.append(
                asyncio.create_task(
                    self._every(scheduler.interval, scheduler.tick),
                    name=f"timer:{scheduler.name}",
                )
            )

    async def _every(self, interval: float, tick: Callable[[], Any]) -> None:
        while True:
            await self._clock.sleep(interval)
            tick()

    async def stop(self) -> None:
        """Cancel timers and in-flight operations, then wait for all of them."""
        timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()
        await asyncio.gather(*timers, return_exceptions=True)

        await self.poller.cancel()
        for scheduler in self.schedulers.values():
            await scheduler.cancel()
        _logger.info("Engine stopped")

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run until *stop_event* is set."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    async def __aenter__(self) -> SyncEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
