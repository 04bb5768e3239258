"""Scheduling core: poll loop, sink schedulers and the engine that drives them."""

from bydhass.engine.clock import Clock, SystemClock
from bydhass.engine.engine import SyncEngine
from bydhass.engine.poller import PollLoop
from bydhass.engine.scheduler import SinkScheduler

__all__ = ["Clock", "PollLoop", "SinkScheduler", "SyncEngine", "SystemClock"]
