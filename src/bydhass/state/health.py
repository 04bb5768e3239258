"""Per-sink backoff gate."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from bydhass import _constants as const
from bydhass.state.policy import exponential_backoff

_logger = logging.getLogger(__name__)


class SinkHealth(BaseModel):
    """Failure bookkeeping for one sink.

    Times are on the gate's monotonic clock (seconds).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    consecutive_failures: int = 0
    last_failure_at: float | None = None
    cooldown_until: float | None = None


class HealthGate:
    """Tracks consecutive failures per sink and holds sinks back while they cool down.

    Parameters
    ----------
    clock : callable
        Monotonic time source in seconds.
    base : float
        Cooldown after the first failure.
    ceiling : float
        Upper bound for any cooldown.
    """

    def __init__(
        self,
        clock: Callable[[], float],
        *,
        base: float = const.BACKOFF_BASE,
        ceiling: float = const.BACKOFF_CEILING,
    ) -> None:
        self._clock = clock
        self._base = base
        self._ceiling = ceiling
        self._health: dict[str, SinkHealth] = {}

    def health(self, sink: str) -> SinkHealth:
        return self._health.get(sink, SinkHealth())

    def cooldown(self, failures: int) -> float:
        return exponential_backoff(failures, base=self._base, ceiling=self._ceiling)

    def record_failure(self, sink: str) -> SinkHealth:
        now = self._clock()
        failures = self.health(sink).consecutive_failures + 1
        delay = self.cooldown(failures)
        state = SinkHealth(
            consecutive_failures=failures,
            last_failure_at=now,
            cooldown_until=now + delay,
        )
        self._health[sink] = state
        _logger.debug("Sink %s failure #%d, cooling down %.1fs", sink, failures, delay)
        return state

    def record_success(self, sink: str) -> None:
        previous = self._health.pop(sink, None)
        if previous is not None and previous.consecutive_failures:
            _logger.info("Sink %s recovered after %d failure(s)", sink, previous.consecutive_failures)

    def is_open(self, sink: str) -> bool:
        until = self.health(sink).cooldown_until
        return until is None or self._clock() >= until

    def cooldown_remaining(self, sink: str) -> float:
        until = self.health(sink).cooldown_until
        if until is None:
            return 0.0
        return max(0.0, until - self._clock())
