"""Shared engine state: the snapshot store, change policy and sink health."""

from bydhass.state.health import HealthGate, SinkHealth
from bydhass.state.policy import ChangeDetector, DeadBand, changed, exponential_backoff
from bydhass.state.store import SnapshotStore

__all__ = [
    "ChangeDetector",
    "DeadBand",
    "HealthGate",
    "SinkHealth",
    "SnapshotStore",
    "changed",
    "exponential_backoff",
]
