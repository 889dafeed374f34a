"""
Fatal error kinds raised by the inventory simulation engine.
None of these are recovered inside a replication; the batch driver records
the replication as failed and moves on.
"""

from __future__ import annotations


class SimulationError(RuntimeError):
    """Base class for conditions that abort a single replication."""


class TemporalOrderingError(SimulationError):
    """An event was scheduled or popped earlier than the simulation clock."""

    def __init__(self, event_time: float, clock: float):
        self.event_time = event_time
        self.clock = clock
        super().__init__(f"Event happens in the past: event t={event_time:.6f} < clock t={clock:.6f}")


class EmptyEventQueueError(SimulationError):
    """The engine was asked to advance but no events remain."""

    def __init__(self, clock: float):
        self.clock = clock
        super().__init__(f"No unhandled events at t={clock:.4f}")


class BacklogDivergenceError(SimulationError):
    """Backlogged order count exceeded the configured threshold at end of day."""

    def __init__(self, backlog_count: int, threshold: float, time: float):
        self.backlog_count = backlog_count
        self.threshold = threshold
        self.time = time
        super().__init__(
            f"Count of backlogged orders is {backlog_count}, which exceeds threshold of {threshold} "
            f"(t={time:.2f})"
        )
