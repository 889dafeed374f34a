# v1
# file: inventory_sim/events.py

"""
Defines the event record and the priority event queue for the inventory simulation.
Events are plain tagged records; the engine dispatches on ``Event.kind`` so the
transition semantics all live in InventoryLogic.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple


class EventKind(Enum):
    BEGIN_DAY = "begin_day"
    END_DAY = "end_day"
    ORDER_RECEIVED = "order_received"
    SHIPMENT_ARRIVAL = "shipment_arrival"


@dataclass(frozen=True)
class Event:
    """A scheduled occurrence: time stamp, kind tag and kind-specific payload.

    ``amount`` is the order size for ORDER_RECEIVED and the shipment size for
    SHIPMENT_ARRIVAL. ``original_time`` is only meaningful for orders: the time
    the order would have been handled absent any backlog delay.
    """

    time: float
    kind: EventKind
    amount: float = 0.0
    original_time: Optional[float] = None

    def rescheduled(self, time: float) -> "Event":
        """Copy of this event moved to ``time``; payload and original time are kept."""
        return replace(self, time=time)

    @property
    def delay(self) -> float:
        if self.original_time is None:
            return 0.0
        return self.time - self.original_time

    def __str__(self) -> str:
        if self.kind is EventKind.ORDER_RECEIVED:
            return f"OrderReceived(t={self.time:.4f}, amount={self.amount:.2f}, original={self.original_time:.4f})"
        if self.kind is EventKind.SHIPMENT_ARRIVAL:
            return f"ShipmentArrival(t={self.time:.4f}, amount={self.amount:.2f})"
        if self.kind is EventKind.BEGIN_DAY:
            return f"BeginDay(t={self.time:.4f})"
        return f"EndDay(t={self.time:.4f})"


def begin_day(time: float) -> Event:
    return Event(time, EventKind.BEGIN_DAY)


def end_day(time: float) -> Event:
    return Event(time, EventKind.END_DAY)


def order_received(time: float, amount: float, original_time: Optional[float] = None) -> Event:
    return Event(time, EventKind.ORDER_RECEIVED, amount, time if original_time is None else original_time)


def shipment_arrival(time: float, amount: float) -> Event:
    return Event(time, EventKind.SHIPMENT_ARRIVAL, amount)


class EventQueue:
    """Min-heap priority queue for chronological DES execution.

    Ties on time are broken by insertion order (first in, first out) so a run
    is fully determined by its random stream.
    """

    def __init__(self):
        self._q: List[Tuple[float, int, Event]] = []
        self._counter = itertools.count()

    def push(self, event: Event):
        heapq.heappush(self._q, (event.time, next(self._counter), event))
        logging.debug("Event queued: %s", event)

    def pop_min(self) -> Event:
        _, _, event = heapq.heappop(self._q)
        logging.debug("Event dequeued: %s", event)
        return event

    def is_empty(self) -> bool:
        return len(self._q) == 0

    def next_event_time(self) -> float:
        return self._q[0][0] if self._q else float("inf")

    def __len__(self) -> int:
        return len(self._q)
