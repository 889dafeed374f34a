# v1
# file: inventory_sim/engine.py

"""
InventoryEngine: the event loop of a single continuous-review inventory replication.
Owns the clock, the event queue and the InventoryState; pops events in time order
and hands each one to InventoryLogic. Exposes the read-only queries the batch
driver needs once a run is over.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd

from .distributions import (
    CountSampler,
    DistributionSpec,
    SizeSampler,
    describe,
    resolve_count_sampler,
    resolve_size_sampler,
)
from .entities import LOG_COLUMNS, CostLedger, InventoryPolicy, InventoryState, LogRow
from .events import Event, EventKind, EventQueue, begin_day
from .exceptions import EmptyEventQueueError, TemporalOrderingError
from .inventory_logic import InventoryLogic


class InventoryEngine:
    """Discrete-event simulation of one inventory under a fixed (reorder point, batch) policy.

    Construction mirrors the recognized configuration options. The two
    distribution options accept either a ``{"dist": ..., "params": ...}`` spec,
    bound to ``rng``, or a zero-argument sampling callable.
    """

    def __init__(
        self,
        *,
        on_hand: float,
        request_batch_size: float,
        reorder_point: float,
        request_lead_time: float,
        request_cost_per_batch: float = 0.0,
        request_cost_per_unit: float = 0.0,
        holding_cost_per_unit_per_day: float = 0.0,
        shortage_cost_per_unit_per_day: float = 0.0,
        outgoing_size_distribution: Union[DistributionSpec, SizeSampler, None] = None,
        daily_order_count_distribution: Union[DistributionSpec, CountSampler, None] = None,
        max_backlog_count: float = math.inf,
        rng: Optional[np.random.Generator] = None,
    ):
        self.policy = InventoryPolicy(
            request_batch_size=request_batch_size,
            reorder_point=reorder_point,
            request_lead_time=request_lead_time,
            request_cost_per_batch=request_cost_per_batch,
            request_cost_per_unit=request_cost_per_unit,
            holding_cost_per_unit_per_day=holding_cost_per_unit_per_day,
            shortage_cost_per_unit_per_day=shortage_cost_per_unit_per_day,
            max_backlog_count=max_backlog_count,
        )
        self._state = InventoryState(on_hand=float(on_hand))
        self._events = EventQueue()
        self.events_processed = 0
        self._logic = InventoryLogic(
            self._state,
            self.policy,
            resolve_count_sampler(daily_order_count_distribution, rng),
            resolve_size_sampler(outgoing_size_distribution, rng),
            self.schedule_event,
        )
        logging.debug(
            "Inventory engine created: on_hand=%.2f policy=%s counts=%s sizes=%s",
            on_hand,
            self.policy,
            describe(daily_order_count_distribution),
            describe(outgoing_size_distribution),
        )

        # The first event is to begin the first day.
        self.schedule_event(begin_day(0.0))

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------
    def schedule_event(self, event: Event) -> None:
        """Add an event to the queue; scheduling into the past is a fatal bug."""
        if event.time < self._state.time:
            raise TemporalOrderingError(event.time, self._state.time)
        self._events.push(event)

    def handle_next_event(self) -> Event:
        """Pop the earliest event, advance the clock to it, and apply its transition."""
        if self._events.is_empty():
            raise EmptyEventQueueError(self._state.time)
        event = self._events.pop_min()
        if event.time < self._state.time:
            raise TemporalOrderingError(event.time, self._state.time)
        self._state.time = event.time
        self.events_processed += 1

        logic = self._logic
        if event.kind is EventKind.BEGIN_DAY:
            logic.handle_begin_day(event)
        elif event.kind is EventKind.ORDER_RECEIVED:
            logic.handle_order_received(event)
        elif event.kind is EventKind.SHIPMENT_ARRIVAL:
            logic.handle_shipment_arrival(event)
        elif event.kind is EventKind.END_DAY:
            logic.handle_end_day(event)
        else:  # pragma: no cover - EventKind is closed
            raise ValueError(f"Unknown event kind {event.kind!r}")
        return event

    def advance_until(self, horizon: float) -> None:
        """Handle events until the clock passes ``horizon`` (overshoots by under a day)."""
        while self._state.time <= horizon:
            self.handle_next_event()

    def advance_days(self, days: int) -> None:
        """Handle events until ``days`` more end-of-day log rows have been written."""
        target = len(self._state.log) + days
        while len(self._state.log) < target:
            self.handle_next_event()

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------
    @property
    def time(self) -> float:
        return self._state.time

    @property
    def on_hand(self) -> float:
        return self._state.on_hand

    @property
    def request_pending(self) -> bool:
        return self._state.request_pending

    @property
    def backlog(self) -> Tuple[Event, ...]:
        return tuple(self._state.backlog)

    @property
    def fulfilled(self) -> Tuple[Event, ...]:
        return tuple(self._state.fulfilled)

    @property
    def log(self) -> Tuple[LogRow, ...]:
        return tuple(self._state.log)

    @property
    def ledger(self) -> CostLedger:
        return self._state.ledger.snapshot()

    @property
    def running_total_cost(self) -> float:
        return self._state.ledger.total

    @property
    def initial_on_hand(self) -> float:
        return self._state.initial_on_hand

    @property
    def total_received(self) -> float:
        return self._state.total_received

    def total_backlog(self) -> float:
        return self._state.total_backlog()

    def in_transit(self) -> float:
        """Amount requested from the supplier that has not arrived yet."""
        return self._state.outstanding_request

    def pending_events(self) -> int:
        return len(self._events)

    def fraction_of_orders_backlogged(self) -> float:
        """Fraction of fulfilled orders that had to wait; NaN when nothing was fulfilled."""
        fulfilled = self._state.fulfilled
        if not fulfilled:
            logging.warning("No fulfilled orders at t=%.2f; backlogged fraction is undefined.", self._state.time)
            return math.nan
        delayed = sum(1 for order in fulfilled if order.time > order.original_time)
        return delayed / len(fulfilled)

    def fulfillment_delay_times(self) -> list:
        """Fulfillment time minus original time for every fulfilled order, in fulfillment order."""
        return [order.time - order.original_time for order in self._state.fulfilled]

    def log_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self._state.log, columns=LOG_COLUMNS)
