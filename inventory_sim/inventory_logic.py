# v1
# file: inventory_sim/inventory_logic.py

"""
InventoryLogic encapsulates the transition semantics of the inventory simulation.
Daily order generation, fulfillment or backlogging, shipment receipt, the reorder
rule, end-of-day cost accrual and the divergence check are all handled here so the
engine stays focused on clock and queue plumbing.
"""

from __future__ import annotations

import logging
import math
from typing import Callable

from .distributions import CountSampler, SizeSampler
from .entities import InventoryPolicy, InventoryState
from .events import Event, begin_day, end_day, order_received, shipment_arrival
from .exceptions import BacklogDivergenceError

# EndDay falls strictly before the next day's first possible order.
DAY_LENGTH = 0.99

Scheduler = Callable[[Event], None]


class InventoryLogic:
    """Applies one event's transition to the shared InventoryState."""

    def __init__(
        self,
        state: InventoryState,
        policy: InventoryPolicy,
        sample_order_count: CountSampler,
        sample_order_size: SizeSampler,
        schedule: Scheduler,
    ):
        self.state = state
        self.policy = policy
        self.sample_order_count = sample_order_count
        self.sample_order_size = sample_order_size
        self.schedule = schedule

    # ------------------------------------------------------------------
    def handle_begin_day(self, event: Event) -> None:
        """Spread today's random orders evenly through the day and schedule its end."""
        n_orders = self.sample_order_count()
        for j in range(1, n_orders + 1):
            amount = self.sample_order_size()
            order_time = event.time + j / (n_orders + 1)
            self.schedule(order_received(order_time, amount))
        self.schedule(end_day(event.time + DAY_LENGTH))
        logging.debug("Day beginning t=%.2f generated %d orders", event.time, n_orders)

    def handle_order_received(self, order: Event) -> None:
        """Fill the order whole if stock allows, otherwise backlog it unchanged."""
        state = self.state
        if state.on_hand >= order.amount:
            state.on_hand -= order.amount
            state.fulfilled.append(order)
            logging.debug(
                "Order of %.2f fulfilled at t=%.4f (delay %.4f); on hand %.2f",
                order.amount,
                order.time,
                order.delay,
                state.on_hand,
            )
        else:
            state.backlog.append(order)
            logging.debug(
                "Order of %.2f backlogged at t=%.4f; on hand %.2f, %d orders waiting",
                order.amount,
                order.time,
                state.on_hand,
                len(state.backlog),
            )
        self.maybe_request_more()

    def handle_shipment_arrival(self, arrival: Event) -> None:
        """Receive the shipment and replay every backlogged order right now."""
        state = self.state
        state.on_hand += arrival.amount
        state.total_received += arrival.amount
        state.outstanding_request = 0.0
        waiting = state.backlog
        state.backlog = []
        for order in waiting:
            self.schedule(order.rescheduled(state.time))
        state.request_pending = False
        logging.info(
            "Shipment of %.2f arrived at t=%.2f; on hand %.2f, %d backlogged orders rescheduled",
            arrival.amount,
            state.time,
            state.on_hand,
            len(waiting),
        )

    def maybe_request_more(self) -> None:
        """Continuous review: request a batch when stock is at or below the reorder point.

        At most one request is outstanding; while it is pending this is a no-op.
        """
        state = self.state
        policy = self.policy
        if state.request_pending or state.on_hand > policy.reorder_point:
            return
        state.ledger.charge_request(
            policy.request_cost_per_batch,
            policy.request_batch_size * policy.request_cost_per_unit,
        )
        arrival_time = math.floor(state.time + policy.request_lead_time)
        self.schedule(shipment_arrival(arrival_time, policy.request_batch_size))
        state.request_pending = True
        state.outstanding_request = policy.request_batch_size
        logging.info(
            "Requested batch of %.2f at t=%.2f (on hand %.2f <= reorder point %.2f); arrives t=%d",
            policy.request_batch_size,
            state.time,
            state.on_hand,
            policy.reorder_point,
            arrival_time,
        )

    def handle_end_day(self, event: Event) -> None:
        """Accrue holding and shortage cost, log the day, and start the next one."""
        state = self.state
        policy = self.policy
        holding_cost = state.on_hand * policy.holding_cost_per_unit_per_day
        shortage_cost = state.total_backlog() * policy.shortage_cost_per_unit_per_day
        state.ledger.charge_day(holding_cost, shortage_cost)
        row = state.record_log()
        logging.debug(
            "Day ended t=%.2f: on hand %.2f, backlog %.2f, running cost %.2f",
            row.time,
            row.on_hand,
            row.backlog,
            row.running_cost,
        )
        # The next day begins at the instant this one ends.
        self.schedule(begin_day(event.time))
        self.check_for_problems()

    def check_for_problems(self) -> None:
        """Abort the run when the backlog shows the policy cannot keep up with demand."""
        count = self.state.backlog_count()
        if count > self.policy.max_backlog_count:
            logging.error(
                "Backlog diverging at t=%.2f: %d orders exceed threshold %s",
                self.state.time,
                count,
                self.policy.max_backlog_count,
            )
            raise BacklogDivergenceError(count, self.policy.max_backlog_count, self.state.time)
