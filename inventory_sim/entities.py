# v1
# file: inventory_sim/entities.py

"""
Defines the policy parameters, the cost ledger, the daily log row, and the
mutable InventoryState owned by a single engine.
Transitions live in InventoryLogic; this module only holds data and small helpers.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Dict, List, NamedTuple

from .events import Event

LOG_COLUMNS = [
    "time",
    "on_hand",
    "backlog",
    "running_per_batch_cost",
    "running_per_unit_cost",
    "running_holding_cost",
    "running_shortage_cost",
    "running_inventory_variable_cost",
    "running_cost",
]


@dataclass(frozen=True)
class InventoryPolicy:
    """Cost factors and the reorder-point/batch-size policy, constant for a run."""

    request_batch_size: float
    reorder_point: float
    request_lead_time: float
    request_cost_per_batch: float = 0.0
    request_cost_per_unit: float = 0.0
    holding_cost_per_unit_per_day: float = 0.0
    shortage_cost_per_unit_per_day: float = 0.0
    max_backlog_count: float = math.inf

    def __post_init__(self):
        for name in (
            "request_cost_per_batch",
            "request_cost_per_unit",
            "holding_cost_per_unit_per_day",
            "shortage_cost_per_unit_per_day",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}.")
        if self.request_batch_size <= 0:
            raise ValueError(f"request_batch_size must be positive, got {self.request_batch_size}.")
        if self.request_lead_time < 1:
            raise ValueError(
                f"request_lead_time must be at least 1 day, got {self.request_lead_time}; "
                "shipments arrive at floor(now + lead time), which must not precede now."
            )
        if self.max_backlog_count < 0:
            raise ValueError(f"max_backlog_count must be non-negative, got {self.max_backlog_count}.")

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class CostLedger:
    """Running cost accumulators. All start at zero and never decrease."""

    per_batch: float = 0.0
    per_unit: float = 0.0
    holding: float = 0.0
    shortage: float = 0.0
    inventory_variable: float = 0.0
    total: float = 0.0

    def charge_request(self, batch_cost: float, unit_cost: float) -> None:
        # Per-unit cost is excluded from the variable cost.
        self.per_batch += batch_cost
        self.per_unit += unit_cost
        self.inventory_variable += batch_cost
        self.total += batch_cost + unit_cost

    def charge_day(self, holding_cost: float, shortage_cost: float) -> None:
        self.holding += holding_cost
        self.shortage += shortage_cost
        self.inventory_variable += holding_cost + shortage_cost
        self.total += holding_cost + shortage_cost

    def snapshot(self) -> "CostLedger":
        return CostLedger(**asdict(self))


class LogRow(NamedTuple):
    """End-of-day snapshot of the inventory and the running costs."""

    time: float
    on_hand: float
    backlog: float
    running_per_batch_cost: float
    running_per_unit_cost: float
    running_holding_cost: float
    running_shortage_cost: float
    running_inventory_variable_cost: float
    running_cost: float


@dataclass
class InventoryState:
    """Holds the clock, stock, backlog, and book-keeping data for one run."""

    on_hand: float
    time: float = 0.0
    request_pending: bool = False
    backlog: List[Event] = field(default_factory=list)
    fulfilled: List[Event] = field(default_factory=list)
    ledger: CostLedger = field(default_factory=CostLedger)
    log: List[LogRow] = field(default_factory=list)
    initial_on_hand: float = field(init=False)
    total_received: float = 0.0
    outstanding_request: float = 0.0

    def __post_init__(self):
        if self.on_hand < 0:
            raise ValueError(f"Initial on_hand must be non-negative, got {self.on_hand}.")
        self.initial_on_hand = self.on_hand

    # ---- Backlog helpers ------------------------------------------------
    def total_backlog(self) -> float:
        return sum(order.amount for order in self.backlog)

    def backlog_count(self) -> int:
        return len(self.backlog)

    # ---- Log helpers ----------------------------------------------------
    def record_log(self) -> LogRow:
        ledger = self.ledger
        row = LogRow(
            self.time,
            self.on_hand,
            self.total_backlog(),
            ledger.per_batch,
            ledger.per_unit,
            ledger.holding,
            ledger.shortage,
            ledger.inventory_variable,
            ledger.total,
        )
        self.log.append(row)
        return row
