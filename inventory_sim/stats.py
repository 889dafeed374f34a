# v1
# file: inventory_sim/stats.py

"""
Collects per-replication totals and aggregate statistics for batches of inventory runs.
Failed replications are kept as first-class records but excluded from the aggregates.
Outputs per-replication, summary and stacked daily-log CSVs; all logs go to file and stdout.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from scipy import stats as sps

from .entities import LOG_COLUMNS

REPLICATIONS_FILENAME = "replications.csv"
SUMMARY_FILENAME = "summary_stats.csv"
DAILY_LOG_FILENAME = "daily_log.csv"

STATUS_OK = "ok"
STATUS_FAILED = "failed"


@dataclass
class ReplicationResult:
    """Totals of one replication, or the reason it was aborted."""

    replication: int
    seed: Optional[int]
    status: str = STATUS_OK
    error: str = ""
    days_simulated: int = 0
    end_time: float = 0.0
    events_processed: int = 0
    running_per_batch_cost: float = math.nan
    running_per_unit_cost: float = math.nan
    running_holding_cost: float = math.nan
    running_shortage_cost: float = math.nan
    running_inventory_variable_cost: float = math.nan
    running_cost: float = math.nan
    mean_daily_cost: float = math.nan
    mean_daily_variable_cost: float = math.nan
    mean_cost_per_horizon_day: float = math.nan
    fraction_backlogged: float = math.nan
    orders_fulfilled: int = 0
    mean_fulfillment_delay: float = math.nan
    max_fulfillment_delay: float = math.nan
    daily_log: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=LOG_COLUMNS), repr=False)

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @classmethod
    def from_engine(
        cls, replication: int, seed: Optional[int], engine, horizon: Optional[float] = None
    ) -> "ReplicationResult":
        ledger = engine.ledger
        days = len(engine.log)
        delays = engine.fulfillment_delay_times()
        fraction = engine.fraction_of_orders_backlogged() if delays else math.nan
        return cls(
            replication=replication,
            seed=seed,
            days_simulated=days,
            end_time=engine.time,
            events_processed=engine.events_processed,
            running_per_batch_cost=ledger.per_batch,
            running_per_unit_cost=ledger.per_unit,
            running_holding_cost=ledger.holding,
            running_shortage_cost=ledger.shortage,
            running_inventory_variable_cost=ledger.inventory_variable,
            running_cost=ledger.total,
            mean_daily_cost=ledger.total / days if days else math.nan,
            mean_daily_variable_cost=ledger.inventory_variable / days if days else math.nan,
            mean_cost_per_horizon_day=ledger.total / horizon if horizon else math.nan,
            fraction_backlogged=fraction,
            orders_fulfilled=len(delays),
            mean_fulfillment_delay=float(np.mean(delays)) if delays else math.nan,
            max_fulfillment_delay=float(np.max(delays)) if delays else math.nan,
            daily_log=engine.log_frame(),
        )

    @classmethod
    def failed(cls, replication: int, seed: Optional[int], exc: BaseException, engine=None) -> "ReplicationResult":
        result = cls(replication=replication, seed=seed, status=STATUS_FAILED, error=str(exc))
        if engine is not None:
            result.days_simulated = len(engine.log)
            result.end_time = engine.time
            result.events_processed = engine.events_processed
        return result

    def as_row(self) -> Dict[str, Any]:
        return {key: value for key, value in self.__dict__.items() if key != "daily_log"}


class ReplicationStats:
    """Tracks replication outcomes and derives aggregate KPIs across a batch."""

    def __init__(self, horizon: float, policy: Optional[Dict[str, Any]] = None):
        self.horizon = horizon
        self.policy = dict(policy or {})
        self.results: List[ReplicationResult] = []

    # ------------------------------------------------------------------
    # Recording hooks invoked by the driver
    # ------------------------------------------------------------------
    def record(self, result: ReplicationResult) -> None:
        self.results.append(result)
        if result.ok:
            logging.info(
                "Replication %d finished: %d days, total cost %.2f (%.4f/day), backlogged fraction %.4f",
                result.replication,
                result.days_simulated,
                result.running_cost,
                result.mean_daily_cost,
                result.fraction_backlogged,
            )
        else:
            logging.warning("Replication %d failed after %d days: %s", result.replication, result.days_simulated, result.error)

    @property
    def successful(self) -> List[ReplicationResult]:
        return [result for result in self.results if result.ok]

    @property
    def failed(self) -> List[ReplicationResult]:
        return [result for result in self.results if not result.ok]

    # ------------------------------------------------------------------
    # Derived series
    # ------------------------------------------------------------------
    def mean_daily_costs(self) -> np.ndarray:
        return np.array([result.mean_daily_cost for result in self.successful], dtype=float)

    def backlog_amounts(self) -> np.ndarray:
        """Every positive end-of-day backlog amount across successful replications."""
        chunks = [result.daily_log["backlog"].to_numpy(dtype=float) for result in self.successful]
        if not chunks:
            return np.array([], dtype=float)
        amounts = np.concatenate(chunks)
        return amounts[amounts > 0]

    def replications_frame(self) -> pd.DataFrame:
        return pd.DataFrame([result.as_row() for result in self.results])

    def daily_log_frame(self) -> pd.DataFrame:
        frames = []
        for result in self.successful:
            frame = result.daily_log.copy()
            frame.insert(0, "replication", result.replication)
            frames.append(frame)
        if not frames:
            return pd.DataFrame(columns=["replication", *LOG_COLUMNS])
        return pd.concat(frames, ignore_index=True)

    # ------------------------------------------------------------------
    # Reporting helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _mean_ci(values: np.ndarray, confidence: float = 0.95):
        if len(values) < 2:
            mean = float(values[0]) if len(values) else math.nan
            return mean, math.nan, math.nan
        mean = float(np.mean(values))
        sem = float(sps.sem(values))
        if sem == 0:
            return mean, mean, mean
        low, high = sps.t.interval(confidence, len(values) - 1, loc=mean, scale=sem)
        return mean, float(low), float(high)

    def summary_rows(self) -> List[Dict[str, Any]]:
        ok = self.successful
        daily_costs = self.mean_daily_costs()
        mean_cost, ci_low, ci_high = self._mean_ci(daily_costs)
        fractions = np.array([r.fraction_backlogged for r in ok], dtype=float)
        delays = np.array([r.mean_fulfillment_delay for r in ok], dtype=float)
        variable_costs = np.array([r.mean_daily_variable_cost for r in ok], dtype=float)
        horizon_costs = np.array([r.mean_cost_per_horizon_day for r in ok], dtype=float)
        backlog_amounts = self.backlog_amounts()

        def _nanmean(values: np.ndarray) -> float:
            finite = values[~np.isnan(values)]
            return float(np.mean(finite)) if len(finite) else math.nan

        return [
            {
                "metric": "replications_run",
                "value": len(self.results),
                "units": "replications",
                "description": "Replications attempted",
            },
            {
                "metric": "replications_failed",
                "value": len(self.failed),
                "units": "replications",
                "description": "Replications aborted by a fatal simulation error (excluded below)",
            },
            {
                "metric": "mean_daily_cost",
                "value": mean_cost,
                "units": "dollars/day",
                "description": "Mean over replications of total cost divided by days simulated",
            },
            {
                "metric": "mean_daily_cost_ci_low",
                "value": ci_low,
                "units": "dollars/day",
                "description": "Lower bound of the 95% Student-t confidence interval",
            },
            {
                "metric": "mean_daily_cost_ci_high",
                "value": ci_high,
                "units": "dollars/day",
                "description": "Upper bound of the 95% Student-t confidence interval",
            },
            {
                "metric": "std_daily_cost",
                "value": float(np.std(daily_costs, ddof=1)) if len(daily_costs) > 1 else math.nan,
                "units": "dollars/day",
                "description": "Sample standard deviation of the per-replication daily cost",
            },
            {
                "metric": "median_daily_cost",
                "value": float(np.median(daily_costs)) if len(daily_costs) else math.nan,
                "units": "dollars/day",
                "description": "Median per-replication daily cost",
            },
            {
                "metric": "mean_daily_variable_cost",
                "value": _nanmean(variable_costs),
                "units": "dollars/day",
                "description": "Batch, holding and shortage cost per day (per-unit cost excluded)",
            },
            {
                "metric": "mean_cost_per_horizon_day",
                "value": _nanmean(horizon_costs),
                "units": "dollars/day",
                "description": "Mean over replications of total cost divided by the run horizon",
            },
            {
                "metric": "mean_fraction_backlogged",
                "value": _nanmean(fractions),
                "units": "fraction",
                "description": "Share of fulfilled orders that waited in the backlog",
            },
            {
                "metric": "mean_fulfillment_delay",
                "value": _nanmean(delays),
                "units": "days",
                "description": "Average fulfillment time minus original order time",
            },
            {
                "metric": "backlogged_days",
                "value": int(len(backlog_amounts)),
                "units": "days",
                "description": "End-of-day snapshots with a positive backlog",
            },
            {
                "metric": "mean_backlog_amount",
                "value": float(np.mean(backlog_amounts)) if len(backlog_amounts) else 0.0,
                "units": "units",
                "description": "Average backlog amount over days with a positive backlog",
            },
        ]

    def summary_metrics(self) -> Dict[str, Any]:
        return {row["metric"]: row["value"] for row in self.summary_rows()}

    def write_csvs(self, output_dir: str) -> Dict[str, str]:
        os.makedirs(output_dir, exist_ok=True)
        paths = {
            "replications": os.path.join(output_dir, REPLICATIONS_FILENAME),
            "summary": os.path.join(output_dir, SUMMARY_FILENAME),
            "daily_log": os.path.join(output_dir, DAILY_LOG_FILENAME),
        }
        self.replications_frame().to_csv(paths["replications"], index=False)
        logging.info("Per-replication statistics written to %s", paths["replications"])
        pd.DataFrame(self.summary_rows(), columns=["metric", "value", "units", "description"]).to_csv(
            paths["summary"], index=False
        )
        logging.info("Summary statistics written to %s", paths["summary"])
        self.daily_log_frame().to_csv(paths["daily_log"], index=False)
        logging.info("Daily log written to %s", paths["daily_log"])
        return paths

    # ------------------------------------------------------------------
    # Public report hook
    # ------------------------------------------------------------------
    def final_report(self, output_dir: Optional[str] = None) -> List[Dict[str, Any]]:
        """Write CSVs when an output dir is given, then log a concise summary."""
        if output_dir is not None:
            self.write_csvs(output_dir)
        summary_rows = self.summary_rows()

        logging.info("------ SIMULATION SUMMARY ------")
        for row in summary_rows:
            logging.info("%s = %s %s", row["metric"], row["value"], row["units"])

        print("------ SIMULATION SUMMARY ------")
        metrics = {row["metric"]: row for row in summary_rows}
        for name in ("replications_run", "replications_failed", "mean_daily_cost", "mean_fraction_backlogged"):
            row = metrics[name]
            print(f"{name}: {row['value']} {row['units']}")
        return summary_rows
