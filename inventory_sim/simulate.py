# v1
# file: inventory_sim/simulate.py

"""
Main entry point for batches of inventory simulation replications.
Initializes logging and seeding, runs independent replications of the
continuous-review inventory engine, and reports cost and service statistics.

    python -m inventory_sim.simulate --replications 100 --horizon 1000
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np

if __package__ is None or __package__ == "":  # pragma: no cover - runtime path fix
    sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from inventory_sim import config  # type: ignore
from inventory_sim.engine import InventoryEngine  # type: ignore
from inventory_sim.exceptions import SimulationError  # type: ignore
from inventory_sim.stats import ReplicationResult, ReplicationStats  # type: ignore


def _configure_logging(log_file: str, level: int = logging.INFO) -> None:
    log_dir = os.path.dirname(log_file) or "."
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_file, mode="w"),
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )
    logging.info("Simulation logging initialized at %s", datetime.now().isoformat())


def resolve_seed(explicit_seed: Optional[int] = None, explicit_source: str = "cli"):
    """Resolve the root seed: explicit value, then the env override, then config."""
    if explicit_seed is not None:
        seed = int(explicit_seed)
        logging.info("Random generators seeded from %d (override source: %s).", seed, explicit_source)
        return seed, explicit_source

    env_var = config.SEED_OVERRIDE_ENV_VAR or ""
    override_val = os.environ.get(env_var) if env_var else None
    seed = config.GLOBAL_RANDOM_SEED
    override_source = None

    if override_val is not None:
        try:
            seed = int(override_val)
            override_source = env_var
        except ValueError:
            logging.warning(
                "Env override %s=%r is not an integer; falling back to default seed %d.",
                env_var,
                override_val,
                seed,
            )

    logging.info(
        "Random generators seeded from %d (override source: %s).",
        seed,
        override_source or "config",
    )
    return seed, override_source


def _log_config_summary(options: Dict[str, Any], replications: int, horizon: float, seed: int) -> None:
    logging.info(
        "Simulation configuration: replications=%d, horizon=%.2f days, seed=%d",
        replications,
        horizon,
        seed,
    )
    logging.info(
        "Policy: on_hand=%s ROP=%s Q=%s L=%s K=%s c=%s h=%.6f p=%.6f max_backlog=%s",
        options["on_hand"],
        options["reorder_point"],
        options["request_batch_size"],
        options["request_lead_time"],
        options["request_cost_per_batch"],
        options["request_cost_per_unit"],
        options["holding_cost_per_unit_per_day"],
        options["shortage_cost_per_unit_per_day"],
        options["max_backlog_count"],
    )
    logging.info(
        "Demand: daily counts %s, order sizes %s",
        options["daily_order_count_distribution"],
        options["outgoing_size_distribution"],
    )


def run_replication(
    index: int,
    seed_sequence: np.random.SeedSequence,
    options: Dict[str, Any],
    horizon: float,
) -> ReplicationResult:
    """Run one independent replication; fatal simulation errors become a failed result."""
    rng = np.random.default_rng(seed_sequence)
    seed = int(seed_sequence.generate_state(1)[0])
    engine = None
    try:
        engine = InventoryEngine(rng=rng, **options)
        engine.advance_until(horizon)
    except SimulationError as exc:
        logging.exception("Replication %d aborted: %s", index, exc)
        return ReplicationResult.failed(index, seed, exc, engine)
    return ReplicationResult.from_engine(index, seed, engine, horizon)


def run_replications(
    replications: int,
    horizon: float,
    seed: int,
    options: Optional[Dict[str, Any]] = None,
) -> ReplicationStats:
    """Run ``replications`` independent engines sequentially, one spawned seed stream each."""
    options = dict(options if options is not None else config.engine_options())
    stats = ReplicationStats(horizon, policy=options)
    children = np.random.SeedSequence(seed).spawn(replications)
    for index, child in enumerate(children, start=1):
        logging.info("Working on replication %d/%d", index, replications)
        stats.record(run_replication(index, child, options, horizon))
    return stats


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run replications of the inventory simulation.")
    parser.add_argument("--replications", type=int, default=None, help="Number of replications.")
    parser.add_argument("--horizon", type=float, default=None, help="Simulated days per replication.")
    parser.add_argument("--seed", type=int, default=None, help="Root random seed.")
    parser.add_argument("--output-dir", default=None, help="Directory for CSVs and plots.")
    parser.add_argument("--reorder-point", type=float, default=None, help="Override the reorder point.")
    parser.add_argument("--batch-size", type=float, default=None, help="Override the request batch size.")
    parser.add_argument("--lead-time", type=float, default=None, help="Override the request lead time.")
    parser.add_argument("--no-plots", action="store_true", help="Skip writing histogram PNGs.")
    parser.add_argument("--verbose", action="store_true", help="Log every event at DEBUG level.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> ReplicationStats:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    output_dir = args.output_dir or config.OUTPUT_DIR
    _configure_logging(os.path.join(output_dir, config.LOG_FILE), logging.DEBUG if args.verbose else logging.INFO)
    seed, _ = resolve_seed(args.seed)

    overrides = {}
    if args.reorder_point is not None:
        overrides["reorder_point"] = args.reorder_point
    if args.batch_size is not None:
        overrides["request_batch_size"] = args.batch_size
    if args.lead_time is not None:
        overrides["request_lead_time"] = args.lead_time
    options = config.engine_options(**overrides)

    replications = args.replications if args.replications is not None else config.NUM_REPLICATIONS
    horizon = args.horizon if args.horizon is not None else config.SIM_DURATION
    _log_config_summary(options, replications, horizon, seed)

    logging.info("Starting %d replications. Target horizon: %.2f", replications, horizon)
    stats = run_replications(replications, horizon, seed, options)
    stats.final_report(output_dir)
    if not args.no_plots:
        from inventory_sim.plots import plot_batch  # type: ignore

        plot_batch(stats, output_dir)
    logging.info("Simulation complete.")
    return stats


if __name__ == "__main__":
    main()
