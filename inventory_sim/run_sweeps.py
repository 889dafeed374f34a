# v1
# file: inventory_sim/run_sweeps.py

"""
Policy sweep runner for the inventory simulation.

Reads a sweep specification (CSV with optional comment lines), evaluates each row
as an independent batch of replications with per-row config overrides, and
persists outputs into experiment-specific folders. Each experiment is isolated
under the provided output base (default ``experiments/policy_sweeps``), and an
aggregate CSV can be produced for side-by-side comparison. Example usage:

    python -m inventory_sim.run_sweeps --spec inventory_sim/sweeps/policy_sweeps.csv
"""

from __future__ import annotations

import argparse
import ast
import csv
import json
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

from inventory_sim import config as sim_config
from inventory_sim import simulate
from inventory_sim.stats import SUMMARY_FILENAME

DEFAULT_SPEC_PATH = os.path.join(os.path.dirname(__file__), "sweeps", "policy_sweeps.csv")
DEFAULT_OUTDIR = os.path.join("experiments", "policy_sweeps")
CONFIG_FILENAME = "config_used.json"
AGGREGATE_FILENAME = "aggregate_summary.csv"
LOG_FILENAME = "sweep.log"

SPEC_KEY_MAP = {
    "reorder_point": "REORDER_POINT",
    "batch_size": "REQUEST_BATCH_SIZE",
    "request_batch_size": "REQUEST_BATCH_SIZE",
    "lead_time": "REQUEST_LEAD_TIME",
    "request_lead_time": "REQUEST_LEAD_TIME",
    "replications": "NUM_REPLICATIONS",
    "global_seed": "GLOBAL_RANDOM_SEED",
    "sim_duration": "SIM_DURATION",
}

SUMMARY_METRICS = [
    "replications_run",
    "replications_failed",
    "mean_daily_cost",
    "mean_daily_cost_ci_low",
    "mean_daily_cost_ci_high",
    "mean_daily_variable_cost",
    "mean_cost_per_horizon_day",
    "mean_fraction_backlogged",
    "mean_fulfillment_delay",
    "mean_backlog_amount",
]


@dataclass
class SweepExperiment:
    """Container for a single experiment specification."""

    experiment_id: str
    parameters: Dict[str, Any]
    spec_values: Dict[str, Any]


def configure_logging(base_outdir: str) -> None:
    """Configure stdout and file logging for sweep execution."""
    os.makedirs(base_outdir, exist_ok=True)
    logfile = os.path.join(base_outdir, LOG_FILENAME)
    handlers: List[logging.Handler] = [
        logging.FileHandler(logfile, mode="w"),
        logging.StreamHandler(sys.stdout),
    ]
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )
    logging.info("Sweep logging initialized. Output dir: %s", base_outdir)


def parse_value(raw: str) -> Any:
    """Convert CSV string fields into Python literals when possible."""
    text = raw.strip()
    if text == "":
        return None
    try:
        return ast.literal_eval(text)
    except (ValueError, SyntaxError):
        return text


def _iter_non_comment_lines(filepath: str) -> Iterable[str]:
    with open(filepath, "r", newline="") as handle:
        for line in handle:
            if line.lstrip().startswith("#"):
                continue
            if line.strip() == "":
                continue
            yield line


def load_sweep_spec(filepath: str) -> Tuple[List[SweepExperiment], List[str]]:
    """Load sweep experiments from a CSV specification file."""
    experiments: List[SweepExperiment] = []
    reader = csv.DictReader(_iter_non_comment_lines(filepath))
    if reader.fieldnames is None:
        raise ValueError(f"Spec file {filepath} is missing headers.")
    param_columns = [field for field in reader.fieldnames if field != "experiment_id"]
    for row in reader:
        experiment_id = (row.get("experiment_id") or "").strip()
        if not experiment_id:
            logging.warning("Skipping unnamed experiment row: %s", row)
            continue
        spec_values: Dict[str, Any] = {}
        overrides: Dict[str, Any] = {}
        for key in param_columns:
            value = parse_value(row.get(key) or "")
            if value is None:
                continue
            spec_values[key] = value
            overrides[SPEC_KEY_MAP.get(key, key.upper())] = value
        experiments.append(SweepExperiment(experiment_id, overrides, spec_values))
    return experiments, param_columns


def run_single_experiment(exp: SweepExperiment, base_outdir: str) -> bool:
    """Execute one experiment and persist outputs. Returns success status."""
    logging.info("--- Running experiment %s ---", exp.experiment_id)
    experiment_dir = os.path.join(base_outdir, exp.experiment_id)
    os.makedirs(experiment_dir, exist_ok=True)

    baseline = sim_config.current_config()
    try:
        applied = sim_config.apply_overrides(exp.parameters)
        logging.info("Applied overrides for %s: %s", exp.experiment_id, applied)
        seed, _ = simulate.resolve_seed(exp.parameters.get("GLOBAL_RANDOM_SEED"), explicit_source="sweep spec")
        stats = simulate.run_replications(
            sim_config.NUM_REPLICATIONS,
            sim_config.SIM_DURATION,
            seed,
            sim_config.engine_options(),
        )
        stats.final_report(experiment_dir)
        persist_config(sim_config.current_config(), experiment_dir)
    except (KeyError, ValueError) as exc:
        logging.exception("Experiment %s has an invalid configuration: %s", exp.experiment_id, exc)
        return False
    finally:
        sim_config.apply_overrides(baseline)

    if not stats.successful:
        logging.error("Experiment %s produced no successful replications.", exp.experiment_id)
        return False
    logging.info("Completed experiment %s", exp.experiment_id)
    return True


def persist_config(config_snapshot: Dict[str, Any], experiment_dir: str) -> None:
    config_path = os.path.join(experiment_dir, CONFIG_FILENAME)
    with open(config_path, "w", encoding="utf-8") as handle:
        json.dump(config_snapshot, handle, indent=2, sort_keys=True)
    logging.info("Wrote config snapshot to %s", config_path)


def read_summary_metrics(summary_path: str) -> Dict[str, Any]:
    metrics: Dict[str, Any] = {}
    with open(summary_path, "r", newline="") as handle:
        reader = csv.DictReader(handle)
        for row in reader:
            metric = row.get("metric")
            value = row.get("value", "")
            if metric:
                metrics[metric] = parse_value(value)
    return metrics


def build_aggregate(
    experiments: List[SweepExperiment],
    param_columns: List[str],
    base_outdir: str,
) -> None:
    """Combine per-experiment parameters and metrics into one CSV."""
    aggregate_rows: List[Dict[str, Any]] = []
    for exp in experiments:
        summary_path = os.path.join(base_outdir, exp.experiment_id, SUMMARY_FILENAME)
        if not os.path.isfile(summary_path):
            logging.warning("No summary for %s; skipping aggregation.", exp.experiment_id)
            continue
        metrics = read_summary_metrics(summary_path)
        row: Dict[str, Any] = {"experiment_id": exp.experiment_id}
        for col in param_columns:
            row[col] = exp.spec_values.get(col)
        for metric in SUMMARY_METRICS:
            row[metric] = metrics.get(metric)
        aggregate_rows.append(row)

    if not aggregate_rows:
        logging.warning("No experiments produced summaries; aggregate not written.")
        return

    aggregate_path = os.path.join(base_outdir, AGGREGATE_FILENAME)
    fieldnames = ["experiment_id", *param_columns, *SUMMARY_METRICS]
    with open(aggregate_path, "w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(aggregate_rows)
    logging.info("Aggregate summary written to %s", aggregate_path)


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate inventory policies listed in a sweep spec.")
    parser.add_argument("--spec", default=DEFAULT_SPEC_PATH, help="Path to sweep spec CSV.")
    parser.add_argument("--outdir", default=DEFAULT_OUTDIR, help="Base output directory.")
    parser.add_argument(
        "--limit", type=int, default=None, help="Optional limit on number of experiments to run."
    )
    parser.add_argument(
        "--skip-aggregate",
        action="store_true",
        help="Skip writing aggregate summary even if runs succeed.",
    )
    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.outdir)

    logging.info("Loading sweep spec from %s", args.spec)
    experiments, param_columns = load_sweep_spec(args.spec)
    if args.limit is not None:
        experiments = experiments[: args.limit]
        logging.info("Limiting to first %d experiments", args.limit)

    completed: List[SweepExperiment] = []
    for exp in experiments:
        success = run_single_experiment(exp, args.outdir)
        if success:
            completed.append(exp)

    logging.info("Completed %d/%d experiments", len(completed), len(experiments))
    if not args.skip_aggregate:
        build_aggregate(completed, param_columns, args.outdir)


if __name__ == "__main__":
    main()
