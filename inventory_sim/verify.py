"""Verification CLI for inventory simulation outputs.

This module inspects the stacked daily log written by a batch run, checks the
cost-accounting identities and monotonicity of the running accumulators, writes
a Markdown report, and exits with a machine-friendly status code (0 on success,
non-zero on failures).

Example:
    python -m inventory_sim.verify --input output
"""

from __future__ import annotations

import argparse
import datetime as dt
import os
import sys
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

DAILY_LOG_FILENAME = "daily_log.csv"
REPORT_FILENAME = "verification_report.md"

REQUIRED_COLUMNS = [
    "replication",
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
RUNNING_COLUMNS = [column for column in REQUIRED_COLUMNS if column.startswith("running_")]


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------
@dataclass
class CheckResult:
    """Represents a single verification check."""

    name: str
    passed: bool
    details: str


@dataclass
class RunReport:
    """Collects the results for a single run or experiment."""

    label: str
    results: List[CheckResult]

    @property
    def passed(self) -> bool:
        return all(result.passed for result in self.results)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------
def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verify inventory simulation outputs and generate a report.")
    parser.add_argument("--input", default="output", help="Run output directory or sweep root (default: output).")
    parser.add_argument("--fail-fast", action="store_true", help="Stop after the first failing check.")
    parser.add_argument("--tolerance", type=float, default=1e-6, help="Tolerance for floating-point comparisons.")
    parser.add_argument(
        "--mode",
        choices=["single", "sweep"],
        default="single",
        help="Verify a single run directory or every experiment directory under the input path.",
    )
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Check routines
# ---------------------------------------------------------------------------
def _max_relative_gap(a: pd.Series, b: pd.Series) -> float:
    scale = np.maximum(1.0, np.maximum(a.abs(), b.abs()))
    return float(((a - b).abs() / scale).max()) if len(a) else 0.0


def _columns_check(frame: pd.DataFrame) -> CheckResult:
    missing = [column for column in REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        return CheckResult("Required columns present", False, f"Missing columns: {', '.join(missing)}")
    return CheckResult("Required columns present", True, f"Found {len(REQUIRED_COLUMNS)} columns, {len(frame)} rows.")


def _total_cost_identity_check(frame: pd.DataFrame, tolerance: float) -> CheckResult:
    components = (
        frame["running_per_batch_cost"]
        + frame["running_per_unit_cost"]
        + frame["running_holding_cost"]
        + frame["running_shortage_cost"]
    )
    gap = _max_relative_gap(frame["running_cost"], components)
    passed = gap <= tolerance
    return CheckResult(
        "Total cost identity",
        passed,
        f"running_cost vs batch+unit+holding+shortage, max relative gap {gap:.3g}.",
    )


def _variable_cost_check(frame: pd.DataFrame, tolerance: float) -> CheckResult:
    components = frame["running_per_batch_cost"] + frame["running_holding_cost"] + frame["running_shortage_cost"]
    gap = _max_relative_gap(frame["running_inventory_variable_cost"], components)
    passed = gap <= tolerance
    return CheckResult(
        "Variable cost excludes per-unit cost",
        passed,
        f"running_inventory_variable_cost vs batch+holding+shortage, max relative gap {gap:.3g}.",
    )


def _monotonic_check(frame: pd.DataFrame, tolerance: float) -> CheckResult:
    offenders = []
    for replication, group in frame.groupby("replication", sort=False):
        for column in ["time", *RUNNING_COLUMNS]:
            steps = group[column].diff().dropna()
            if (steps < -tolerance).any():
                offenders.append(f"{column}@{replication}")
    if offenders:
        shown = ", ".join(offenders[:10])
        return CheckResult("Clock and accumulators non-decreasing", False, f"Decreases found: {shown}")
    return CheckResult(
        "Clock and accumulators non-decreasing",
        True,
        f"Checked {frame['replication'].nunique()} replications.",
    )


def _bounds_check(frame: pd.DataFrame, tolerance: float) -> CheckResult:
    negative = {
        column: int((frame[column] < -tolerance).sum()) for column in ["on_hand", "backlog", *RUNNING_COLUMNS]
    }
    negative = {column: count for column, count in negative.items() if count}
    if negative:
        return CheckResult("Domain bounds", False, f"Negative values: {negative}")
    return CheckResult("Domain bounds", True, "On-hand, backlog and running costs are non-negative.")


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------
def verify_single_run(base_dir: str, tolerance: float, fail_fast: bool) -> RunReport:
    results: List[CheckResult] = []
    log_path = os.path.join(base_dir, DAILY_LOG_FILENAME)
    if not os.path.isfile(log_path):
        results.append(CheckResult("Daily log present", False, f"Missing required file: {log_path}"))
        return RunReport(base_dir, results)
    results.append(CheckResult("Daily log present", True, f"Found {DAILY_LOG_FILENAME}."))

    frame = pd.read_csv(log_path)
    columns = _columns_check(frame)
    results.append(columns)
    if not columns.passed:
        return RunReport(base_dir, results)

    for check in (_total_cost_identity_check, _variable_cost_check, _monotonic_check, _bounds_check):
        result = check(frame, tolerance)
        results.append(result)
        if fail_fast and not result.passed:
            break
    return RunReport(base_dir, results)


def verify_sweep(input_dir: str, tolerance: float, fail_fast: bool) -> Tuple[List[RunReport], bool]:
    run_reports: List[RunReport] = []
    if not os.path.isdir(input_dir):
        return [RunReport(input_dir, [CheckResult("Sweep directory present", False, f"Directory not found: {input_dir}")])], False

    subdirs = [
        os.path.join(input_dir, name)
        for name in sorted(os.listdir(input_dir))
        if os.path.isdir(os.path.join(input_dir, name))
    ]
    if not subdirs:
        return [RunReport(input_dir, [CheckResult("Sweep contents", False, "No experiment subdirectories found.")])], False

    overall_passed = True
    for subdir in subdirs:
        report = verify_single_run(subdir, tolerance, fail_fast)
        run_reports.append(report)
        overall_passed = overall_passed and report.passed
        if fail_fast and not report.passed:
            break
    return run_reports, overall_passed


# ---------------------------------------------------------------------------
# Report assembly
# ---------------------------------------------------------------------------
def _render_table(results: List[CheckResult]) -> List[str]:
    lines = ["| Status | Check | Details |", "| --- | --- | --- |"]
    for result in results:
        status = "PASS" if result.passed else "FAIL"
        lines.append(f"| {status} | {result.name} | {result.details} |")
    return lines


def build_report(
    input_dir: str,
    mode: str,
    tolerance: float,
    run_reports: Sequence[RunReport],
    overall_passed: bool,
) -> str:
    lines: List[str] = [
        "# Verification Report",
        f"*Generated: {dt.datetime.now(dt.timezone.utc).isoformat()}*",
        "",
        f"- Input directory: `{input_dir}`",
        f"- Mode: {mode}",
        f"- Tolerance: {tolerance}",
        "",
        f"## Overall Status: {'PASS' if overall_passed else 'FAIL'}",
        "",
    ]
    for report in run_reports:
        heading = os.path.relpath(report.label, input_dir)
        lines.append(f"### Run: {heading}")
        lines.extend(_render_table(report.results))
        lines.append("")
    return "\n".join(lines)


def write_report(input_dir: str, content: str) -> str:
    os.makedirs(input_dir, exist_ok=True)
    report_path = os.path.join(input_dir, REPORT_FILENAME)
    with open(report_path, "w", encoding="utf-8") as handle:
        handle.write(content)
    return report_path


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if args.mode == "sweep":
        run_reports, overall_passed = verify_sweep(args.input, args.tolerance, args.fail_fast)
    else:
        run_report = verify_single_run(args.input, args.tolerance, args.fail_fast)
        run_reports = [run_report]
        overall_passed = run_report.passed

    report_content = build_report(args.input, args.mode, args.tolerance, run_reports, overall_passed)
    report_path = write_report(args.input, report_content)
    print(f"Verification report written to {report_path}")
    return 0 if overall_passed else 1


if __name__ == "__main__":
    sys.exit(main())
