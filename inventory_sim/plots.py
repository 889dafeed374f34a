# v1
# file: inventory_sim/plots.py

"""
Histogram plots for a batch of inventory replications: the per-replication daily
cost and the positive end-of-day backlog amounts. PNGs are written into the
run's output directory.
"""

from __future__ import annotations

import logging
import os
from typing import Dict

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

DAILY_COST_PNG = "daily_cost_histogram.png"
BACKLOG_PNG = "backlog_amount_histogram.png"


def _bins(values: np.ndarray, width: float) -> np.ndarray:
    low = np.floor(values.min() / width) * width
    high = np.ceil(values.max() / width) * width
    if high <= low:
        high = low + width
    return np.arange(low, high + width, width)


def probability_histogram(values, path: str, title: str, xlabel: str, bin_width: float) -> bool:
    """Histogram normalized so bar heights sum to one. Returns False when there is nothing to plot."""
    values = np.asarray(values, dtype=float)
    values = values[~np.isnan(values)]
    if len(values) == 0:
        logging.warning("No values for %s; skipping %s", title, path)
        return False

    fig, ax = plt.subplots(figsize=(7, 4.5))
    ax.hist(values, bins=_bins(values, bin_width), weights=np.full(len(values), 1.0 / len(values)))
    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("Probability")
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    logging.info("Saved %s", path)
    return True


def plot_batch(stats, output_dir: str) -> Dict[str, str]:
    os.makedirs(output_dir, exist_ok=True)
    written = {}
    cost_path = os.path.join(output_dir, DAILY_COST_PNG)
    if probability_histogram(stats.mean_daily_costs(), cost_path, "Daily total cost", "Dollars", bin_width=5.0):
        written["daily_cost"] = cost_path
    backlog_path = os.path.join(output_dir, BACKLOG_PNG)
    if probability_histogram(
        stats.backlog_amounts(), backlog_path, "Daily backlog amount (backlogged days)", "Units", bin_width=10.0
    ):
        written["backlog"] = backlog_path
    return written
