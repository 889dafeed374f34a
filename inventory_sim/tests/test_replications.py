import logging
import math
import os
import tempfile
import unittest
from unittest import mock

import pandas as pd

from inventory_sim import config, simulate
from inventory_sim.plots import BACKLOG_PNG, DAILY_COST_PNG, plot_batch
from inventory_sim.stats import (
    DAILY_LOG_FILENAME,
    REPLICATIONS_FILENAME,
    STATUS_FAILED,
    SUMMARY_FILENAME,
)


def _small_options(**overrides):
    return config.engine_options(**overrides)


class ReplicationBatchTest(unittest.TestCase):
    """Short batches of independent replications driven the way the CLI drives them."""

    def test_batch_statistics(self) -> None:
        stats = simulate.run_replications(4, 40.0, seed=123, options=_small_options())
        self.assertEqual(len(stats.results), 4)
        self.assertEqual(len(stats.successful), 4)

        costs = stats.mean_daily_costs()
        self.assertEqual(len(costs), 4)
        self.assertTrue((costs > 0).all())
        self.assertEqual(len(set(costs.round(9))), 4, "Replications should draw independent streams")

        for result in stats.results:
            self.assertEqual(result.days_simulated, len(result.daily_log))
            self.assertAlmostEqual(result.mean_daily_cost, result.running_cost / result.days_simulated)
            self.assertGreater(result.events_processed, result.days_simulated)

        metrics = stats.summary_metrics()
        self.assertEqual(metrics["replications_run"], 4)
        self.assertEqual(metrics["replications_failed"], 0)
        self.assertAlmostEqual(metrics["mean_daily_cost"], float(costs.mean()))
        self.assertLessEqual(metrics["mean_daily_cost_ci_low"], metrics["mean_daily_cost"])
        self.assertGreaterEqual(metrics["mean_daily_cost_ci_high"], metrics["mean_daily_cost"])
        self.assertTrue((stats.backlog_amounts() > 0).all())

    def test_cost_per_horizon_day_divides_by_the_horizon(self) -> None:
        stats = simulate.run_replications(2, 40.0, seed=8, options=_small_options())
        for result in stats.successful:
            self.assertAlmostEqual(result.mean_cost_per_horizon_day, result.running_cost / 40.0)
            # Days last 0.99, so at least as many days are logged as the horizon spans.
            self.assertGreaterEqual(result.mean_cost_per_horizon_day, result.mean_daily_cost)
        metrics = stats.summary_metrics()
        self.assertAlmostEqual(
            metrics["mean_cost_per_horizon_day"],
            sum(r.mean_cost_per_horizon_day for r in stats.successful) / len(stats.successful),
        )

    def test_same_seed_reproduces_the_batch(self) -> None:
        first = simulate.run_replications(2, 25.0, seed=9, options=_small_options())
        second = simulate.run_replications(2, 25.0, seed=9, options=_small_options())
        self.assertEqual(list(first.mean_daily_costs()), list(second.mean_daily_costs()))

    def test_diverging_replications_are_recorded_and_excluded(self) -> None:
        options = _small_options(max_backlog_count=0, reorder_point=-1)
        with self.assertLogs(level="ERROR"):
            stats = simulate.run_replications(3, 20.0, seed=5, options=options)
        self.assertEqual(len(stats.failed), 3)
        self.assertEqual(stats.successful, [])
        for result in stats.failed:
            self.assertEqual(result.status, STATUS_FAILED)
            self.assertIn("exceeds threshold", result.error)
            self.assertTrue(math.isnan(result.running_cost))
        metrics = stats.summary_metrics()
        self.assertEqual(metrics["replications_failed"], 3)
        self.assertTrue(math.isnan(metrics["mean_daily_cost"]))

    def test_outputs_are_written(self) -> None:
        stats = simulate.run_replications(3, 30.0, seed=77, options=_small_options())
        with tempfile.TemporaryDirectory() as tmpdir:
            stats.final_report(tmpdir)
            written = plot_batch(stats, tmpdir)
            for name in (REPLICATIONS_FILENAME, SUMMARY_FILENAME, DAILY_LOG_FILENAME, DAILY_COST_PNG, BACKLOG_PNG):
                self.assertTrue(os.path.isfile(os.path.join(tmpdir, name)), f"{name} missing")
            self.assertEqual(set(written), {"daily_cost", "backlog"})

            replications = pd.read_csv(os.path.join(tmpdir, REPLICATIONS_FILENAME))
            self.assertEqual(list(replications["replication"]), [1, 2, 3])
            daily_log = pd.read_csv(os.path.join(tmpdir, DAILY_LOG_FILENAME))
            self.assertEqual(sorted(daily_log["replication"].unique()), [1, 2, 3])
            summary = pd.read_csv(os.path.join(tmpdir, SUMMARY_FILENAME))
            self.assertEqual(list(summary.columns), ["metric", "value", "units", "description"])


class SimulateCliTest(unittest.TestCase):
    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in list(root.handlers):
            if isinstance(handler, logging.FileHandler):
                root.removeHandler(handler)
                handler.close()

    def test_main_runs_a_small_batch(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            stats = simulate.main(
                [
                    "--replications",
                    "2",
                    "--horizon",
                    "15",
                    "--seed",
                    "3",
                    "--output-dir",
                    tmpdir,
                    "--reorder-point",
                    "60",
                    "--no-plots",
                ]
            )
            self.assertEqual(len(stats.successful), 2)
            self.assertEqual(stats.policy["reorder_point"], 60.0)
            self.assertTrue(os.path.isfile(os.path.join(tmpdir, SUMMARY_FILENAME)))
            self.assertTrue(os.path.isfile(os.path.join(tmpdir, config.LOG_FILE)))

    def _seed_used_by_main(self, extra_args) -> int:
        with tempfile.TemporaryDirectory() as tmpdir:
            with mock.patch.object(simulate, "run_replications", wraps=simulate.run_replications) as runner:
                simulate.main(
                    ["--replications", "1", "--horizon", "5", "--output-dir", tmpdir, "--no-plots", *extra_args]
                )
        runner.assert_called_once()
        return runner.call_args[0][2]

    def test_seed_flag_wins_over_environment(self) -> None:
        with mock.patch.dict(os.environ, {config.SEED_OVERRIDE_ENV_VAR: "999"}):
            self.assertEqual(self._seed_used_by_main(["--seed", "3"]), 3)

    def test_environment_seed_used_without_flag(self) -> None:
        with mock.patch.dict(os.environ, {config.SEED_OVERRIDE_ENV_VAR: "999"}):
            self.assertEqual(self._seed_used_by_main([]), 999)

    def test_config_seed_used_without_flag_or_environment(self) -> None:
        with mock.patch.dict(os.environ, {}):
            os.environ.pop(config.SEED_OVERRIDE_ENV_VAR, None)
            self.assertEqual(self._seed_used_by_main([]), config.GLOBAL_RANDOM_SEED)

    def test_non_integer_environment_seed_falls_back_to_config(self) -> None:
        with mock.patch.dict(os.environ, {config.SEED_OVERRIDE_ENV_VAR: "abc"}):
            with self.assertLogs(level="WARNING"):
                seed, source = simulate.resolve_seed()
        self.assertEqual(seed, config.GLOBAL_RANDOM_SEED)
        self.assertIsNone(source)


if __name__ == "__main__":
    unittest.main()
