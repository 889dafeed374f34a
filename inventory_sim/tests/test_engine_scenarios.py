import math
import unittest

from inventory_sim.engine import InventoryEngine
from inventory_sim.events import order_received
from inventory_sim.exceptions import (
    BacklogDivergenceError,
    EmptyEventQueueError,
    TemporalOrderingError,
)


def _counts(*values):
    """Daily order-count stub: yields ``values`` then zero forever."""
    remaining = iter(values)
    return lambda: next(remaining, 0)


def _constant(value):
    return lambda: value


class ZeroDemandScenarioTest(unittest.TestCase):
    """No orders ever arrive, so only holding cost accrues."""

    def setUp(self) -> None:
        self.engine = InventoryEngine(
            on_hand=200,
            reorder_point=50,
            request_batch_size=200,
            request_lead_time=2,
            request_cost_per_batch=25.0,
            request_cost_per_unit=3.0,
            holding_cost_per_unit_per_day=0.01,
            shortage_cost_per_unit_per_day=0.5,
            daily_order_count_distribution=_constant(0),
            outgoing_size_distribution=_constant(10.0),
        )

    def test_five_days_of_holding_cost(self) -> None:
        # Days end at 0.99, 1.98, 2.97, 3.96 and 4.95.
        self.engine.advance_until(4.0)
        log = self.engine.log
        self.assertEqual(len(log), 5)
        self.assertAlmostEqual(self.engine.running_total_cost, 5 * 200 * 0.01)
        self.assertEqual(self.engine.on_hand, 200)
        self.assertFalse(self.engine.request_pending)
        self.assertEqual(self.engine.backlog, ())
        for row in log:
            self.assertEqual(row.backlog, 0)
            self.assertEqual(row.running_per_batch_cost, 0)
            self.assertEqual(row.running_per_unit_cost, 0)
            self.assertEqual(row.running_shortage_cost, 0)

    def test_advance_days_matches_log_length(self) -> None:
        self.engine.advance_days(5)
        self.assertEqual(len(self.engine.log), 5)
        self.engine.advance_days(2)
        self.assertEqual(len(self.engine.log), 7)
        self.assertAlmostEqual(self.engine.log[-1].time, 7 * 0.99)

    def test_clock_overshoots_horizon_by_less_than_a_day(self) -> None:
        self.engine.advance_until(10.0)
        self.assertGreater(self.engine.time, 10.0)
        self.assertLess(self.engine.time, 11.0)

    def test_fraction_backlogged_is_undefined_without_fulfilled_orders(self) -> None:
        self.engine.advance_days(1)
        with self.assertLogs(level="WARNING"):
            self.assertTrue(math.isnan(self.engine.fraction_of_orders_backlogged()))
        self.assertEqual(self.engine.fulfillment_delay_times(), [])


class SingleLargeOrderScenarioTest(unittest.TestCase):
    """One order larger than stock waits for the shipment it triggers."""

    def setUp(self) -> None:
        self.engine = InventoryEngine(
            on_hand=10,
            # The reorder rule fires at on_hand <= reorder_point, so stock of 10 must sit on it.
            reorder_point=10,
            request_batch_size=100,
            request_lead_time=1,
            request_cost_per_batch=25.0,
            request_cost_per_unit=3.0,
            holding_cost_per_unit_per_day=0.01,
            shortage_cost_per_unit_per_day=0.5,
            daily_order_count_distribution=_counts(1),
            outgoing_size_distribution=_constant(50.0),
        )

    def test_backlogged_order_is_filled_when_shipment_arrives(self) -> None:
        self.engine.advance_days(2)
        first_day, second_day = self.engine.log

        self.assertEqual(first_day.backlog, 50.0)
        self.assertEqual(first_day.on_hand, 10.0)
        self.assertAlmostEqual(first_day.running_shortage_cost, 50.0 * 0.5)
        self.assertEqual(second_day.backlog, 0.0)
        self.assertEqual(second_day.on_hand, 60.0)

        (order,) = self.engine.fulfilled
        self.assertEqual(order.amount, 50.0)
        self.assertEqual(order.time, 1.0)
        self.assertAlmostEqual(order.original_time, 0.5)
        self.assertEqual(self.engine.fraction_of_orders_backlogged(), 1.0)
        self.assertEqual(self.engine.fulfillment_delay_times(), [0.5])

    def test_reorder_is_charged_once(self) -> None:
        self.engine.advance_days(2)
        ledger = self.engine.ledger
        self.assertEqual(ledger.per_batch, 25.0)
        self.assertEqual(ledger.per_unit, 300.0)
        self.assertFalse(self.engine.request_pending)
        self.assertEqual(self.engine.total_received, 100.0)
        self.assertEqual(self.engine.in_transit(), 0.0)

    def test_request_is_pending_until_the_shipment_day(self) -> None:
        self.engine.advance_until(0.98)
        self.assertTrue(self.engine.request_pending)
        self.assertEqual(self.engine.in_transit(), 100.0)
        self.assertEqual(len(self.engine.backlog), 1)
        self.assertEqual(self.engine.total_backlog(), 50.0)


class ContinuousReviewTest(unittest.TestCase):
    def test_repeated_triggers_while_pending_are_no_ops(self) -> None:
        engine = InventoryEngine(
            on_hand=100,
            reorder_point=80,
            request_batch_size=120,
            request_lead_time=3,
            request_cost_per_batch=10.0,
            request_cost_per_unit=1.0,
            daily_order_count_distribution=_constant(3),
            outgoing_size_distribution=_constant(10.0),
        )
        # Stock crosses the reorder point on day 0; the shipment lands at t=3.
        engine.advance_until(2.5)
        self.assertTrue(engine.request_pending)
        self.assertEqual(engine.ledger.per_batch, 10.0)
        self.assertEqual(engine.ledger.per_unit, 120.0)

    def test_order_is_never_partially_filled(self) -> None:
        engine = InventoryEngine(
            on_hand=30,
            reorder_point=0,
            request_batch_size=100,
            request_lead_time=1,
            daily_order_count_distribution=_counts(1),
            outgoing_size_distribution=_constant(31.0),
        )
        engine.advance_days(1)
        self.assertEqual(engine.on_hand, 30)
        self.assertEqual([order.amount for order in engine.backlog], [31.0])
        self.assertFalse(engine.request_pending)

    def test_variable_cost_excludes_per_unit_cost(self) -> None:
        engine = InventoryEngine(
            on_hand=15,
            reorder_point=20,
            request_batch_size=50,
            request_lead_time=2,
            request_cost_per_batch=25.0,
            request_cost_per_unit=3.0,
            holding_cost_per_unit_per_day=0.1,
            daily_order_count_distribution=_counts(1),
            outgoing_size_distribution=_constant(5.0),
        )
        engine.advance_days(1)
        row = engine.log[0]
        self.assertAlmostEqual(row.running_inventory_variable_cost, 25.0 + 10 * 0.1)
        self.assertAlmostEqual(row.running_cost, 25.0 + 150.0 + 10 * 0.1)


class FatalConditionTest(unittest.TestCase):
    def _engine(self, **overrides):
        options = dict(
            on_hand=10,
            reorder_point=20,
            request_batch_size=100,
            request_lead_time=2,
            daily_order_count_distribution=_constant(2),
            outgoing_size_distribution=_constant(50.0),
        )
        options.update(overrides)
        return InventoryEngine(**options)

    def test_backlog_divergence_aborts_at_first_backlogged_day_end(self) -> None:
        engine = self._engine(max_backlog_count=0)
        with self.assertRaises(BacklogDivergenceError) as ctx:
            with self.assertLogs(level="ERROR"):
                engine.advance_until(100)
        self.assertEqual(ctx.exception.backlog_count, 2)
        self.assertEqual(ctx.exception.threshold, 0)
        self.assertAlmostEqual(ctx.exception.time, 0.99)
        self.assertEqual(len(engine.log), 1)

    def test_unbounded_backlog_by_default(self) -> None:
        engine = self._engine(request_batch_size=1)
        engine.advance_days(20)
        self.assertGreater(len(engine.backlog), 20)

    def test_scheduling_into_the_past_is_rejected(self) -> None:
        engine = self._engine()
        engine.advance_until(1.5)
        with self.assertRaises(TemporalOrderingError):
            engine.schedule_event(order_received(engine.time - 0.1, 1.0))

    def test_advancing_with_no_events_is_rejected(self) -> None:
        engine = self._engine()
        engine._events.pop_min()
        with self.assertRaises(EmptyEventQueueError):
            engine.handle_next_event()

    def test_invalid_policy_is_rejected(self) -> None:
        for overrides in (
            {"request_lead_time": 0.5},
            {"request_batch_size": 0},
            {"holding_cost_per_unit_per_day": -1.0},
            {"on_hand": -5},
            {"max_backlog_count": -1},
        ):
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValueError):
                    self._engine(**overrides)


if __name__ == "__main__":
    unittest.main()
