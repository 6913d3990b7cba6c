import unittest

from feepulse.alerts import (
    LOW_FEE,
    MEMPOOL_CONGESTION,
    PRICE_CHANGE,
    AlertEvaluator,
    AlertThresholds,
    default_alert_config,
)
from feepulse.models import FeeSnapshot, MarketSnapshot, MempoolSnapshot, PriceSnapshot


def snapshot(fastest=20.0, change=None, tx_count=None):
    price = PriceSnapshot(usd=60000, eur=55000, change_24h=change) if change is not None else None
    mempool = MempoolSnapshot(tx_count=tx_count) if tx_count is not None else None
    return MarketSnapshot(fees=FeeSnapshot(fastest, 8, 5), price=price, mempool=mempool)


class TestAlertEvaluator(unittest.TestCase):

    def setUp(self):
        self.evaluator = AlertEvaluator()

    def test_missing_thresholds_use_defaults(self):
        self.assertEqual(self.evaluator.thresholds, AlertThresholds())
        self.assertEqual(AlertEvaluator(None).thresholds, AlertThresholds())

    def test_quiet_market_raises_nothing(self):
        self.assertEqual(self.evaluator.evaluate(snapshot(change=1.0, tx_count=1000)), [])

    def test_low_fee(self):
        events = self.evaluator.evaluate(snapshot(fastest=4.5))
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].kind, LOW_FEE)
        self.assertEqual(events[0].title, "Low fees!")
        self.assertIn("4.5 sat/vB", events[0].message)
        self.assertEqual(events[0].icon_hint, "dialog-information")

    def test_low_fee_threshold_is_strict(self):
        self.assertEqual(self.evaluator.evaluate(snapshot(fastest=10.0)), [])

    def test_price_move_in_both_directions(self):
        """Test that the absolute 24h change is compared and the direction reported."""
        up = self.evaluator.evaluate(snapshot(change=3.5))
        down = self.evaluator.evaluate(snapshot(change=-3.5))

        self.assertEqual([e.kind for e in up], [PRICE_CHANGE])
        self.assertIn("up 3.5%", up[0].message)
        self.assertIn("down 3.5%", down[0].message)
        self.assertEqual(down[0].value, -3.5)
        self.assertEqual(self.evaluator.evaluate(snapshot(change=2.0)), [])

    def test_mempool_congestion(self):
        events = self.evaluator.evaluate(snapshot(tx_count=75000))
        self.assertEqual([e.kind for e in events], [MEMPOOL_CONGESTION])
        self.assertIn("75,000", events[0].message)
        self.assertEqual(events[0].icon_hint, "dialog-warning")

    def test_all_alerts_in_order(self):
        events = self.evaluator.evaluate(snapshot(fastest=2, change=-10, tx_count=100000))
        self.assertEqual([e.kind for e in events], [LOW_FEE, PRICE_CHANGE, MEMPOOL_CONGESTION])

    def test_alerts_repeat_while_condition_holds(self):
        low = snapshot(fastest=3)
        self.assertEqual(len(self.evaluator.evaluate(low)), 1)
        self.assertEqual(len(self.evaluator.evaluate(low)), 1)

    def test_disabled_alerts(self):
        evaluator = AlertEvaluator(AlertThresholds(low_fee_enabled=False, price_change_enabled=False,
                                                   mempool_enabled=False))
        self.assertEqual(evaluator.evaluate(snapshot(fastest=1, change=50, tx_count=10**6)), [])


class TestAlertThresholds(unittest.TestCase):

    def test_defaults(self):
        thresholds = AlertThresholds.from_settings(default_alert_config())
        self.assertEqual(thresholds, AlertThresholds())

    def test_partial_config_merges_with_defaults(self):
        thresholds = AlertThresholds.from_settings({
            LOW_FEE: {'threshold': 3},
            MEMPOOL_CONGESTION: {'enabled': False},
        })
        self.assertEqual(thresholds.low_fee, 3.0)
        self.assertTrue(thresholds.low_fee_enabled)
        self.assertFalse(thresholds.mempool_enabled)
        self.assertEqual(thresholds.mempool_tx_count, 50000)
        self.assertEqual(thresholds.price_change_pct, 2.0)


if __name__ == '__main__':
    unittest.main()
