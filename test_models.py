import unittest

from feepulse.models import (
    FeeSnapshot,
    HistoryPoint,
    MarketSnapshot,
    MempoolSnapshot,
    PriceSnapshot,
    estimate_tx_cost,
)


class TestModels(unittest.TestCase):

    def test_mempool_derived_values(self):
        mempool = MempoolSnapshot(tx_count=1000, size_bytes=4_000_000, total_fee_btc=0.5)
        self.assertAlmostEqual(mempool.avg_fee_sat_per_vbyte, 12.5)
        self.assertEqual(mempool.size_mb, 4.0)
        self.assertEqual(MempoolSnapshot().avg_fee_sat_per_vbyte, 0.0)

    def test_history_point_from_fees(self):
        point = HistoryPoint.from_fees(FeeSnapshot(9, 6, 3, economy=2, timestamp=42.0))
        self.assertEqual(point, HistoryPoint(42.0, 9, 6, 3))

    def test_from_dict_rejects_missing_fee(self):
        with self.assertRaises(KeyError):
            MarketSnapshot.from_dict({'fastestFee': 1, 'halfHourFee': 1, 'timestamp': 1})

    def test_from_dict_optional_fields(self):
        snapshot = MarketSnapshot.from_dict({
            'fastestFee': 3, 'halfHourFee': 2, 'hourFee': 1, 'timestamp': 50,
            'btc_price_usd': 61000, 'mempool_tx_count': 12, 'block_height': None,
        })
        self.assertEqual(snapshot.fees.timestamp, 50.0)
        self.assertEqual(snapshot.price, PriceSnapshot(usd=61000.0, timestamp=50.0))
        self.assertEqual(snapshot.mempool, MempoolSnapshot(tx_count=12))
        self.assertIsNone(snapshot.block_height)
        self.assertEqual(snapshot.source, '')


class TestTransactionCost(unittest.TestCase):

    def test_cost_uses_average_of_fast_rates(self):
        fees = FeeSnapshot(12, 8, 5)
        cost = estimate_tx_cost(fees, PriceSnapshot(usd=60000, eur=50000))
        self.assertEqual(cost['sat_per_vbyte'], 10.0)
        self.assertAlmostEqual(cost['btc'], 0.000025)
        self.assertAlmostEqual(cost['usd'], 1.5)
        self.assertAlmostEqual(cost['eur'], 1.25)

    def test_cost_without_price(self):
        cost = estimate_tx_cost(FeeSnapshot(20, 10, 5), None, vsize=100)
        self.assertAlmostEqual(cost['btc'], 0.000015)
        self.assertEqual((cost['usd'], cost['eur']), (0.0, 0.0))


if __name__ == '__main__':
    unittest.main()
