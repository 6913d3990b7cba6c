import unittest

from feepulse.history import FeeHistory
from feepulse.models import HistoryPoint


def point(ts):
    return HistoryPoint(timestamp=float(ts), fastest=ts + 2.0, half_hour=ts + 1.0, hour=float(ts))


class TestFeeHistory(unittest.TestCase):

    def test_partial_fill_iterates_in_insertion_order(self):
        """Test that fewer pushes than capacity keeps every point in order."""
        history = FeeHistory(capacity=5)
        for ts in range(3):
            history.push(point(ts))

        self.assertEqual(history.size(), 3)
        self.assertEqual(len(history), 3)
        self.assertFalse(history.is_full())
        self.assertEqual([p.timestamp for p in history.iterate()], [0.0, 1.0, 2.0])
        self.assertEqual(history.latest().timestamp, 2.0)

    def test_exact_capacity(self):
        history = FeeHistory(capacity=4)
        for ts in range(4):
            history.push(point(ts))

        self.assertTrue(history.is_full())
        self.assertEqual([p.timestamp for p in history], [0.0, 1.0, 2.0, 3.0])
        self.assertEqual(history.latest().timestamp, 3.0)

    def test_overflow_keeps_newest_points_chronologically(self):
        """Test that pushes past capacity overwrite the oldest points."""
        history = FeeHistory(capacity=5)
        for ts in range(8):
            history.push(point(ts))

        self.assertEqual(history.size(), 5)
        self.assertEqual([p.timestamp for p in history.iterate()], [3.0, 4.0, 5.0, 6.0, 7.0])
        self.assertEqual(history.latest().timestamp, 7.0)

    def test_many_wraps(self):
        history = FeeHistory(capacity=3)
        for ts in range(100):
            history.push(point(ts))

        self.assertEqual([p.timestamp for p in history.iterate()], [97.0, 98.0, 99.0])

    def test_capacity_one(self):
        history = FeeHistory(capacity=1)
        history.push(point(1))
        history.push(point(2))

        self.assertEqual(history.size(), 1)
        self.assertEqual(history.iterate()[0].timestamp, 2.0)
        self.assertEqual(history.latest().timestamp, 2.0)

    def test_empty_history(self):
        history = FeeHistory()
        self.assertEqual(history.capacity, 72)
        self.assertEqual(history.size(), 0)
        self.assertEqual(history.iterate(), [])
        self.assertIsNone(history.latest())

    def test_clear_resets_buffer(self):
        history = FeeHistory(capacity=3)
        for ts in range(5):
            history.push(point(ts))
        history.clear()

        self.assertEqual(history.size(), 0)
        self.assertIsNone(history.latest())
        history.push(point(10))
        self.assertEqual([p.timestamp for p in history], [10.0])

    def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            FeeHistory(capacity=0)


if __name__ == '__main__':
    unittest.main()
