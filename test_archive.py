import tempfile
import unittest
from pathlib import Path

from feepulse.archive import FeeArchive
from feepulse.models import FeeSnapshot


class TestFeeArchive(unittest.TestCase):

    def setUp(self):
        self.archive = FeeArchive(':memory:')
        self.assertTrue(self.archive.open())

    def tearDown(self):
        self.archive.close()

    def test_recent_returns_newest_oldest_first(self):
        for ts in (30, 10, 20, 40):
            self.archive.record(FeeSnapshot(ts, ts / 2, ts / 4, timestamp=float(ts)))

        points = self.archive.recent(3)
        self.assertEqual([p.timestamp for p in points], [20.0, 30.0, 40.0])
        self.assertEqual(points[-1].fastest, 40.0)
        self.assertEqual(points[-1].hour, 10.0)
        self.assertEqual(self.archive.count(), 4)

    def test_recent_with_fewer_rows_than_limit(self):
        self.archive.record(FeeSnapshot(5, 4, 3, timestamp=1.0))
        self.assertEqual(len(self.archive.recent(72)), 1)
        self.assertEqual(self.archive.recent(0), [])

    def test_closed_archive_is_inert(self):
        self.archive.close()
        self.assertFalse(self.archive.is_open)
        self.assertFalse(self.archive.record(FeeSnapshot(1, 1, 1)))
        self.assertEqual(self.archive.recent(5), [])
        self.assertEqual(self.archive.count(), 0)

    def test_file_archive_persists(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / 'data' / 'fees.db'
            archive = FeeArchive(path)
            self.assertTrue(archive.open())
            archive.record(FeeSnapshot(9, 6, 3, timestamp=100.0))
            archive.close()

            reopened = FeeArchive(path)
            reopened.open()
            self.assertEqual([p.fastest for p in reopened.recent(10)], [9.0])
            reopened.close()

    def test_open_failure(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            blocker = Path(temp_dir) / 'blocker'
            blocker.write_text('x', encoding='utf-8')
            archive = FeeArchive(blocker / 'fees.db')
            self.assertFalse(archive.open())
            self.assertFalse(archive.is_open)


if __name__ == '__main__':
    unittest.main()
