import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from feepulse.archive import FeeArchive
from feepulse.cli import build_parser, main
from feepulse.errors import NetworkError
from feepulse.models import FeeSnapshot, MarketSnapshot, PriceSnapshot

NOW = 1_700_000_000.0


@patch('feepulse.cli.setup_logging')
@patch('feepulse.cli.Fetcher')
class TestMain(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.data_dir = self.temp_dir.name

    def tearDown(self):
        self.temp_dir.cleanup()

    def run_main(self, *argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = main(['--data-dir', self.data_dir, *argv])
        return code, stdout.getvalue(), stderr.getvalue()

    def test_once_prints_summary(self, mock_fetcher, mock_logging):
        mock_fetcher.return_value.fetch.return_value = MarketSnapshot(
            fees=FeeSnapshot(12, 8, 5, timestamp=NOW),
            price=PriceSnapshot(usd=60000, eur=56000),
            source='mempool.space',
            timestamp=NOW,
        )

        code, out, _ = self.run_main('--once')

        self.assertEqual(code, 0)
        self.assertIn('BITCOIN TRANSACTION FEES', out)
        self.assertIn('$1.50 USD', out)
        self.assertTrue((Path(self.data_dir) / 'cache.json').exists())
        mock_fetcher.return_value.close.assert_called_once()

    def test_once_reports_failure(self, mock_fetcher, mock_logging):
        mock_fetcher.return_value.fetch.side_effect = NetworkError('offline')

        code, out, err = self.run_main('--once')

        self.assertEqual(code, 1)
        self.assertEqual(out, '')
        self.assertIn('could not fetch', err)

    def test_export_history(self, mock_fetcher, mock_logging):
        archive = FeeArchive(Path(self.data_dir) / 'fees.db')
        archive.open()
        archive.record(FeeSnapshot(7, 5, 3, timestamp=NOW))
        archive.record(FeeSnapshot(8, 5, 3, timestamp=NOW + 60))
        archive.close()
        target = Path(self.data_dir) / 'out.csv'

        code, out, _ = self.run_main('--export-history', str(target))

        self.assertEqual(code, 0)
        self.assertIn('Exported 2 points', out)
        self.assertEqual(len(target.read_text(encoding='utf-8').splitlines()), 3)
        mock_fetcher.return_value.fetch.assert_not_called()

    def test_export_without_history(self, mock_fetcher, mock_logging):
        code, _, err = self.run_main('--export-history', str(Path(self.data_dir) / 'out.csv'))
        self.assertEqual(code, 1)
        self.assertIn('No fee history', err)


class TestParser(unittest.TestCase):

    def test_defaults(self):
        args = build_parser().parse_args([])
        self.assertFalse(args.once)
        self.assertIsNone(args.interval)
        self.assertEqual(args.log_level, 'INFO')

    def test_version_exits(self):
        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                build_parser().parse_args(['--version'])
        self.assertEqual(ctx.exception.code, 0)


if __name__ == '__main__':
    unittest.main()
