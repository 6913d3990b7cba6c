"""Command line entry point"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from feepulse import APP_NAME, __version__
from feepulse.alerts import AlertEvaluator, AlertThresholds
from feepulse.archive import FeeArchive
from feepulse.cache import CacheStore
from feepulse.context import MonitorContext
from feepulse.export import export_history
from feepulse.fetcher import Fetcher
from feepulse.log import DEFAULT_DATA_DIR, setup_logging
from feepulse.models import UpdateState
from feepulse.orchestrator import UpdateOrchestrator
from feepulse.settings import MIN_REFRESH_INTERVAL, ensure_data_dir, load_settings, settings_path
from feepulse.terminal import render_summary

logger = logging.getLogger(__name__)

CACHE_FILE = 'cache.json'
ARCHIVE_FILE = 'fees.db'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='feepulse',
        description=f'{APP_NAME} v{__version__}: Bitcoin fee, mempool and price tracker',
    )
    parser.add_argument('--once', action='store_true',
                        help='Fetch once, print a summary and exit')
    parser.add_argument('--interval', type=int, metavar='SECONDS',
                        help=f'Refresh interval in seconds (minimum {MIN_REFRESH_INTERVAL})')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging verbosity')
    parser.add_argument('--no-tray', action='store_true',
                        help='Do not create a system tray icon')
    parser.add_argument('--export-history', metavar='PATH',
                        help='Write the archived fee history to a CSV file and exit')
    parser.add_argument('--data-dir', type=Path, default=DEFAULT_DATA_DIR,
                        help='Directory for settings, cache, archive and log')
    parser.add_argument('--version', action='version', version=f'{APP_NAME} v{__version__}')
    return parser


def create_monitor(settings: Dict[str, Any], data_dir: Path) -> UpdateOrchestrator:
    """Wire the context, cache, archive and fetcher into an orchestrator"""
    cache = CacheStore(data_dir / CACHE_FILE, freshness_seconds=settings['cache_freshness'])
    context = MonitorContext(history_capacity=settings['history_capacity'], cache=cache)

    archive = FeeArchive(data_dir / ARCHIVE_FILE)
    if not archive.open():
        archive = None

    orchestrator = UpdateOrchestrator(
        context,
        Fetcher(),
        refresh_interval=settings['refresh_interval'],
        alert_evaluator=AlertEvaluator(AlertThresholds.from_settings(settings['alert_config'])),
        archive=archive,
        csv_log_path=settings['csv_log_path'],
    )
    orchestrator.select_source(settings['data_source'])
    orchestrator.seed_history()
    return orchestrator


def close_monitor(orchestrator: UpdateOrchestrator) -> None:
    orchestrator.shutdown()
    if orchestrator.archive is not None:
        orchestrator.archive.close()
    orchestrator.fetcher.close()


def run_once(orchestrator: UpdateOrchestrator) -> int:
    outcome = orchestrator.run_update()
    snapshot = orchestrator.context.current
    if outcome is not UpdateState.SUCCESS or snapshot is None:
        print("Error: could not fetch fee data from any provider", file=sys.stderr)
        return 1
    print(render_summary(snapshot))
    return 0


def run_export(orchestrator: UpdateOrchestrator, path: str) -> int:
    points = orchestrator.context.history_points()
    if not points:
        print("No fee history to export", file=sys.stderr)
        return 1
    try:
        rows = export_history(path, points)
    except OSError as e:
        logger.error(f"History export failed: {e}")
        print(f"Error: could not write {path}: {e}", file=sys.stderr)
        return 1
    print(f"Exported {rows} points to {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    data_dir = Path(args.data_dir)

    setup_logging(data_dir, args.log_level)
    ensure_data_dir(data_dir)

    settings = load_settings(settings_path(data_dir))
    if args.interval is not None:
        settings['refresh_interval'] = max(MIN_REFRESH_INTERVAL, args.interval)

    orchestrator = create_monitor(settings, data_dir)
    try:
        if args.export_history:
            return run_export(orchestrator, args.export_history)
        if args.once:
            return run_once(orchestrator)

        from feepulse.app import FeePulseApp

        logger.info(f"Starting {APP_NAME} v{__version__}...")
        app = FeePulseApp(orchestrator, settings, data_dir, use_tray=not args.no_tray)
        return 0 if app.run() else 1
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        return 0
    finally:
        close_monitor(orchestrator)
