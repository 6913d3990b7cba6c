"""CSV output: an append-only live log and a full-history export"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Union

from feepulse.models import HistoryPoint, MarketSnapshot

logger = logging.getLogger(__name__)

TIME_FORMAT = '%Y-%m-%d %H:%M:%S'
LIVE_HEADER = ['timestamp', 'fastest_fee', 'half_hour_fee', 'hour_fee',
               'blocks', 'mempool_mb', 'btc_usd', 'btc_eur']
HISTORY_HEADER = ['timestamp', 'fastest_fee', 'half_hour_fee', 'hour_fee']


def format_timestamp(timestamp: float) -> str:
    """Local time, second resolution"""
    return datetime.fromtimestamp(timestamp).strftime(TIME_FORMAT)


def live_row(snapshot: MarketSnapshot) -> list:
    fees = snapshot.fees
    mempool_mb = snapshot.mempool.size_mb if snapshot.mempool else 0.0
    usd = snapshot.price.usd if snapshot.price else 0.0
    eur = snapshot.price.eur if snapshot.price else 0.0
    return [
        format_timestamp(fees.timestamp),
        f"{fees.fastest:.1f}",
        f"{fees.half_hour:.1f}",
        f"{fees.hour:.1f}",
        snapshot.block_height or 0,
        f"{mempool_mb:.2f}",
        f"{usd:.2f}",
        f"{eur:.2f}",
    ]


def append_live_row(path: Union[str, Path], snapshot: MarketSnapshot) -> bool:
    """Append one reading, writing the header first if the file is new or empty"""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'a', newline='', encoding='utf-8') as csvfile:
            writer = csv.writer(csvfile)
            if csvfile.tell() == 0:
                writer.writerow(LIVE_HEADER)
            writer.writerow(live_row(snapshot))
        return True
    except OSError as e:
        logger.warning(f"Failed to append to CSV log {path}: {e}")
        return False


def export_history(path: Union[str, Path], points: Iterable[HistoryPoint]) -> int:
    """Overwrite path with the given history points; returns the row count.

    Raises OSError if the file cannot be written.
    """
    path = Path(path)
    rows = 0
    with open(path, 'w', newline='', encoding='utf-8') as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(HISTORY_HEADER)
        for point in points:
            writer.writerow([
                format_timestamp(point.timestamp),
                f"{point.fastest:.1f}",
                f"{point.half_hour:.1f}",
                f"{point.hour:.1f}",
            ])
            rows += 1
    logger.info(f"Exported {rows} history points to {path}")
    return rows


def default_export_name(now: datetime = None) -> str:
    now = now or datetime.now()
    return now.strftime('feepulse_export_%Y%m%d_%H%M%S.csv')
