"""SQLite archive of every live fee reading"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import List, Optional, Union

from feepulse.models import FeeSnapshot, HistoryPoint

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS fee_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp REAL NOT NULL,
    fastest_fee REAL NOT NULL,
    half_hour_fee REAL NOT NULL,
    hour_fee REAL NOT NULL,
    economy_fee REAL NOT NULL,
    minimum_fee REAL NOT NULL
)
"""


class FeeArchive:
    """Append-only fee log used to seed the in-memory history at startup"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    def open(self) -> bool:
        try:
            if str(self.path) != ':memory:':
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
            self._conn.execute(SCHEMA)
            self._conn.commit()
            logger.info(f"Fee archive opened at {self.path}")
            return True
        except (OSError, sqlite3.Error) as e:
            logger.warning(f"Failed to open fee archive {self.path}: {e}")
            self._conn = None
            return False

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def record(self, fees: FeeSnapshot) -> bool:
        if self._conn is None:
            return False
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT INTO fee_history (timestamp, fastest_fee, half_hour_fee, "
                    "hour_fee, economy_fee, minimum_fee) VALUES (?, ?, ?, ?, ?, ?)",
                    (fees.timestamp, fees.fastest, fees.half_hour, fees.hour,
                     fees.economy, fees.minimum),
                )
                self._conn.commit()
            return True
        except sqlite3.Error as e:
            logger.warning(f"Failed to archive fee reading: {e}")
            return False

    def recent(self, limit: int) -> List[HistoryPoint]:
        """Newest `limit` readings, returned oldest first"""
        if self._conn is None or limit <= 0:
            return []
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT timestamp, fastest_fee, half_hour_fee, hour_fee FROM fee_history "
                    "ORDER BY timestamp DESC, id DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        except sqlite3.Error as e:
            logger.warning(f"Failed to read fee archive: {e}")
            return []
        return [HistoryPoint(*row) for row in reversed(rows)]

    def count(self) -> int:
        if self._conn is None:
            return 0
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM fee_history").fetchone()[0]

    def close(self) -> None:
        if self._conn is not None:
            with self._lock:
                self._conn.close()
            self._conn = None
