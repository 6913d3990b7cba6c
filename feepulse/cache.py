"""Single-slot JSON cache of the latest market snapshot"""

import json
import logging
import time
from pathlib import Path
from typing import Callable, Optional, Union

from feepulse.errors import CacheError
from feepulse.models import MarketSnapshot

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_SECONDS = 300.0


class CacheStore:
    """Persists one MarketSnapshot to disk.

    Reads fail soft: a missing, truncated or incomplete file is reported as
    no cache, and the caller goes to the network instead. A stale entry is
    kept on disk; it is simply not trusted.
    """

    def __init__(self, path: Union[str, Path],
                 freshness_seconds: float = DEFAULT_FRESHNESS_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.path = Path(path)
        self.freshness_seconds = freshness_seconds
        self.clock = clock

    def save(self, snapshot: MarketSnapshot) -> bool:
        """Write the snapshot atomically; returns False on I/O failure"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.path.with_suffix('.tmp')
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(snapshot.to_dict(), f, indent=2)
            temp_path.replace(self.path)
            logger.debug(f"Cached snapshot from {snapshot.source or 'unknown source'}")
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not write cache {self.path}: {e}")
            return False

    def _read(self) -> MarketSnapshot:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise CacheError(f"No cache file at {self.path}") from e
        except (OSError, UnicodeDecodeError, ValueError) as e:
            raise CacheError(f"Unreadable cache {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise CacheError(f"Cache {self.path} does not hold a JSON object")

        try:
            return MarketSnapshot.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise CacheError(f"Incomplete cache entry in {self.path}: {e}") from e

    def load(self) -> Optional[MarketSnapshot]:
        try:
            return self._read()
        except CacheError as e:
            logger.debug(f"Cache unavailable: {e}")
            return None

    def age(self, snapshot: MarketSnapshot, now: Optional[float] = None) -> float:
        now = self.clock() if now is None else now
        return now - snapshot.timestamp

    def is_fresh(self, snapshot: MarketSnapshot, now: Optional[float] = None) -> bool:
        return self.age(snapshot, now) < self.freshness_seconds

    def load_fresh(self, now: Optional[float] = None) -> Optional[MarketSnapshot]:
        """Return the cached snapshot only if it is younger than the freshness threshold"""
        snapshot = self.load()
        if snapshot is None:
            return None
        if not self.is_fresh(snapshot, now):
            logger.debug(f"Cached snapshot is stale ({self.age(snapshot, now):.0f}s old)")
            return None
        return snapshot
