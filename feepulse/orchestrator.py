"""
Update orchestrator: decides when to fetch, from whom, and what to do with the result.

One cycle runs IDLE -> FETCHING -> SUCCESS/FAILED -> IDLE. A fresh cache
entry satisfies a cycle without touching the network; otherwise providers
are tried round-robin starting at the current one. Cycles run on a single
daemon worker thread, and results reach the UI through the context's event
queue.
"""

import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from feepulse.alerts import AlertEvaluator
from feepulse.archive import FeeArchive
from feepulse.context import MonitorContext
from feepulse.errors import FeePulseError
from feepulse.export import append_live_row
from feepulse.fetcher import Fetcher
from feepulse.models import AlertEvent, EventKind, MarketSnapshot, UpdateState
from feepulse.sources import DATA_SOURCES, DataSource

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 60.0
DEFAULT_RETRY_DELAY = 5.0
FAST_RETRY_ATTEMPTS = 3


class UpdateOrchestrator:
    """Runs fetch cycles against the registered providers"""

    def __init__(self, context: MonitorContext, fetcher: Fetcher,
                 sources: Sequence[DataSource] = DATA_SOURCES,
                 refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
                 retry_delay: float = DEFAULT_RETRY_DELAY,
                 alert_evaluator: Optional[AlertEvaluator] = None,
                 archive: Optional[FeeArchive] = None,
                 csv_log_path: Optional[Union[str, Path]] = None,
                 clock: Callable[[], float] = time.time):
        if not sources:
            raise ValueError("At least one data source is required")
        self.context = context
        self.fetcher = fetcher
        self.sources = tuple(sources)
        self.refresh_interval = refresh_interval
        self.retry_delay = retry_delay
        self.alert_evaluator = alert_evaluator
        self.archive = archive
        self.csv_log_path = Path(csv_log_path) if csv_log_path else None
        self.clock = clock

        self._state = UpdateState.IDLE
        self._last_outcome: Optional[UpdateState] = None
        self._current_source = 0
        self._pending_source: Optional[int] = None
        self._consecutive_failures = 0
        self._force_refresh = False

        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> UpdateState:
        return self._state

    @property
    def last_outcome(self) -> Optional[UpdateState]:
        return self._last_outcome

    @property
    def current_source(self) -> int:
        with self.context.lock:
            return self._current_source

    @property
    def current_source_name(self) -> str:
        return self.sources[self.current_source].name

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_update(self, force: bool = False) -> Optional[UpdateState]:
        """Run one cycle on the calling thread.

        Returns the outcome, or None when another cycle was already in
        flight. `force` skips the cache check. Never raises.
        """
        if not self.context.try_begin_update():
            logger.debug("Update already in progress, request dropped")
            return None

        self._state = UpdateState.FETCHING
        try:
            outcome = self._run_cycle(force)
        except Exception as e:
            logger.error(f"Update cycle failed unexpectedly: {e}")
            self._handle_failure(str(e))
            outcome = UpdateState.FAILED
        finally:
            self.context.end_update()

        self._last_outcome = outcome
        self._state = UpdateState.IDLE
        return outcome

    def _run_cycle(self, force: bool) -> UpdateState:
        cache = self.context.cache
        if cache is not None and not force:
            cached = cache.load_fresh(self.clock())
            if cached is not None:
                logger.info(f"Using cached snapshot ({cache.age(cached, self.clock()):.0f}s old)")
                self._handle_success(cached, live=False)
                return UpdateState.SUCCESS

        snapshot = self._fetch_with_fallback()
        if snapshot is None:
            self._handle_failure("all providers failed")
            return UpdateState.FAILED

        self._handle_success(snapshot, live=True)
        return UpdateState.SUCCESS

    def _fetch_with_fallback(self) -> Optional[MarketSnapshot]:
        count = len(self.sources)
        with self.context.lock:
            # a selection made before this cycle started is now in effect
            self._pending_source = None
            start = self._current_source
        for attempt in range(count):
            index = (start + attempt) % count
            source = self.sources[index]
            self.context.post_status(f"Fetching from {source.name}...")
            try:
                snapshot = self.fetcher.fetch(source)
            except FeePulseError as e:
                logger.warning(f"Provider {source.name} failed: {e}")
                continue
            with self.context.lock:
                user_changed = self._pending_source is not None
                if not user_changed:
                    self._current_source = index
            if index != start and not user_changed:
                logger.info(f"Switched data source to {source.name}")
            return snapshot
        return None

    def _clamp_timestamp(self, snapshot: MarketSnapshot) -> None:
        previous = self.context.current
        if previous is None:
            return
        floor = previous.fees.timestamp
        if snapshot.fees.timestamp < floor:
            logger.debug(f"Clock went backwards, clamping timestamp to {floor}")
            snapshot.fees.timestamp = floor
            snapshot.timestamp = max(snapshot.timestamp, floor)

    def _handle_success(self, snapshot: MarketSnapshot, live: bool) -> None:
        if live:
            self._clamp_timestamp(snapshot)

        self.context.apply_snapshot(snapshot)

        if live:
            if self.context.cache is not None:
                self.context.cache.save(snapshot)
            if self.archive is not None:
                self.archive.record(snapshot.fees)
            if self.csv_log_path is not None:
                append_live_row(self.csv_log_path, snapshot)

        alerts: List[AlertEvent] = []
        if self.alert_evaluator is not None:
            alerts = self.alert_evaluator.evaluate(snapshot)

        self.context.post(EventKind.FEE, snapshot.fees)
        if snapshot.price is not None:
            self.context.post(EventKind.PRICE, snapshot.price)
        if snapshot.mempool is not None:
            self.context.post(EventKind.MEMPOOL, snapshot.mempool)
        for alert in alerts:
            logger.info(f"Alert: {alert.title} - {alert.message}")
            self.context.post(EventKind.ALERT, alert)

        stamp = datetime.fromtimestamp(snapshot.timestamp).strftime('%H:%M:%S')
        origin = snapshot.source or 'cache'
        if live:
            self.context.post_status(f"Updated from {origin} at {stamp}")
        else:
            self.context.post_status(f"Using cached data from {origin} ({stamp})")

        self._consecutive_failures = 0

    def _handle_failure(self, reason: str) -> None:
        self._consecutive_failures += 1
        delay = self.retry_delay_for(self._consecutive_failures)
        logger.error(f"Update failed (attempt {self._consecutive_failures}): {reason}")
        self.context.post_status(f"Update failed: {reason}. Retrying in {delay:.0f}s")

    def retry_delay_for(self, failures: int) -> float:
        """Short retries first, then exponential backoff capped at the refresh interval"""
        if failures <= 0:
            return self.refresh_interval
        if failures <= FAST_RETRY_ATTEMPTS:
            return min(self.retry_delay, self.refresh_interval)
        backoff = self.retry_delay * (2 ** (failures - FAST_RETRY_ATTEMPTS))
        return min(backoff, self.refresh_interval)

    def next_delay(self) -> float:
        if self._last_outcome is UpdateState.FAILED:
            return self.retry_delay_for(self._consecutive_failures)
        return self.refresh_interval

    def request_refresh(self, force: bool = False) -> bool:
        """Wake the worker for an immediate cycle; False if one is already running"""
        if self.context.is_updating:
            logger.debug("Refresh requested while fetching, ignored")
            return False
        self._queue_refresh(force)
        return True

    def _queue_refresh(self, force: bool) -> None:
        if force:
            self._force_refresh = True
        self._wake.set()

    def select_source(self, name: str) -> bool:
        for index, source in enumerate(self.sources):
            if source.name == name:
                self._set_source(index)
                return True
        logger.warning(f"Unknown data source {name}, keeping {self.current_source_name}")
        return False

    def cycle_source(self) -> str:
        """Advance to the next provider and refresh from it.

        A cycle already in flight finishes against its provider; the forced
        refresh is queued for right after it.
        """
        name = self.sources[self._set_source(1, relative=True)].name
        logger.info(f"Data source changed to {name}")
        self.context.post_status(f"Data source: {name}")
        self._queue_refresh(force=True)
        return name

    def _set_source(self, index: int, relative: bool = False) -> int:
        """Record a user selection; an in-flight cycle will not overwrite it"""
        with self.context.lock:
            if relative:
                index += self._current_source
            index %= len(self.sources)
            self._current_source = index
            self._pending_source = index
        return index

    def seed_history(self, archive: Optional[FeeArchive] = None) -> int:
        """Load the newest archived readings into the history buffer"""
        archive = archive or self.archive
        if archive is None:
            return 0
        points = archive.recent(self.context.history.capacity)
        self.context.seed_history(points)
        if points:
            logger.info(f"Loaded {len(points)} history points from archive")
        return len(points)

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._worker_loop, daemon=True,
                                        name="FeeUpdateWorker")
        self._thread.start()
        logger.info("Fee monitoring started")

    def _worker_loop(self) -> None:
        while not self._stop.is_set():
            self._wake.clear()
            force = self._force_refresh
            self._force_refresh = False
            self.run_update(force=force)
            if self._stop.is_set():
                break
            self._wake.wait(self.next_delay())

    def shutdown(self, timeout: float = 6.0) -> bool:
        """Stop the worker; returns False if it did not exit within the timeout"""
        self._stop.set()
        self._wake.set()
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Update worker did not stop within timeout")
            return False
        self._thread = None
        logger.info("Fee monitoring stopped")
        return True
