"""
Shared monitor state and the worker-to-UI event channel.

The context owns everything the background worker and the UI both touch:
the current snapshot, the history buffer and the "update in progress"
flag, all behind one lock. The lock is only held while reading or writing
that state, never across network I/O. Updates for the UI are posted to a
queue and drained on the UI's own scheduling tick.
"""

import logging
import queue
import threading
from typing import Any, List, Optional

from feepulse.cache import CacheStore
from feepulse.history import DEFAULT_CAPACITY, FeeHistory
from feepulse.models import (
    AlertEvent,
    EventKind,
    FeeSnapshot,
    HistoryPoint,
    MarketSnapshot,
    MempoolSnapshot,
    PriceSnapshot,
    UIEvent,
)

logger = logging.getLogger(__name__)


class UICollaborator:
    """Interface the UI implements to receive data updates. Methods are no-ops by default."""

    def on_fee_update(self, fees: FeeSnapshot) -> None:
        pass

    def on_price_update(self, price: PriceSnapshot) -> None:
        pass

    def on_mempool_update(self, mempool: MempoolSnapshot) -> None:
        pass

    def on_alert(self, event: AlertEvent) -> None:
        pass

    def on_status(self, text: str) -> None:
        pass


class MonitorContext:
    def __init__(self, history_capacity: int = DEFAULT_CAPACITY,
                 cache: Optional[CacheStore] = None):
        self.lock = threading.Lock()
        self.history = FeeHistory(history_capacity)
        self.cache = cache
        self.events: 'queue.Queue[UIEvent]' = queue.Queue()
        self._current: Optional[MarketSnapshot] = None
        self._is_updating = False

    def try_begin_update(self) -> bool:
        """Atomically claim the single update slot; False if a cycle is already running"""
        with self.lock:
            if self._is_updating:
                return False
            self._is_updating = True
            return True

    def end_update(self) -> None:
        with self.lock:
            self._is_updating = False

    @property
    def is_updating(self) -> bool:
        with self.lock:
            return self._is_updating

    @property
    def current(self) -> Optional[MarketSnapshot]:
        with self.lock:
            return self._current

    def apply_snapshot(self, snapshot: MarketSnapshot) -> bool:
        """Store the snapshot and append it to history when newer than the newest point.

        Returns True if a history point was added.
        """
        with self.lock:
            self._current = snapshot
            latest = self.history.latest()
            if latest is not None and snapshot.fees.timestamp <= latest.timestamp:
                return False
            self.history.push(HistoryPoint.from_fees(snapshot.fees))
            return True

    def history_points(self) -> List[HistoryPoint]:
        with self.lock:
            return self.history.iterate()

    def seed_history(self, points: List[HistoryPoint]) -> None:
        with self.lock:
            for point in points:
                self.history.push(point)

    def clear_history(self) -> None:
        with self.lock:
            self.history.clear()

    def post(self, kind: EventKind, payload: Any = None) -> None:
        self.events.put(UIEvent(kind, payload))

    def post_status(self, text: str) -> None:
        self.post(EventKind.STATUS, text)

    def drain_events(self, collaborator: UICollaborator, max_events: Optional[int] = None) -> int:
        """Deliver queued events to the collaborator on the calling (UI) thread"""
        handled = 0
        while max_events is None or handled < max_events:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                break
            try:
                dispatch_event(collaborator, event)
            except Exception as e:
                logger.error(f"UI handler for {event.kind.value} event failed: {e}")
            handled += 1
        return handled


def dispatch_event(collaborator: UICollaborator, event: UIEvent) -> None:
    if event.kind is EventKind.FEE:
        collaborator.on_fee_update(event.payload)
    elif event.kind is EventKind.PRICE:
        collaborator.on_price_update(event.payload)
    elif event.kind is EventKind.MEMPOOL:
        collaborator.on_mempool_update(event.payload)
    elif event.kind is EventKind.ALERT:
        collaborator.on_alert(event.payload)
    elif event.kind is EventKind.STATUS:
        collaborator.on_status(event.payload)
