"""Desktop notifications for alerts, with in-app and log fallbacks"""

import logging
import time
from typing import Callable, Dict, List, Optional

from plyer import notification

from feepulse import APP_NAME
from feepulse.models import AlertEvent

logger = logging.getLogger(__name__)

PopupCallback = Callable[[str, str, int], bool]


class NotificationManager:
    """Delivers alerts through the first backend that works.

    Order is plyer (native desktop notification), then the optional in-app
    popup callback, then the log. Every alert is delivered; repeated alerts
    are not suppressed.
    """

    def __init__(self, enabled: bool = True, popup: Optional[PopupCallback] = None,
                 duration: int = 5):
        self.enabled = enabled
        self.popup = popup
        self.duration = duration
        self.stats = {
            'total_attempts': 0, 'success': 0, 'failed': 0, 'disabled': 0,
            'by_backend': {'plyer': 0, 'popup': 0, 'log': 0},
        }

    def backend_order(self) -> List[str]:
        order = ['plyer']
        if self.popup is not None:
            order.append('popup')
        order.append('log')
        return order

    def notify(self, event: AlertEvent) -> Optional[str]:
        """Send an alert; returns the backend that delivered it, or None"""
        return self.send(event.title, event.message)

    def send(self, title: str, message: str) -> Optional[str]:
        self.stats['total_attempts'] += 1
        if not self.enabled:
            self.stats['disabled'] += 1
            logger.debug(f"Notifications disabled, skipping '{title}'")
            return None

        clean_title = str(title).strip()[:100]
        clean_message = str(message).strip()[:500]

        for backend in self.backend_order():
            start_time = time.time()
            try:
                if backend == 'plyer':
                    notification.notify(
                        title=clean_title,
                        message=clean_message,
                        app_name=APP_NAME,
                        timeout=self.duration,
                    )
                elif backend == 'popup':
                    if not self.popup(clean_title, clean_message, self.duration):
                        continue
                else:
                    logger.warning(f"Notification: {clean_title} - {clean_message}")
            except Exception as e:
                logger.warning(f"Notification backend '{backend}' failed: {e}")
                continue

            duration_ms = (time.time() - start_time) * 1000
            logger.debug(f"Notification sent via '{backend}' in {duration_ms:.2f}ms")
            self.stats['success'] += 1
            self.stats['by_backend'][backend] += 1
            return backend

        self.stats['failed'] += 1
        logger.error("All notification backends failed")
        return None

    def get_stats(self) -> Dict:
        return dict(self.stats, by_backend=dict(self.stats['by_backend']))
