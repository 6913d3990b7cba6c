"""Threshold alerts evaluated after every successful update"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from feepulse.models import AlertEvent, MarketSnapshot

logger = logging.getLogger(__name__)

LOW_FEE = 'low_fee'
PRICE_CHANGE = 'price_change'
MEMPOOL_CONGESTION = 'mempool_congestion'


def default_alert_config() -> Dict[str, Dict[str, Any]]:
    return {
        LOW_FEE: {'enabled': True, 'threshold': 10.0},
        PRICE_CHANGE: {'enabled': True, 'threshold': 2.0},
        MEMPOOL_CONGESTION: {'enabled': True, 'threshold': 50000},
    }


@dataclass
class AlertThresholds:
    low_fee_enabled: bool = True
    low_fee: float = 10.0
    price_change_enabled: bool = True
    price_change_pct: float = 2.0
    mempool_enabled: bool = True
    mempool_tx_count: int = 50000

    @classmethod
    def from_settings(cls, alert_config: Dict[str, Dict[str, Any]]) -> 'AlertThresholds':
        """Build thresholds from the settings' alert_config section"""
        defaults = default_alert_config()

        def entry(name: str) -> Dict[str, Any]:
            merged = dict(defaults[name])
            merged.update(alert_config.get(name) or {})
            return merged

        low_fee = entry(LOW_FEE)
        price = entry(PRICE_CHANGE)
        mempool = entry(MEMPOOL_CONGESTION)
        return cls(
            low_fee_enabled=bool(low_fee['enabled']),
            low_fee=float(low_fee['threshold']),
            price_change_enabled=bool(price['enabled']),
            price_change_pct=float(price['threshold']),
            mempool_enabled=bool(mempool['enabled']),
            mempool_tx_count=int(mempool['threshold']),
        )


class AlertEvaluator:
    """Stateless checks: an alert fires on every update while its condition holds"""

    def __init__(self, thresholds: Optional[AlertThresholds] = None):
        self.thresholds = thresholds or AlertThresholds()

    def evaluate(self, snapshot: MarketSnapshot) -> List[AlertEvent]:
        t = self.thresholds
        events: List[AlertEvent] = []

        fastest = snapshot.fees.fastest
        if t.low_fee_enabled and fastest < t.low_fee:
            events.append(AlertEvent(
                kind=LOW_FEE,
                title="Low fees!",
                message=f"Fastest fee dropped to {fastest:.1f} sat/vB",
                icon_hint="dialog-information",
                value=fastest,
            ))

        price = snapshot.price
        if t.price_change_enabled and price is not None and abs(price.change_24h) > t.price_change_pct:
            direction = "up" if price.change_24h > 0 else "down"
            events.append(AlertEvent(
                kind=PRICE_CHANGE,
                title="Significant price move",
                message=f"BTC is {direction} {abs(price.change_24h):.1f}% in 24h",
                icon_hint="stock_market-up",
                value=price.change_24h,
            ))

        mempool = snapshot.mempool
        if t.mempool_enabled and mempool is not None and mempool.tx_count > t.mempool_tx_count:
            events.append(AlertEvent(
                kind=MEMPOOL_CONGESTION,
                title="Mempool congestion",
                message=f"Mempool is congested with {mempool.tx_count:,} transactions",
                icon_hint="dialog-warning",
                value=float(mempool.tx_count),
            ))

        return events
