"""Data classes for fee, price and mempool snapshots"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

SATS_PER_BTC = 100_000_000
TYPICAL_TX_VSIZE = 250


@dataclass
class FeeSnapshot:
    """Recommended fee rates in sat/vB"""
    fastest: float
    half_hour: float
    hour: float
    economy: float = 0.0
    minimum: float = 0.0
    timestamp: float = 0.0


@dataclass
class PriceSnapshot:
    """BTC spot price and 24h change in percent"""
    usd: float = 0.0
    eur: float = 0.0
    change_24h: float = 0.0
    timestamp: float = 0.0


@dataclass
class MempoolSnapshot:
    """Unconfirmed transaction pool summary"""
    tx_count: int = 0
    size_bytes: int = 0
    total_fee_btc: float = 0.0

    @property
    def avg_fee_sat_per_vbyte(self) -> float:
        if self.size_bytes <= 0:
            return 0.0
        return self.total_fee_btc * SATS_PER_BTC / self.size_bytes

    @property
    def size_mb(self) -> float:
        return self.size_bytes / 1_000_000.0


@dataclass
class HistoryPoint:
    timestamp: float
    fastest: float
    half_hour: float
    hour: float

    @classmethod
    def from_fees(cls, fees: FeeSnapshot) -> 'HistoryPoint':
        return cls(fees.timestamp, fees.fastest, fees.half_hour, fees.hour)


def _number(data: Dict[str, Any], key: str) -> float:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Field {key} is not numeric: {value!r}")
    return float(value)


def _optional_number(data: Dict[str, Any], key: str) -> Optional[float]:
    if data.get(key) is None:
        return None
    return _number(data, key)


@dataclass
class MarketSnapshot:
    """Everything one successful update produces; the unit the cache stores"""
    fees: FeeSnapshot
    price: Optional[PriceSnapshot] = None
    mempool: Optional[MempoolSnapshot] = None
    block_height: Optional[int] = None
    source: str = ''
    timestamp: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into the single JSON object written to the cache file"""
        data: Dict[str, Any] = {
            'fastestFee': self.fees.fastest,
            'halfHourFee': self.fees.half_hour,
            'hourFee': self.fees.hour,
            'economyFee': self.fees.economy,
            'minimumFee': self.fees.minimum,
            'source': self.source,
            'timestamp': self.timestamp,
            'block_height': self.block_height,
        }
        if self.price is not None:
            data.update({
                'btc_price_usd': self.price.usd,
                'btc_price_eur': self.price.eur,
                'price_change_24h': self.price.change_24h,
                'price_timestamp': self.price.timestamp,
            })
        if self.mempool is not None:
            data.update({
                'mempool_tx_count': self.mempool.tx_count,
                'mempool_size_bytes': self.mempool.size_bytes,
                'mempool_total_fee': self.mempool.total_fee_btc,
            })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MarketSnapshot':
        """Rebuild a snapshot; raises KeyError/ValueError on a missing timestamp or fee triplet, or a negative fee"""
        timestamp = _number(data, 'timestamp')
        fees = FeeSnapshot(
            fastest=_number(data, 'fastestFee'),
            half_hour=_number(data, 'halfHourFee'),
            hour=_number(data, 'hourFee'),
            economy=_optional_number(data, 'economyFee') or 0.0,
            minimum=_optional_number(data, 'minimumFee') or 0.0,
            timestamp=timestamp,
        )
        for key in ('fastest', 'half_hour', 'hour', 'economy', 'minimum'):
            if getattr(fees, key) < 0:
                raise ValueError(f"Negative fee rate for {key}: {getattr(fees, key)}")

        price = None
        if data.get('btc_price_usd') is not None:
            price_timestamp = _optional_number(data, 'price_timestamp')
            price = PriceSnapshot(
                usd=_number(data, 'btc_price_usd'),
                eur=_optional_number(data, 'btc_price_eur') or 0.0,
                change_24h=_optional_number(data, 'price_change_24h') or 0.0,
                timestamp=timestamp if price_timestamp is None else price_timestamp,
            )

        mempool = None
        if data.get('mempool_tx_count') is not None:
            mempool = MempoolSnapshot(
                tx_count=int(_number(data, 'mempool_tx_count')),
                size_bytes=int(_optional_number(data, 'mempool_size_bytes') or 0),
                total_fee_btc=_optional_number(data, 'mempool_total_fee') or 0.0,
            )

        height = _optional_number(data, 'block_height')
        return cls(
            fees=fees,
            price=price,
            mempool=mempool,
            block_height=int(height) if height is not None else None,
            source=str(data.get('source') or ''),
            timestamp=timestamp,
        )


class UpdateState(Enum):
    """Orchestrator cycle states"""
    IDLE = "idle"
    FETCHING = "fetching"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class AlertEvent:
    """A threshold match handed to the UI collaborator"""
    kind: str
    title: str
    message: str
    icon_hint: str
    value: float = 0.0


class EventKind(Enum):
    """UI event channel message types"""
    FEE = "fee"
    PRICE = "price"
    MEMPOOL = "mempool"
    ALERT = "alert"
    STATUS = "status"


@dataclass
class UIEvent:
    kind: EventKind
    payload: Any = field(default=None)


def estimate_tx_cost(fees: FeeSnapshot, price: Optional[PriceSnapshot],
                     vsize: int = TYPICAL_TX_VSIZE) -> Dict[str, float]:
    """Cost of a typical transaction at the average of the fastest and half-hour rates"""
    avg_rate = (fees.fastest + fees.half_hour) / 2.0
    fee_btc = avg_rate * vsize / SATS_PER_BTC
    return {
        'sat_per_vbyte': avg_rate,
        'btc': fee_btc,
        'usd': fee_btc * price.usd if price else 0.0,
        'eur': fee_btc * price.eur if price else 0.0,
    }
