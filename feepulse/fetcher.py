"""HTTP fetcher: pulls fee, mempool, price and tip height from one provider"""

import logging
import time
from typing import Any, Callable, Optional

import requests

from feepulse import USER_AGENT
from feepulse.errors import FeePulseError, NetworkError, ParseError
from feepulse.models import FeeSnapshot, MarketSnapshot, MempoolSnapshot, PriceSnapshot
from feepulse.sources import (
    REQUIRED_FEE_FIELDS,
    DataSource,
    coerce_number,
    extract_fields,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class Fetcher:
    """Performs the GETs for a data source and normalizes the responses.

    Only the fee triplet is mandatory. Mempool, price and block height are
    best effort: a failure there is logged and leaves the field unset.
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT,
                 user_agent: str = USER_AGENT,
                 clock: Callable[[], float] = time.time):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user_agent = user_agent
        self.clock = clock

    def get_json(self, url: str) -> Any:
        """GET url and decode the JSON body"""
        try:
            response = self.session.get(
                url,
                headers={'User-Agent': self.user_agent, 'Accept': 'application/json'},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(f"GET {url} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Invalid JSON from {url}: {e}") from e

    def fetch(self, source: DataSource) -> MarketSnapshot:
        """Fetch a full snapshot; raises NetworkError/ParseError if the fees are unavailable"""
        fees = self.fetch_fees(source)
        snapshot = MarketSnapshot(
            fees=fees,
            price=self.fetch_price(source),
            mempool=self.fetch_mempool(source),
            block_height=self.fetch_tip_height(source),
            source=source.name,
            timestamp=fees.timestamp,
        )
        logger.info(f"Fetched fees from {source.name}: "
                    f"{fees.fastest:.1f}/{fees.half_hour:.1f}/{fees.hour:.1f} sat/vB")
        return snapshot

    def fetch_fees(self, source: DataSource) -> FeeSnapshot:
        data = self.get_json(source.fee_url)
        values = extract_fields(data, source.fee_fields)

        missing = [name for name in REQUIRED_FEE_FIELDS if values.get(name) is None]
        if missing:
            raise ParseError(f"{source.name}: no numeric value for {', '.join(missing)}")

        for name in REQUIRED_FEE_FIELDS:
            if values[name] < 0:
                raise ParseError(f"{source.name}: negative fee for {name}: {values[name]}")

        def optional_fee(name: str) -> float:
            value = values.get(name)
            return value if value is not None and value >= 0 else 0.0

        return FeeSnapshot(
            fastest=values['fastest'],
            half_hour=values['half_hour'],
            hour=values['hour'],
            economy=optional_fee('economy'),
            minimum=optional_fee('minimum'),
            timestamp=self.clock(),
        )

    def fetch_mempool(self, source: DataSource) -> Optional[MempoolSnapshot]:
        if not source.mempool_url:
            return None
        try:
            values = extract_fields(self.get_json(source.mempool_url), source.mempool_fields)
        except FeePulseError as e:
            logger.warning(f"Mempool data from {source.name} unavailable: {e}")
            return None

        if all(value is None for value in values.values()):
            logger.warning(f"Mempool response from {source.name} has no recognized fields")
            return None

        return MempoolSnapshot(
            tx_count=max(0, int(values.get('tx_count') or 0)),
            size_bytes=max(0, int(values.get('size_bytes') or 0)),
            total_fee_btc=max(0.0, values.get('total_fee_btc') or 0.0),
        )

    def fetch_price(self, source: DataSource) -> Optional[PriceSnapshot]:
        if not source.price_url:
            return None
        try:
            values = extract_fields(self.get_json(source.price_url), source.price_fields)
        except FeePulseError as e:
            logger.warning(f"Price data from {source.name} unavailable: {e}")
            return None

        if values.get('usd') is None:
            logger.warning(f"Price response from {source.name} has no USD rate")
            return None

        return PriceSnapshot(
            usd=values['usd'],
            eur=values.get('eur') or 0.0,
            change_24h=values.get('change_24h') or 0.0,
            timestamp=self.clock(),
        )

    def fetch_tip_height(self, source: DataSource) -> Optional[int]:
        if not source.height_url:
            return None
        try:
            height = coerce_number(self.get_json(source.height_url))
        except FeePulseError as e:
            logger.debug(f"Block height from {source.name} unavailable: {e}")
            return None
        return int(height) if height is not None and height >= 0 else None

    def close(self) -> None:
        self.session.close()
