"""
Data source registry.

Each provider answers with a different JSON shape, so field extraction is
driven by a mapping table: for every logical field an ordered list of
candidate key paths is tried until one yields a number.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class FieldSpec:
    """Candidate dotted key paths for one logical field, plus a unit scale"""
    keys: Tuple[str, ...]
    scale: float = 1.0


FieldMap = Mapping[str, FieldSpec]

FEE_FIELDS = ('fastest', 'half_hour', 'hour', 'economy', 'minimum')
REQUIRED_FEE_FIELDS = ('fastest', 'half_hour', 'hour')
MEMPOOL_FIELDS = ('tx_count', 'size_bytes', 'total_fee_btc')
PRICE_FIELDS = ('usd', 'eur', 'change_24h')


# mempool.space style recommended-fee object, with blockstream's
# confirmation-target keys as fallbacks
RECOMMENDED_FEE_MAP: Dict[str, FieldSpec] = {
    'fastest': FieldSpec(('fastestFee', '2')),
    'half_hour': FieldSpec(('halfHourFee', '6')),
    'hour': FieldSpec(('hourFee', '144')),
    'economy': FieldSpec(('economyFee', '504')),
    'minimum': FieldSpec(('minimumFee', '1008')),
}

# Esplora /api/mempool reports total_fee in satoshis
ESPLORA_MEMPOOL_MAP: Dict[str, FieldSpec] = {
    'tx_count': FieldSpec(('count', 'n_tx')),
    'size_bytes': FieldSpec(('vsize', 'size')),
    'total_fee_btc': FieldSpec(('total_fee',), scale=1e-8),
}

COINGECKO_PRICE_MAP: Dict[str, FieldSpec] = {
    'usd': FieldSpec(('bitcoin.usd',)),
    'eur': FieldSpec(('bitcoin.eur',)),
    'change_24h': FieldSpec(('bitcoin.usd_24h_change',)),
}

BLOCKCHAIN_TICKER_PRICE_MAP: Dict[str, FieldSpec] = {
    'usd': FieldSpec(('USD.last', 'USD.15m')),
    'eur': FieldSpec(('EUR.last', 'EUR.15m')),
    'change_24h': FieldSpec(()),
}

COINCAP_PRICE_MAP: Dict[str, FieldSpec] = {
    'usd': FieldSpec(('data.rateUsd', 'data.priceUsd')),
    'eur': FieldSpec(()),
    'change_24h': FieldSpec(('data.changePercent24Hr',)),
}


@dataclass(frozen=True)
class DataSource:
    """One provider: endpoint URLs and the field maps for their responses"""
    name: str
    fee_url: str
    mempool_url: Optional[str] = None
    price_url: Optional[str] = None
    height_url: Optional[str] = None
    fee_fields: FieldMap = field(default_factory=lambda: RECOMMENDED_FEE_MAP, compare=False)
    mempool_fields: FieldMap = field(default_factory=lambda: ESPLORA_MEMPOOL_MAP, compare=False)
    price_fields: FieldMap = field(default_factory=lambda: COINGECKO_PRICE_MAP, compare=False)


DATA_SOURCES: Tuple[DataSource, ...] = (
    DataSource(
        name='mempool.space',
        fee_url='https://mempool.space/api/v1/fees/recommended',
        mempool_url='https://mempool.space/api/mempool',
        price_url=('https://api.coingecko.com/api/v3/simple/price'
                   '?ids=bitcoin&vs_currencies=usd,eur&include_24hr_change=true'),
        height_url='https://mempool.space/api/blocks/tip/height',
    ),
    DataSource(
        name='blockstream.info',
        fee_url='https://blockstream.info/api/fee-estimates',
        mempool_url='https://blockstream.info/api/mempool',
        price_url='https://blockchain.info/ticker',
        height_url='https://blockstream.info/api/blocks/tip/height',
        price_fields=BLOCKCHAIN_TICKER_PRICE_MAP,
    ),
    DataSource(
        name='bitcoinfees.earn.com',
        fee_url='https://bitcoinfees.earn.com/api/v1/fees/recommended',
        mempool_url='https://bitcoinfees.earn.com/api/v1/fees/list',
        price_url='https://api.coincap.io/v2/rates/bitcoin',
        price_fields=COINCAP_PRICE_MAP,
    ),
)

MAX_SOURCES = len(DATA_SOURCES)


def coerce_number(value: Any) -> Optional[float]:
    """Return value as float if it is numeric (numbers or numeric strings)"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def lookup_path(data: Any, path: str) -> Any:
    """Walk a dotted key path through nested dicts; None when any hop is missing"""
    current = data
    for part in path.split('.'):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def extract_field(data: Any, spec: FieldSpec) -> Optional[float]:
    """Try each candidate key in order, returning the first numeric value"""
    for key in spec.keys:
        number = coerce_number(lookup_path(data, key))
        if number is not None:
            return number * spec.scale
    return None


def extract_fields(data: Any, field_map: FieldMap) -> Dict[str, Optional[float]]:
    return {name: extract_field(data, spec) for name, spec in field_map.items()}


def get_source(name: str) -> Optional[DataSource]:
    for source in DATA_SOURCES:
        if source.name == name:
            return source
    return None
