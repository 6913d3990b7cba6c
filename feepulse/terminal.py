"""Plain-text rendering of a snapshot for the console"""

from datetime import datetime
from typing import List, Optional

from feepulse.models import TYPICAL_TX_VSIZE, FeeSnapshot, MarketSnapshot, estimate_tx_cost

BAR_CHAR = '█'
FEE_LABELS = (
    ('Fastest (10 min)', 'fastest'),
    ('Half hour (30 min)', 'half_hour'),
    ('Hour (60 min)', 'hour'),
)


def render_fee_bars(fees: FeeSnapshot, width: int = 40) -> List[str]:
    """One horizontal bar per confirmation target, scaled to the largest fee plus 20%"""
    width = max(2, width)
    values = [getattr(fees, attr) for _, attr in FEE_LABELS]
    max_fee = max(values) * 1.2
    if max_fee <= 0:
        max_fee = 1.0

    lines = []
    label_width = max(len(label) for label, _ in FEE_LABELS)
    for (label, _), value in zip(FEE_LABELS, values):
        bar_len = max(1, int(value / max_fee * width))
        lines.append(f"{label:<{label_width}}  {BAR_CHAR * bar_len:<{width}}  {value:.1f} sat/vB")

    scale = f"{'0':<{width // 2}}{max_fee / 2:<{width - width // 2}.0f}{max_fee:.0f}"
    lines.append(f"{'':<{label_width}}  {scale}")
    return lines


def render_summary(snapshot: MarketSnapshot, width: int = 40, source: Optional[str] = None) -> str:
    """Multi-line console summary: header, fee bars, mempool, price and cost estimate"""
    lines = ["BITCOIN TRANSACTION FEES"]
    stamp = datetime.fromtimestamp(snapshot.timestamp).strftime('%Y-%m-%d %H:%M:%S')
    origin = source or snapshot.source or 'unknown'
    lines.append(f"Source: {origin} | {stamp}")
    if snapshot.block_height:
        lines.append(f"Block: {snapshot.block_height}")
    lines.append('-' * (width + 40))
    lines.extend(render_fee_bars(snapshot.fees, width))

    fees = snapshot.fees
    if fees.economy or fees.minimum:
        lines.append(f"Economy: {fees.economy:.1f} sat/vB | Minimum: {fees.minimum:.1f} sat/vB")

    mempool = snapshot.mempool
    if mempool is not None:
        lines.append(f"Mempool: {mempool.tx_count:,} tx | {mempool.size_mb:.2f} MB | "
                     f"avg {mempool.avg_fee_sat_per_vbyte:.1f} sat/vB")

    price = snapshot.price
    if price is not None and price.usd > 0:
        lines.append(f"BTC price: ${price.usd:,.2f} USD | {price.eur:,.2f} EUR "
                     f"({price.change_24h:+.1f}% 24h)")
        cost = estimate_tx_cost(fees, price)
        lines.append(f"Estimated cost ({TYPICAL_TX_VSIZE} vB): ${cost['usd']:.2f} USD | "
                     f"{cost['eur']:.2f} EUR")
    else:
        cost = estimate_tx_cost(fees, None)
        lines.append(f"Estimated cost ({TYPICAL_TX_VSIZE} vB): {cost['btc']:.8f} BTC")

    lines.append("Fees are in satoshis per virtual byte (sat/vB)")
    return "\n".join(lines)
