"""
FeePulse Monitor - Bitcoin fee, mempool and price tracking

Polls public fee/price/mempool APIs with provider fallback, caches the
latest snapshot on disk, keeps a bounded fee history, charts it and raises
desktop notifications when thresholds are crossed.

License: MIT
"""

__version__ = "1.0.0"
APP_NAME = "FeePulse Monitor"
USER_AGENT = f"FeePulse/{__version__}"
