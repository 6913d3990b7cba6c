"""Exception types shared by the fetcher, cache and orchestrator."""


class FeePulseError(Exception):
    """Base exception for all FeePulse errors"""


class NetworkError(FeePulseError):
    """HTTP request failed: timeout, connection error or error status"""


class ParseError(FeePulseError):
    """Provider response had an unexpected shape or missing fee fields"""


class CacheError(FeePulseError):
    """Cache file is missing, unreadable or incomplete"""
