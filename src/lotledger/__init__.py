"""
LotLedger - Entry-lot position accounting

Tracks positions built from entry lots and settles exits against them,
producing realized P&L, immutable settlement records and an audit trail.
"""

from importlib.metadata import version

try:
    __version__ = version("lotledger")
except Exception:
    __version__ = "0.0.0.dev"  # Fallback for development


__all__ = [
    "__version__",
]
