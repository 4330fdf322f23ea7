"""In-memory share token and asset custody."""

from .ledger import AssetLedger, ShareLedger, TokenError

__all__ = [
    "AssetLedger",
    "ShareLedger",
    "TokenError",
]
