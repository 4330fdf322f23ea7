"""Vault accounting module.

Share issuance and redemption, virtual yield, fees, cap and strategy change
requests.
"""

from .accounting import VaultAccounting, VaultError, VaultState
from .interfaces import AssetCustody, ShareToken
from .math import UnderflowError

__all__ = [
    # Accounting
    "VaultAccounting",
    "VaultError",
    "VaultState",
    # Interfaces
    "AssetCustody",
    "ShareToken",
    # Math
    "UnderflowError",
]
