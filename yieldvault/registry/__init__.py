"""Strategy registry module.

Allowlist of (chain, protocol) venues with amount bounds, fees and metadata.
"""

from .interfaces import StrategyProvider
from .strategies import RegistryError, StrategyRegistry

__all__ = [
    "RegistryError",
    "StrategyProvider",
    "StrategyRegistry",
]
