"""Pooled-asset yield vault.

Building blocks:

- roles: admin / keeper / pauser hierarchy and the pause switch
- registry: allowlist of (chain, protocol) strategies
- vault: share accounting, fees, cap, virtual yield, strategy change requests
- token: in-memory share token and underlying-asset custody
- audit: structured audit events for every transition
- config: validated deployment settings
- deployment: wiring for one independent deployment
"""

from yieldvault.types import (
    BPS_DENOMINATOR,
    PRECISION,
    UINT_MAX,
    Identity,
    Result,
    StrategyKey,
)

__all__ = [
    "BPS_DENOMINATOR",
    "PRECISION",
    "UINT_MAX",
    "Identity",
    "Result",
    "StrategyKey",
]
