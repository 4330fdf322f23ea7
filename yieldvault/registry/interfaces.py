from __future__ import annotations

from typing import Protocol


class StrategyProvider(Protocol):
    def strategy_exists(self, chain_id: int, proto_id: int) -> bool:
        """Whether a record exists for the key (enabled or not)."""

    def is_strategy_enabled(self, chain_id: int, proto_id: int) -> bool:
        """Whether the strategy exists and is enabled."""

    def validate_strategy(self, chain_id: int, proto_id: int, amount: int) -> bool:
        """Whether the strategy is enabled and accepts `amount`."""
