from __future__ import annotations

from typing import Protocol

from yieldvault.types import Identity, Result


class ShareToken(Protocol):
    def mint(self, caller: Identity, to: Identity, amount: int) -> Result[int]:
        """Mint shares to a holder. Only the bound vault may mint."""

    def burn(self, caller: Identity, holder: Identity, amount: int) -> Result[int]:
        """Burn shares from a holder. Only the bound vault may burn."""

    def balance_of(self, holder: Identity) -> int:
        """Share balance of a holder (0 if unknown)."""

    def set_vault_contract(self, caller: Identity, vault: Identity) -> Result[bool]:
        """Bind the sole authorized minter/burner (one-time)."""


class AssetCustody(Protocol):
    def receive(self, sender: Identity, amount: int) -> Result[int]:
        """Move underlying from sender into vault custody."""

    def send(self, recipient: Identity, amount: int) -> Result[int]:
        """Move underlying from vault custody to recipient."""
