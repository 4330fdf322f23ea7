"""In-memory ledgers for vault shares and the underlying asset.

`ShareLedger` is a fungible share token whose only minter/burner is the vault
bound through `set_vault_contract`. `AssetLedger` holds underlying balances per
account plus the vault's custody account.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from threading import Lock
from typing import Optional

from yieldvault.types import Identity, Result, is_uint
from yieldvault.vault.math import checked_add

logger = logging.getLogger(__name__)


class TokenError(IntEnum):
    NOT_AUTHORIZED = 100
    INSUFFICIENT_BALANCE = 101
    INVALID_AMOUNT = 102
    ALREADY_BOUND = 103


class ShareLedger:
    """Share token balances.

    Supports:
    - Mint/burn by the bound vault
    - Holder-to-holder transfers
    - Balance and supply queries
    """

    def __init__(
        self, owner: Identity, *, name: str = "Vault Share", symbol: str = "vSHARE", decimals: int = 6
    ) -> None:
        """Initialize share ledger.

        Args:
            owner: Identity allowed to bind the vault (the deployer)
            name: Token name
            symbol: Token symbol
            decimals: Display decimals
        """
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._owner = owner
        self._vault: Optional[Identity] = None
        self._balances: dict[Identity, int] = {}
        self._total_supply = 0
        self._lock = Lock()

    @property
    def vault(self) -> Optional[Identity]:
        return self._vault

    def balance_of(self, holder: Identity) -> int:
        return self._balances.get(holder, 0)

    def total_supply(self) -> int:
        return self._total_supply

    def set_vault_contract(self, caller: Identity, vault: Identity) -> Result[bool]:
        """Bind the vault as sole minter/burner. Owner-only, once."""
        with self._lock:
            if caller != self._owner:
                return Result.failure(TokenError.NOT_AUTHORIZED, "only the token owner may bind the vault")
            if self._vault is not None:
                return Result.failure(TokenError.ALREADY_BOUND, f"vault already bound to {self._vault}")
            self._vault = vault
        logger.info("Share token bound to vault %s", vault)
        return Result.success(True)

    def mint(self, caller: Identity, to: Identity, amount: int) -> Result[int]:
        with self._lock:
            if self._vault is None or caller != self._vault:
                return Result.failure(TokenError.NOT_AUTHORIZED, "only the bound vault may mint")
            if not is_uint(amount) or amount == 0:
                return Result.failure(TokenError.INVALID_AMOUNT, "mint amount must be positive")
            try:
                new_supply = checked_add(self._total_supply, amount)
                new_balance = checked_add(self.balance_of(to), amount)
            except OverflowError as exc:
                return Result.failure(TokenError.INVALID_AMOUNT, str(exc))
            self._balances[to] = new_balance
            self._total_supply = new_supply
        return Result.success(amount)

    def burn(self, caller: Identity, holder: Identity, amount: int) -> Result[int]:
        with self._lock:
            if self._vault is None or caller != self._vault:
                return Result.failure(TokenError.NOT_AUTHORIZED, "only the bound vault may burn")
            if not is_uint(amount) or amount == 0:
                return Result.failure(TokenError.INVALID_AMOUNT, "burn amount must be positive")
            balance = self.balance_of(holder)
            if balance < amount:
                return Result.failure(
                    TokenError.INSUFFICIENT_BALANCE, f"Insufficient shares for {holder}: have {balance}, need {amount}"
                )
            self._balances[holder] = balance - amount
            self._total_supply -= amount
        return Result.success(amount)

    def transfer(self, caller: Identity, recipient: Identity, amount: int) -> Result[int]:
        """Move shares from caller to recipient."""
        with self._lock:
            if not is_uint(amount) or amount == 0:
                return Result.failure(TokenError.INVALID_AMOUNT, "transfer amount must be positive")
            balance = self.balance_of(caller)
            if balance < amount:
                return Result.failure(
                    TokenError.INSUFFICIENT_BALANCE, f"Insufficient shares for {caller}: have {balance}, need {amount}"
                )
            if recipient == caller:
                return Result.success(amount)
            try:
                new_recipient_balance = checked_add(self.balance_of(recipient), amount)
            except OverflowError as exc:
                return Result.failure(TokenError.INVALID_AMOUNT, str(exc))
            self._balances[caller] = balance - amount
            self._balances[recipient] = new_recipient_balance
        return Result.success(amount)


class AssetLedger:
    """Underlying asset balances with a custody account for the vault."""

    def __init__(self, custodian: Identity, initial_balances: Optional[dict[Identity, int]] = None) -> None:
        """Initialize asset ledger.

        Args:
            custodian: Account holding assets in vault custody
            initial_balances: Optional dict of account -> starting balance
        """
        self._custodian = custodian
        self._balances: dict[Identity, int] = dict(initial_balances or {})
        self._lock = Lock()

    @property
    def custodian(self) -> Identity:
        return self._custodian

    def balance_of(self, account: Identity) -> int:
        return self._balances.get(account, 0)

    def held_in_custody(self) -> int:
        return self.balance_of(self._custodian)

    def credit(self, account: Identity, amount: int) -> int:
        """Fund an account from outside the system.

        Raises:
            ValueError: If amount <= 0
        """
        if not is_uint(amount) or amount == 0:
            raise ValueError("Credit amount must be positive")
        with self._lock:
            self._balances[account] = checked_add(self.balance_of(account), amount)
            return self._balances[account]

    def receive(self, sender: Identity, amount: int) -> Result[int]:
        return self._move(sender, self._custodian, amount)

    def send(self, recipient: Identity, amount: int) -> Result[int]:
        return self._move(self._custodian, recipient, amount)

    def _move(self, source: Identity, destination: Identity, amount: int) -> Result[int]:
        with self._lock:
            if not is_uint(amount) or amount == 0:
                return Result.failure(TokenError.INVALID_AMOUNT, "transfer amount must be positive")
            balance = self.balance_of(source)
            if balance < amount:
                return Result.failure(
                    TokenError.INSUFFICIENT_BALANCE,
                    f"Insufficient balance for {source}: have {balance}, need {amount}",
                )
            self._balances[source] = balance - amount
            self._balances[destination] = self.balance_of(destination) + amount
        return Result.success(amount)
