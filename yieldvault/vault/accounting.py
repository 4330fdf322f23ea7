"""Vault accounting - share issuance, redemption and virtual yield.

Tracks total underlying and total shares for the pool. Per-holder share
balances live in the share token; actual asset movement goes through the
asset custody. Every operation validates fully before touching state and
compensates earlier collaborator calls if a later one fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from threading import RLock
from typing import Optional

from yieldvault.audit import AuditLog
from yieldvault.registry.interfaces import StrategyProvider
from yieldvault.roles.interfaces import RoleProvider
from yieldvault.types import (
    BPS_DENOMINATOR,
    FeeAccounting,
    FeeConfig,
    Identity,
    Result,
    StrategyChangeRequest,
    StrategyKey,
    VaultSnapshot,
    is_uint,
)

from . import math as vmath
from .interfaces import AssetCustody, ShareToken

logger = logging.getLogger(__name__)


class VaultError(IntEnum):
    PAUSED = 100
    INSUFFICIENT_BALANCE = 101
    INVALID_AMOUNT = 102
    NOT_KEEPER = 103
    NOT_ADMIN = 104
    CAP_EXCEEDED = 105
    STRATEGY_NOT_ALLOWED = 106
    INVALID_FEE = 107
    TRANSFER_FAILED = 108


@dataclass
class VaultState:
    """Pool-level accounting figures."""

    total_underlying: int = 0
    total_shares: int = 0
    deposit_fee_bps: int = 0
    withdraw_fee_bps: int = 0
    cap: Optional[int] = None
    accrued_fees: int = 0
    strategy_changes: list[StrategyChangeRequest] = field(default_factory=list)


def _valid_fee(bps: object) -> bool:
    return is_uint(bps) and bps < BPS_DENOMINATOR


class VaultAccounting:
    """Pooled vault with fixed-point share accounting.

    Coordinates:
    - Deposits and withdrawals (shares via the share token, assets via custody)
    - Keeper-driven virtual yield
    - Fee and cap configuration (admin)
    - Strategy change requests checked against the registry

    Thread-safety: operations are serialized on an internal re-entrant lock.
    """

    def __init__(
        self,
        *,
        vault_identity: Identity,
        roles: RoleProvider,
        strategies: StrategyProvider,
        token: ShareToken,
        custody: Optional[AssetCustody] = None,
        deposit_fee_bps: int = 0,
        withdraw_fee_bps: int = 0,
        cap: Optional[int] = None,
        deposit_fee_accounting: FeeAccounting = "pool",
        audit: Optional[AuditLog] = None,
    ) -> None:
        """Initialize vault accounting.

        Args:
            vault_identity: Identity the vault uses when calling the share token
            roles: Role provider for admin/keeper/pause checks
            strategies: Strategy provider for reallocation eligibility
            token: Share token collaborator
            custody: Underlying asset custody; None keeps the vault accounting-only
            deposit_fee_bps: Initial deposit fee
            withdraw_fee_bps: Initial withdraw fee
            cap: Initial deposit cap (None = uncapped)
            deposit_fee_accounting: "pool" credits the gross deposit to total
                underlying; "treasury" credits the net and accrues the fee
            audit: Optional audit log

        Raises:
            ValueError: If initial fees, cap or fee accounting mode are invalid
        """
        if not _valid_fee(deposit_fee_bps) or not _valid_fee(withdraw_fee_bps):
            raise ValueError(f"Fees must be integers in [0, {BPS_DENOMINATOR})")
        if cap is not None and not is_uint(cap):
            raise ValueError("Cap must be an unsigned integer or None")
        if deposit_fee_accounting not in ("pool", "treasury"):
            raise ValueError(f"Unknown deposit fee accounting mode: {deposit_fee_accounting!r}")

        self._identity = vault_identity
        self._roles = roles
        self._strategies = strategies
        self._token = token
        self._custody = custody
        self._fee_accounting = deposit_fee_accounting
        self._audit = audit
        self._state = VaultState(deposit_fee_bps=deposit_fee_bps, withdraw_fee_bps=withdraw_fee_bps, cap=cap)
        self._lock = RLock()

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def deposit_fee_accounting(self) -> FeeAccounting:
        return self._fee_accounting

    # ========== Deposits / withdrawals ==========

    def deposit(self, caller: Identity, amount: int) -> Result[int]:
        """Deposit underlying and mint shares to the caller.

        Args:
            caller: Depositor
            amount: Gross underlying amount (> 0)

        Returns:
            Result holding the number of shares minted
        """
        op = "deposit"
        with self._lock:
            if self._roles.is_paused():
                return self._reject(op, VaultError.PAUSED, "vault is paused", caller)
            if not is_uint(amount) or amount == 0:
                return self._reject(op, VaultError.INVALID_AMOUNT, "amount must be a positive integer", caller)

            state = self._state
            if state.total_shares > 0 and state.total_underlying == 0:
                return self._reject(op, VaultError.INVALID_AMOUNT, "pool has shares but no underlying", caller)
            try:
                fee = vmath.fee_for(amount, state.deposit_fee_bps)
                net = amount - fee
                shares = vmath.shares_for_deposit(net, state.total_shares, state.total_underlying)
                if self._fee_accounting == "pool":
                    new_underlying = vmath.checked_add(state.total_underlying, amount)
                    new_accrued = state.accrued_fees
                else:
                    new_underlying = vmath.checked_add(state.total_underlying, net)
                    new_accrued = vmath.checked_add(state.accrued_fees, fee)
                new_shares = vmath.checked_add(state.total_shares, shares)
                gross_total = vmath.checked_add(state.total_underlying, amount)
            except OverflowError as exc:
                return self._reject(op, VaultError.INVALID_AMOUNT, str(exc), caller)

            if state.cap is not None and gross_total > state.cap:
                return self._reject(
                    op, VaultError.CAP_EXCEEDED, f"deposit would bring total to {gross_total} > cap {state.cap}", caller
                )
            if shares == 0:
                return self._reject(op, VaultError.INVALID_AMOUNT, "deposit too small to mint a share", caller)

            if self._custody is not None:
                received = self._custody.receive(caller, amount)
                if not received.ok:
                    return self._reject(
                        op, VaultError.TRANSFER_FAILED, f"asset transfer in failed: {received.reason}", caller
                    )
            minted = self._token.mint(self._identity, caller, shares)
            if not minted.ok:
                if self._custody is not None:
                    self._compensate("refund deposit", self._custody.send(caller, amount))
                return self._reject(op, VaultError.TRANSFER_FAILED, f"share mint failed: {minted.reason}", caller)

            state.total_underlying = new_underlying
            state.total_shares = new_shares
            state.accrued_fees = new_accrued

        logger.info("Deposit by %s: amount=%s fee=%s shares=%s", caller, amount, fee, shares)
        self._record("deposit", f"Deposited {amount}", caller, amount=amount, fee=fee, shares=shares)
        return Result.success(shares)

    def withdraw(self, caller: Identity, shares: int) -> Result[int]:
        """Burn the caller's shares and pay out their underlying, net of fee.

        Returns:
            Result holding the net amount paid
        """
        op = "withdraw"
        with self._lock:
            if self._roles.is_paused():
                return self._reject(op, VaultError.PAUSED, "vault is paused", caller)
            if not is_uint(shares) or shares == 0:
                return self._reject(op, VaultError.INVALID_AMOUNT, "shares must be a positive integer", caller)
            balance = self._token.balance_of(caller)
            if shares > balance:
                return self._reject(
                    op, VaultError.INSUFFICIENT_BALANCE, f"have {balance} shares, need {shares}", caller
                )

            state = self._state
            if shares > state.total_shares:
                return self._reject(
                    op, VaultError.INSUFFICIENT_BALANCE, f"shares exceed total supply {state.total_shares}", caller
                )
            try:
                gross = vmath.assets_for_shares(shares, state.total_shares, state.total_underlying)
                fee = vmath.fee_for(gross, state.withdraw_fee_bps)
                net = gross - fee
                new_underlying = vmath.checked_sub(state.total_underlying, gross)
                new_shares = vmath.checked_sub(state.total_shares, shares)
                new_accrued = vmath.checked_add(state.accrued_fees, fee)
            except vmath.UnderflowError as exc:
                return self._reject(op, VaultError.INSUFFICIENT_BALANCE, str(exc), caller)
            except OverflowError as exc:
                return self._reject(op, VaultError.INVALID_AMOUNT, str(exc), caller)

            burned = self._token.burn(self._identity, caller, shares)
            if not burned.ok:
                return self._reject(op, VaultError.TRANSFER_FAILED, f"share burn failed: {burned.reason}", caller)
            if self._custody is not None and net > 0:
                sent = self._custody.send(caller, net)
                if not sent.ok:
                    self._compensate("re-mint shares", self._token.mint(self._identity, caller, shares))
                    return self._reject(
                        op, VaultError.TRANSFER_FAILED, f"asset transfer out failed: {sent.reason}", caller
                    )

            state.total_underlying = new_underlying
            state.total_shares = new_shares
            state.accrued_fees = new_accrued

        logger.info("Withdraw by %s: shares=%s gross=%s fee=%s net=%s", caller, shares, gross, fee, net)
        self._record("withdraw", f"Withdrew {net}", caller, shares=shares, gross=gross, fee=fee, net=net)
        return Result.success(net)

    # ========== Keeper operations ==========

    def update_virtual_yield(self, caller: Identity, delta: int) -> Result[int]:
        """Apply a signed accounting adjustment to total underlying.

        No shares change and no assets move.
        Rejected while no shares are outstanding.

        Returns:
            Result holding the new total underlying
        """
        op = "update_virtual_yield"
        with self._lock:
            if not self._is_keeper(caller):
                return self._reject(op, VaultError.NOT_KEEPER, "caller is not a keeper", caller)
            if not isinstance(delta, int) or isinstance(delta, bool):
                return self._reject(op, VaultError.INVALID_AMOUNT, "delta must be an integer", caller)
            # Underlying without shares would belong to nobody
            if self._state.total_shares == 0 and delta != 0:
                return self._reject(op, VaultError.INVALID_AMOUNT, "no shares outstanding", caller)
            try:
                new_underlying = vmath.apply_delta(self._state.total_underlying, delta)
            except vmath.UnderflowError:
                return self._reject(
                    op,
                    VaultError.INSUFFICIENT_BALANCE,
                    f"loss {-delta} exceeds total underlying {self._state.total_underlying}",
                    caller,
                )
            except OverflowError as exc:
                return self._reject(op, VaultError.INVALID_AMOUNT, str(exc), caller)
            self._state.total_underlying = new_underlying

        logger.info("Virtual yield %+d by %s; total underlying now %s", delta, caller, new_underlying)
        self._record("virtual_yield", f"Virtual yield {delta:+d}", caller, delta=delta, total_underlying=new_underlying)
        return Result.success(new_underlying)

    def request_strategy_change(
        self,
        caller: Identity,
        from_chain: int,
        from_proto: int,
        to_chain: int,
        to_proto: int,
        amount: int,
        reason_code: int,
    ) -> Result[bool]:
        """Record an intent to move capital to an allowlisted strategy.

        Execution is left to an external actor; nothing moves here.
        """
        op = "request_strategy_change"
        with self._lock:
            if not self._is_keeper(caller):
                return self._reject(op, VaultError.NOT_KEEPER, "caller is not a keeper", caller)
            if not is_uint(amount) or amount == 0:
                return self._reject(op, VaultError.INVALID_AMOUNT, "amount must be a positive integer", caller)
            if not is_uint(reason_code):
                return self._reject(op, VaultError.INVALID_AMOUNT, "reason_code must be an unsigned integer", caller)
            if not self._strategies.is_strategy_enabled(to_chain, to_proto):
                return self._reject(
                    op,
                    VaultError.STRATEGY_NOT_ALLOWED,
                    f"destination {to_chain}/{to_proto} is not an enabled strategy",
                    caller,
                )
            request = StrategyChangeRequest(
                requested_by=caller,
                source=StrategyKey(chain_id=from_chain, proto_id=from_proto),
                destination=StrategyKey(chain_id=to_chain, proto_id=to_proto),
                amount=amount,
                reason_code=reason_code,
            )
            self._state.strategy_changes.append(request)

        logger.info(
            "Strategy change requested by %s: %s/%s -> %s/%s amount=%s reason=%s",
            caller, from_chain, from_proto, to_chain, to_proto, amount, reason_code,
        )
        self._record(
            "strategy_change_requested",
            f"Strategy change to {to_chain}/{to_proto}",
            caller,
            from_chain=from_chain,
            from_proto=from_proto,
            to_chain=to_chain,
            to_proto=to_proto,
            amount=amount,
            reason_code=reason_code,
        )
        return Result.success(True)

    # ========== Admin configuration ==========

    def set_deposit_fee(self, caller: Identity, bps: int) -> Result[int]:
        return self._set_fee("set_deposit_fee", "deposit_fee_bps", caller, bps)

    def set_withdraw_fee(self, caller: Identity, bps: int) -> Result[int]:
        return self._set_fee("set_withdraw_fee", "withdraw_fee_bps", caller, bps)

    def set_cap(self, caller: Identity, cap: Optional[int]) -> Result[Optional[int]]:
        """Set or clear (None) the deposit cap."""
        op = "set_cap"
        with self._lock:
            if not self._roles.is_admin(caller):
                return self._reject(op, VaultError.NOT_ADMIN, "caller is not admin", caller)
            if cap is not None and not is_uint(cap):
                return self._reject(op, VaultError.INVALID_AMOUNT, "cap must be an unsigned integer or None", caller)
            self._state.cap = cap

        logger.info("Deposit cap set to %s by %s", cap, caller)
        self._record("config_change", f"Cap set to {cap}", caller, cap=cap)
        return Result.success(cap)

    def collect_fees(self, caller: Identity, recipient: Identity) -> Result[int]:
        """Pay accrued protocol fees to `recipient` and reset the counter."""
        op = "collect_fees"
        with self._lock:
            if not self._roles.is_admin(caller):
                return self._reject(op, VaultError.NOT_ADMIN, "caller is not admin", caller)
            amount = self._state.accrued_fees
            if amount > 0 and self._custody is not None:
                sent = self._custody.send(recipient, amount)
                if not sent.ok:
                    return self._reject(op, VaultError.TRANSFER_FAILED, f"fee transfer failed: {sent.reason}", caller)
            self._state.accrued_fees = 0

        logger.info("Collected %s in fees to %s", amount, recipient)
        self._record("fees_collected", f"Collected {amount} fees", caller, amount=amount, recipient=str(recipient))
        return Result.success(amount)

    # ========== Reads ==========

    def get_total_underlying(self) -> int:
        return self._state.total_underlying

    def get_total_shares(self) -> int:
        return self._state.total_shares

    def get_fees(self) -> FeeConfig:
        return FeeConfig(
            deposit_fee_bps=self._state.deposit_fee_bps,
            withdraw_fee_bps=self._state.withdraw_fee_bps,
        )

    def get_cap(self) -> Optional[int]:
        return self._state.cap

    def get_accrued_fees(self) -> int:
        return self._state.accrued_fees

    def get_exchange_rate(self) -> int:
        """Underlying per share at 1_000_000 precision."""
        return vmath.exchange_rate(self._state.total_underlying, self._state.total_shares)

    def get_share_balance(self, holder: Identity) -> int:
        return self._token.balance_of(holder)

    def get_strategy_change_requests(self) -> list[StrategyChangeRequest]:
        return list(self._state.strategy_changes)

    def get_state(self) -> VaultSnapshot:
        state = self._state
        return VaultSnapshot(
            total_underlying=state.total_underlying,
            total_shares=state.total_shares,
            deposit_fee_bps=state.deposit_fee_bps,
            withdraw_fee_bps=state.withdraw_fee_bps,
            cap=state.cap,
            accrued_fees=state.accrued_fees,
            exchange_rate=self.get_exchange_rate(),
        )

    def preview_deposit(self, amount: int) -> int:
        """Shares a deposit of `amount` would mint at current totals (0 if it would be rejected on amount)."""
        state = self._state
        if not is_uint(amount) or amount == 0:
            return 0
        if state.total_shares > 0 and state.total_underlying == 0:
            return 0
        try:
            net = amount - vmath.fee_for(amount, state.deposit_fee_bps)
            return vmath.shares_for_deposit(net, state.total_shares, state.total_underlying)
        except OverflowError:
            return 0

    def preview_withdraw(self, shares: int) -> int:
        """Net underlying a withdraw of `shares` would pay, withdraw fee applied."""
        state = self._state
        if not is_uint(shares) or shares == 0:
            return 0
        try:
            gross = vmath.assets_for_shares(shares, state.total_shares, state.total_underlying)
            return gross - vmath.fee_for(gross, state.withdraw_fee_bps)
        except OverflowError:
            return 0

    # ========== Internals ==========

    def _is_keeper(self, caller: Identity) -> bool:
        return self._roles.is_keeper(caller) or self._roles.is_admin(caller)

    def _set_fee(self, op: str, attr: str, caller: Identity, bps: int) -> Result[int]:
        with self._lock:
            if not self._roles.is_admin(caller):
                return self._reject(op, VaultError.NOT_ADMIN, "caller is not admin", caller)
            if not _valid_fee(bps):
                return self._reject(op, VaultError.INVALID_FEE, f"fee must be in [0, {BPS_DENOMINATOR})", caller)
            setattr(self._state, attr, bps)

        logger.info("%s set to %s by %s", attr, bps, caller)
        self._record("config_change", f"{attr} set to {bps}", caller, **{attr: bps})
        return Result.success(bps)

    def _compensate(self, action: str, result: Result) -> None:
        if not result.ok:
            logger.error("Compensation '%s' failed: %s", action, result.reason)
            if self._audit is not None:
                self._audit.record_rejection(f"compensate:{action}", str(result.error), result.reason)

    def _reject(self, operation: str, code: VaultError, reason: str, caller: Identity) -> Result:
        logger.warning("%s rejected for %s: %s (%s)", operation, caller, reason, code.name)
        if self._audit is not None:
            self._audit.record_rejection(operation, code.name, reason, actor=str(caller))
        return Result.failure(code, reason)

    def _record(self, event_type, message: str, caller: Identity, **context) -> None:
        if self._audit is not None:
            self._audit.record(event_type, message, actor=str(caller), context=context)
