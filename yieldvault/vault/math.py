"""Checked unsigned integer arithmetic and share-price math.

All quantities are integers in [0, UINT_MAX]. Helpers raise instead of
wrapping; callers translate the exceptions into result codes.
"""

from __future__ import annotations

from yieldvault.types import BPS_DENOMINATOR, PRECISION, UINT_MAX


class UnderflowError(ArithmeticError):
    """Unsigned result would be negative."""


def _check(value: int) -> int:
    if value < 0:
        raise UnderflowError(f"unsigned underflow: {value}")
    if value > UINT_MAX:
        raise OverflowError(f"unsigned overflow: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    return _check(a + b)


def checked_sub(a: int, b: int) -> int:
    return _check(a - b)


def apply_delta(value: int, delta: int) -> int:
    """Add a signed delta to an unsigned value."""
    return _check(value + delta)


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) at full precision; only the result is range-checked."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div by zero")
    return _check(a * b // denominator)


def fee_for(amount: int, fee_bps: int) -> int:
    """Fee on `amount` at `fee_bps`, rounded down."""
    return mul_div(amount, fee_bps, BPS_DENOMINATOR)


def shares_for_deposit(net_amount: int, total_shares: int, total_underlying: int) -> int:
    """Shares minted for a net deposit at pre-deposit totals.

    Bootstraps 1:1 when no shares exist.
    """
    if total_shares == 0:
        return net_amount
    return mul_div(net_amount, total_shares, total_underlying)


def assets_for_shares(shares: int, total_shares: int, total_underlying: int) -> int:
    """Gross underlying redeemable for `shares`, rounded down."""
    if total_shares == 0:
        return 0
    return mul_div(shares, total_underlying, total_shares)


def exchange_rate(total_underlying: int, total_shares: int) -> int:
    """Underlying per share at PRECISION fixed point.

    A read-only quote, so it may exceed UINT_MAX for very large pools.
    """
    if total_shares == 0:
        return PRECISION
    return total_underlying * PRECISION // total_shares
