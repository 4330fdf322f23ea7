from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Generic, Literal, Optional, TypeVar

PRECISION = 1_000_000
BPS_DENOMINATOR = 10_000
UINT_MAX = 2**128 - 1

T = TypeVar("T")

FeeAccounting = Literal["pool", "treasury"]


@dataclass(frozen=True)
class Identity:
    """Opaque account identifier (principal address)."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Identity value must be a non-empty string")
        if any(ch.isspace() for ch in self.value):
            raise ValueError(f"Identity value must not contain whitespace: {self.value!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a state transition.

    `error` holds the component's own code on failure; `value` is only
    meaningful when `ok` is True.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[IntEnum] = None
    reason: str = ""

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(ok=True, value=value, reason="ok")

    @classmethod
    def failure(cls, error: IntEnum, reason: str) -> Result[T]:
        return cls(ok=False, error=error, reason=reason)


@dataclass(frozen=True, order=True)
class StrategyKey:
    chain_id: int
    proto_id: int


@dataclass(frozen=True)
class StrategyMetadata:
    description: str
    url: str
    logo_url: str
    risk_level: int  # 1-5
    expected_apr_bps: int


@dataclass(frozen=True)
class StrategyRecord:
    key: StrategyKey
    name: str
    min_amount: int
    max_amount: int
    fee_bps: int
    address: Optional[Identity] = None
    enabled: bool = True
    metadata: Optional[StrategyMetadata] = None


@dataclass(frozen=True)
class FeeConfig:
    deposit_fee_bps: int
    withdraw_fee_bps: int


@dataclass(frozen=True)
class VaultSnapshot:
    total_underlying: int
    total_shares: int
    deposit_fee_bps: int
    withdraw_fee_bps: int
    cap: Optional[int]
    accrued_fees: int
    exchange_rate: int


@dataclass(frozen=True)
class StrategyChangeRequest:
    """Reallocation intent recorded for an external executor."""

    requested_by: Identity
    source: StrategyKey
    destination: StrategyKey
    amount: int
    reason_code: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def is_uint(value: object) -> bool:
    """Return True for a non-negative, in-range integer (bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= UINT_MAX
