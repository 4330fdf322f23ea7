"""Strategy registry.

Enumerates the (chain, protocol) venues eligible to receive reallocated
capital, with their amount bounds, fee and descriptive metadata. Records are
never removed; disabling a strategy keeps its historical lookup stable.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import IntEnum
from threading import Lock
from typing import Optional, Union

from yieldvault.audit import AuditLog
from yieldvault.roles.interfaces import RoleProvider
from yieldvault.types import (
    BPS_DENOMINATOR,
    Identity,
    Result,
    StrategyKey,
    StrategyMetadata,
    StrategyRecord,
    is_uint,
)

logger = logging.getLogger(__name__)

MAX_NAME_BYTES = 64
MAX_DESCRIPTION_BYTES = 256
MAX_URL_BYTES = 128
MIN_RISK_LEVEL = 1
MAX_RISK_LEVEL = 5

Text = Union[str, bytes]


class RegistryError(IntEnum):
    NOT_AUTHORIZED = 100
    ALREADY_EXISTS = 101
    STRATEGY_ALREADY_EXISTS = 102
    STRATEGY_NOT_FOUND = 103
    INVALID_PARAMETERS = 104


def _bounded_text(value: Text, max_bytes: int, *, allow_empty: bool = True) -> Optional[str]:
    """Normalize to str; return None if it is not valid UTF-8 within max_bytes."""
    if isinstance(value, bytes):
        raw = value
        try:
            text = value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    elif isinstance(value, str):
        text = value
        raw = value.encode("utf-8")
    else:
        return None
    if len(raw) > max_bytes or (not allow_empty and not raw):
        return None
    return text


def _params_error(min_amount: int, max_amount: int, fee_bps: int) -> Optional[str]:
    if not (is_uint(min_amount) and is_uint(max_amount) and is_uint(fee_bps)):
        return "amounts and fee must be unsigned integers"
    if min_amount > max_amount:
        return f"min_amount {min_amount} exceeds max_amount {max_amount}"
    if fee_bps >= BPS_DENOMINATOR:
        return f"fee_bps {fee_bps} must be below {BPS_DENOMINATOR}"
    return None


class StrategyRegistry:
    """Admin-managed allowlist of strategies keyed by (chain_id, proto_id)."""

    def __init__(self, roles: RoleProvider, audit: Optional[AuditLog] = None) -> None:
        """Initialize strategy registry.

        Args:
            roles: Role provider used for admin checks
            audit: Optional audit log for transitions and rejections
        """
        self._roles = roles
        self._audit = audit
        self._strategies: dict[StrategyKey, StrategyRecord] = {}
        self._lock = Lock()

    # ========== Mutations ==========

    def add_strategy(
        self,
        caller: Identity,
        chain_id: int,
        proto_id: int,
        name: Text,
        address: Optional[Identity],
        min_amount: int,
        max_amount: int,
        fee_bps: int,
    ) -> Result[StrategyKey]:
        """Register a new strategy, enabled by default.

        Returns:
            Result holding the new key on success. Fails with NOT_AUTHORIZED,
            INVALID_PARAMETERS or STRATEGY_ALREADY_EXISTS.
        """
        op = "add_strategy"
        with self._lock:
            if not self._roles.is_admin(caller):
                return self._reject(op, RegistryError.NOT_AUTHORIZED, "caller is not admin", caller)
            if not (is_uint(chain_id) and is_uint(proto_id)) or chain_id == 0 or proto_id == 0:
                return self._reject(
                    op, RegistryError.INVALID_PARAMETERS, "chain_id and proto_id must be positive", caller
                )
            reason = _params_error(min_amount, max_amount, fee_bps)
            if reason is not None:
                return self._reject(op, RegistryError.INVALID_PARAMETERS, reason, caller)
            text_name = _bounded_text(name, MAX_NAME_BYTES, allow_empty=False)
            if text_name is None:
                return self._reject(
                    op, RegistryError.INVALID_PARAMETERS, f"name must be 1-{MAX_NAME_BYTES} bytes", caller
                )
            if address is not None and not isinstance(address, Identity):
                return self._reject(op, RegistryError.INVALID_PARAMETERS, "address must be an Identity", caller)

            key = StrategyKey(chain_id=chain_id, proto_id=proto_id)
            if key in self._strategies:
                return self._reject(op, RegistryError.STRATEGY_ALREADY_EXISTS, f"strategy {key} exists", caller)

            self._strategies[key] = StrategyRecord(
                key=key,
                name=text_name,
                address=address,
                min_amount=min_amount,
                max_amount=max_amount,
                fee_bps=fee_bps,
                enabled=True,
            )

        logger.info("Added strategy %s/%s (%s)", chain_id, proto_id, text_name)
        self._record(f"Added strategy {text_name}", caller, key, name=text_name)
        return Result.success(key)

    def enable_strategy(self, caller: Identity, chain_id: int, proto_id: int) -> Result[bool]:
        return self._set_enabled(caller, chain_id, proto_id, True)

    def disable_strategy(self, caller: Identity, chain_id: int, proto_id: int) -> Result[bool]:
        return self._set_enabled(caller, chain_id, proto_id, False)

    def update_strategy_params(
        self,
        caller: Identity,
        chain_id: int,
        proto_id: int,
        min_amount: int,
        max_amount: int,
        fee_bps: int,
    ) -> Result[bool]:
        op = "update_strategy_params"
        with self._lock:
            if not self._roles.is_admin(caller):
                return self._reject(op, RegistryError.NOT_AUTHORIZED, "caller is not admin", caller)
            reason = _params_error(min_amount, max_amount, fee_bps)
            if reason is not None:
                return self._reject(op, RegistryError.INVALID_PARAMETERS, reason, caller)
            key = StrategyKey(chain_id=chain_id, proto_id=proto_id)
            record = self._strategies.get(key)
            if record is None:
                return self._reject(op, RegistryError.STRATEGY_NOT_FOUND, f"strategy {key} not found", caller)
            self._strategies[key] = replace(record, min_amount=min_amount, max_amount=max_amount, fee_bps=fee_bps)

        logger.info(
            "Updated strategy %s/%s params: [%s, %s] fee=%s", chain_id, proto_id, min_amount, max_amount, fee_bps
        )
        self._record(
            "Updated strategy params", caller, key, min_amount=min_amount, max_amount=max_amount, fee_bps=fee_bps
        )
        return Result.success(True)

    def set_strategy_metadata(
        self,
        caller: Identity,
        chain_id: int,
        proto_id: int,
        description: Text,
        url: Text,
        logo_url: Text,
        risk_level: int,
        expected_apr_bps: int,
    ) -> Result[bool]:
        op = "set_strategy_metadata"
        with self._lock:
            if not self._roles.is_admin(caller):
                return self._reject(op, RegistryError.NOT_AUTHORIZED, "caller is not admin", caller)
            key = StrategyKey(chain_id=chain_id, proto_id=proto_id)
            record = self._strategies.get(key)
            if record is None:
                return self._reject(op, RegistryError.STRATEGY_NOT_FOUND, f"strategy {key} not found", caller)

            text_description = _bounded_text(description, MAX_DESCRIPTION_BYTES)
            text_url = _bounded_text(url, MAX_URL_BYTES)
            text_logo = _bounded_text(logo_url, MAX_URL_BYTES)
            if text_description is None or text_url is None or text_logo is None:
                return self._reject(op, RegistryError.INVALID_PARAMETERS, "metadata text out of bounds", caller)
            if not is_uint(risk_level) or not MIN_RISK_LEVEL <= risk_level <= MAX_RISK_LEVEL:
                return self._reject(
                    op,
                    RegistryError.INVALID_PARAMETERS,
                    f"risk_level must be {MIN_RISK_LEVEL}-{MAX_RISK_LEVEL}",
                    caller,
                )
            if not is_uint(expected_apr_bps):
                return self._reject(
                    op, RegistryError.INVALID_PARAMETERS, "expected_apr_bps must be an unsigned integer", caller
                )

            metadata = StrategyMetadata(
                description=text_description,
                url=text_url,
                logo_url=text_logo,
                risk_level=risk_level,
                expected_apr_bps=expected_apr_bps,
            )
            self._strategies[key] = replace(record, metadata=metadata)

        logger.info("Set metadata for strategy %s/%s (risk=%s)", chain_id, proto_id, risk_level)
        self._record("Set strategy metadata", caller, key, risk_level=risk_level, expected_apr_bps=expected_apr_bps)
        return Result.success(True)

    # ========== Reads ==========

    def get_strategy(self, chain_id: int, proto_id: int) -> Optional[StrategyRecord]:
        return self._strategies.get(StrategyKey(chain_id=chain_id, proto_id=proto_id))

    def get_strategy_metadata(self, chain_id: int, proto_id: int) -> Optional[StrategyMetadata]:
        record = self.get_strategy(chain_id, proto_id)
        return record.metadata if record is not None else None

    def strategy_exists(self, chain_id: int, proto_id: int) -> bool:
        return StrategyKey(chain_id=chain_id, proto_id=proto_id) in self._strategies

    def is_strategy_enabled(self, chain_id: int, proto_id: int) -> bool:
        record = self.get_strategy(chain_id, proto_id)
        return record is not None and record.enabled

    def validate_strategy(self, chain_id: int, proto_id: int, amount: int) -> bool:
        """Whether `amount` may be routed to an enabled strategy right now."""
        record = self.get_strategy(chain_id, proto_id)
        if record is None or not record.enabled:
            return False
        return record.min_amount <= amount <= record.max_amount

    def get_strategies_for_chain(self, chain_id: int) -> tuple[StrategyKey, ...]:
        return tuple(sorted(key for key in self._strategies if key.chain_id == chain_id))

    def get_all_strategies(self) -> list[StrategyRecord]:
        return [self._strategies[key] for key in sorted(self._strategies)]

    # ========== Internals ==========

    def _set_enabled(self, caller: Identity, chain_id: int, proto_id: int, enabled: bool) -> Result[bool]:
        op = "enable_strategy" if enabled else "disable_strategy"
        with self._lock:
            if not self._roles.is_admin(caller):
                return self._reject(op, RegistryError.NOT_AUTHORIZED, "caller is not admin", caller)
            key = StrategyKey(chain_id=chain_id, proto_id=proto_id)
            record = self._strategies.get(key)
            if record is None:
                return self._reject(op, RegistryError.STRATEGY_NOT_FOUND, f"strategy {key} not found", caller)
            self._strategies[key] = replace(record, enabled=enabled)

        logger.info("Strategy %s/%s %s", chain_id, proto_id, "enabled" if enabled else "disabled")
        self._record(f"Strategy {'enabled' if enabled else 'disabled'}", caller, key, enabled=enabled)
        return Result.success(True)

    def _reject(self, operation: str, code: RegistryError, reason: str, caller: Identity) -> Result:
        logger.warning("%s rejected for %s: %s (%s)", operation, caller, reason, code.name)
        if self._audit is not None:
            self._audit.record_rejection(operation, code.name, reason, actor=str(caller))
        return Result.failure(code, reason)

    def _record(self, message: str, caller: Identity, key: StrategyKey, **context) -> None:
        if self._audit is not None:
            self._audit.record(
                "strategy_update",
                message,
                actor=str(caller),
                context={"chain_id": key.chain_id, "proto_id": key.proto_id, **context},
            )
