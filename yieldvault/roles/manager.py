"""Role management.

Owns the admin identity, the keeper and pauser sets, and the paused flag that
acts as the emergency stop for the vault.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from threading import Lock
from typing import Iterable, Optional

from yieldvault.audit import AuditLog
from yieldvault.types import Identity, Result

logger = logging.getLogger(__name__)


class RoleError(IntEnum):
    NOT_AUTHORIZED = 100
    ALREADY_EXISTS = 101
    NOT_FOUND = 102


@dataclass
class RoleState:
    """Role assignments for one deployment."""

    admin: Identity
    keepers: set[Identity] = field(default_factory=set)
    pausers: set[Identity] = field(default_factory=set)
    paused: bool = False


class RoleManager:
    """Admin / keeper / pauser hierarchy with a pause switch.

    The admin is always authorized for every gated operation. Pausers may halt
    but never resume.

    Thread-safety: mutating operations are serialized on an internal lock.
    """

    def __init__(self, admin: Identity, audit: Optional[AuditLog] = None) -> None:
        """Initialize role manager.

        Args:
            admin: Initial admin (the deployer)
            audit: Optional audit log for transitions and rejections
        """
        self._state = RoleState(admin=admin)
        self._audit = audit
        self._lock = Lock()

    # ========== Reads ==========

    def is_admin(self, identity: Identity) -> bool:
        return identity == self._state.admin

    def get_admin(self) -> Identity:
        return self._state.admin

    def is_keeper(self, identity: Identity) -> bool:
        return identity in self._state.keepers

    def is_pauser(self, identity: Identity) -> bool:
        return identity in self._state.pausers

    def is_paused(self) -> bool:
        return self._state.paused

    def get_keepers(self) -> frozenset[Identity]:
        return frozenset(self._state.keepers)

    def get_pausers(self) -> frozenset[Identity]:
        return frozenset(self._state.pausers)

    # ========== Admin transfer ==========

    def set_admin(self, caller: Identity, new_admin: Identity) -> Result[Identity]:
        """Replace the admin. Caller must be the current admin."""
        with self._lock:
            if not self.is_admin(caller):
                return self._reject("set_admin", RoleError.NOT_AUTHORIZED, "caller is not admin", caller)
            previous = self._state.admin
            self._state.admin = new_admin
        logger.info("Admin transferred from %s to %s", previous, new_admin)
        self._record("role_change", f"Admin set to {new_admin}", caller, previous=str(previous), admin=str(new_admin))
        return Result.success(new_admin)

    # ========== Keepers / pausers ==========

    def add_keeper(self, caller: Identity, keeper: Identity) -> Result[Identity]:
        return self._add_member("keeper", self._state.keepers, caller, keeper)

    def add_pauser(self, caller: Identity, pauser: Identity) -> Result[Identity]:
        return self._add_member("pauser", self._state.pausers, caller, pauser)

    def remove_keeper(self, caller: Identity, keeper: Identity) -> Result[Identity]:
        return self._remove_member("keeper", self._state.keepers, caller, keeper)

    def remove_pauser(self, caller: Identity, pauser: Identity) -> Result[Identity]:
        return self._remove_member("pauser", self._state.pausers, caller, pauser)

    def add_keepers(self, caller: Identity, keepers: Iterable[Identity]) -> Result[tuple[Identity, ...]]:
        """Add several keepers in one transition; existing members are skipped."""
        return self._add_members("keeper", self._state.keepers, caller, keepers)

    def add_pausers(self, caller: Identity, pausers: Iterable[Identity]) -> Result[tuple[Identity, ...]]:
        """Add several pausers in one transition; existing members are skipped."""
        return self._add_members("pauser", self._state.pausers, caller, pausers)

    # ========== Pause ==========

    def set_paused(self, caller: Identity, value: bool) -> Result[bool]:
        """Set the paused flag.

        Pausing is open to the admin and pausers; unpausing is admin-only.
        """
        with self._lock:
            allowed = self.is_admin(caller) or (value and self.is_pauser(caller))
            if not allowed:
                reason = "caller may not pause" if value else "only admin may unpause"
                return self._reject("set_paused", RoleError.NOT_AUTHORIZED, reason, caller)
            self._state.paused = bool(value)
        logger.info("Paused flag set to %s by %s", value, caller)
        self._record("pause", f"Paused set to {value}", caller, paused=bool(value))
        return Result.success(bool(value))

    def unpause(self, caller: Identity) -> Result[bool]:
        with self._lock:
            if not self.is_admin(caller):
                return self._reject("unpause", RoleError.NOT_AUTHORIZED, "only admin may unpause", caller)
            self._state.paused = False
        logger.info("Vault unpaused by %s", caller)
        self._record("pause", "Unpaused", caller, paused=False)
        return Result.success(False)

    def emergency_pause(self, caller: Identity) -> Result[bool]:
        with self._lock:
            if not (self.is_admin(caller) or self.is_pauser(caller)):
                return self._reject("emergency_pause", RoleError.NOT_AUTHORIZED, "caller may not pause", caller)
            self._state.paused = True
        logger.warning("Emergency pause triggered by %s", caller)
        self._record("pause", "Emergency pause", caller, paused=True)
        return Result.success(True)

    # ========== Internals ==========

    def _add_member(self, role: str, members: set[Identity], caller: Identity, identity: Identity) -> Result[Identity]:
        op = f"add_{role}"
        with self._lock:
            if not self.is_admin(caller):
                return self._reject(op, RoleError.NOT_AUTHORIZED, "caller is not admin", caller)
            if identity in members:
                return self._reject(op, RoleError.ALREADY_EXISTS, f"{identity} is already a {role}", caller)
            members.add(identity)
        logger.info("Added %s %s", role, identity)
        self._record("role_change", f"Added {role} {identity}", caller, role=role, member=str(identity))
        return Result.success(identity)

    def _remove_member(
        self, role: str, members: set[Identity], caller: Identity, identity: Identity
    ) -> Result[Identity]:
        op = f"remove_{role}"
        with self._lock:
            if not self.is_admin(caller):
                return self._reject(op, RoleError.NOT_AUTHORIZED, "caller is not admin", caller)
            if identity not in members:
                return self._reject(op, RoleError.NOT_FOUND, f"{identity} is not a {role}", caller)
            members.discard(identity)
        logger.info("Removed %s %s", role, identity)
        self._record("role_change", f"Removed {role} {identity}", caller, role=role, member=str(identity))
        return Result.success(identity)

    def _add_members(
        self, role: str, members: set[Identity], caller: Identity, identities: Iterable[Identity]
    ) -> Result[tuple[Identity, ...]]:
        op = f"add_{role}s"
        with self._lock:
            if not self.is_admin(caller):
                return self._reject(op, RoleError.NOT_AUTHORIZED, "caller is not admin", caller)
            added: list[Identity] = []
            for identity in identities:
                if identity in members or identity in added:
                    continue
                added.append(identity)
            members.update(added)
        logger.info("Added %d %ss", len(added), role)
        self._record(
            "role_change", f"Added {len(added)} {role}s", caller, role=role, members=[str(i) for i in added]
        )
        return Result.success(tuple(added))

    def _reject(self, operation: str, code: RoleError, reason: str, caller: Identity) -> Result:
        logger.warning("%s rejected for %s: %s (%s)", operation, caller, reason, code.name)
        if self._audit is not None:
            self._audit.record_rejection(operation, code.name, reason, actor=str(caller))
        return Result.failure(code, reason)

    def _record(self, event_type, message: str, caller: Identity, **context) -> None:
        if self._audit is not None:
            self._audit.record(event_type, message, actor=str(caller), context=context)
