from __future__ import annotations

from typing import Protocol

from yieldvault.types import Identity


class RoleProvider(Protocol):
    def is_admin(self, identity: Identity) -> bool:
        """Whether identity is the current admin."""

    def is_keeper(self, identity: Identity) -> bool:
        """Whether identity is in the keeper set."""

    def is_pauser(self, identity: Identity) -> bool:
        """Whether identity is in the pauser set."""

    def is_paused(self) -> bool:
        """Whether the emergency stop is engaged."""
