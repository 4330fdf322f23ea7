"""Role-based access control.

Admin, keeper and pauser roles plus the pause switch.
"""

from .interfaces import RoleProvider
from .manager import RoleError, RoleManager, RoleState

__all__ = [
    "RoleError",
    "RoleManager",
    "RoleProvider",
    "RoleState",
]
