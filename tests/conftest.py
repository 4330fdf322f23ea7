"""Shared test fixtures for pytest.

Provides identities and fully wired deployments used across test files.
"""

import pytest

from yieldvault.deployment import Deployment, deploy
from yieldvault.registry import StrategyRegistry
from yieldvault.roles import RoleManager
from yieldvault.types import Identity

STARTING_BALANCE = 10_000_000


@pytest.fixture
def deployer() -> Identity:
    return Identity("ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM")


@pytest.fixture
def alice() -> Identity:
    return Identity("ST1SJ3DTE5DN7X54YDH5D64R3BCB6A2AG2ZQ8YPD5")


@pytest.fixture
def bob() -> Identity:
    return Identity("ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG")


@pytest.fixture
def carol() -> Identity:
    return Identity("ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC")


@pytest.fixture
def roles(deployer: Identity) -> RoleManager:
    return RoleManager(admin=deployer)


@pytest.fixture
def registry(roles: RoleManager) -> StrategyRegistry:
    return StrategyRegistry(roles=roles)


@pytest.fixture
def deployment(deployer: Identity, alice: Identity, bob: Identity) -> Deployment:
    """Deployment with zero fees, no cap and funded depositors."""
    return deploy(deployer, initial_balances={alice: STARTING_BALANCE, bob: STARTING_BALANCE})
