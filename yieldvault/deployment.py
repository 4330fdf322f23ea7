"""Deployment wiring.

Builds one self-contained set of components. Deployments share nothing, so
several can coexist in one process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from yieldvault.audit import AuditLog
from yieldvault.config import VaultSettings
from yieldvault.registry import StrategyRegistry
from yieldvault.roles import RoleManager
from yieldvault.token import AssetLedger, ShareLedger
from yieldvault.types import Identity
from yieldvault.vault import VaultAccounting

logger = logging.getLogger(__name__)


@dataclass
class Deployment:
    deployer: Identity
    settings: VaultSettings
    roles: RoleManager
    registry: StrategyRegistry
    token: ShareLedger
    vault: VaultAccounting
    custody: Optional[AssetLedger] = None
    audit: AuditLog = field(default_factory=AuditLog)


def deploy(
    deployer: Identity,
    settings: Optional[VaultSettings] = None,
    *,
    initial_balances: Optional[dict[Identity, int]] = None,
    with_custody: bool = True,
) -> Deployment:
    """Deploy roles, registry, share token and vault, and bind the token to the vault.

    Args:
        deployer: Initial admin and token owner
        settings: Deployment settings (defaults if omitted)
        initial_balances: Starting underlying balances per account
        with_custody: Track underlying asset movement; False keeps the vault accounting-only

    Returns:
        Deployment holding every component

    Raises:
        RuntimeError: If the share token refuses the vault binding
    """
    settings = settings or VaultSettings()
    audit = AuditLog()
    vault_identity = Identity(settings.vault_identity)

    roles = RoleManager(admin=deployer, audit=audit)
    registry = StrategyRegistry(roles=roles, audit=audit)
    token = ShareLedger(
        owner=deployer,
        name=settings.share_name,
        symbol=settings.share_symbol,
        decimals=settings.share_decimals,
    )
    custody = AssetLedger(custodian=vault_identity, initial_balances=initial_balances) if with_custody else None
    vault = VaultAccounting(
        vault_identity=vault_identity,
        roles=roles,
        strategies=registry,
        token=token,
        custody=custody,
        deposit_fee_bps=settings.deposit_fee_bps,
        withdraw_fee_bps=settings.withdraw_fee_bps,
        cap=settings.cap,
        deposit_fee_accounting=settings.deposit_fee_accounting,
        audit=audit,
    )

    bound = token.set_vault_contract(deployer, vault_identity)
    if not bound.ok:
        raise RuntimeError(f"Share token binding failed: {bound.reason}")

    logger.info("Deployed vault %s (admin=%s)", vault_identity, deployer)
    return Deployment(
        deployer=deployer,
        settings=settings,
        roles=roles,
        registry=registry,
        token=token,
        vault=vault,
        custody=custody,
        audit=audit,
    )
