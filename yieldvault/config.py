"""Deployment configuration.

Settings are validated on construction. `from_env` reads `YIELDVAULT_*`
environment variables; unset variables fall back to the field defaults.
"""

from __future__ import annotations

import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from yieldvault.types import BPS_DENOMINATOR, UINT_MAX

ENV_PREFIX = "YIELDVAULT_"


class VaultSettings(BaseModel):
    """Validated vault deployment settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    vault_identity: str = Field("vault", min_length=1, description="Identity the vault acts as")
    deposit_fee_bps: int = Field(0, ge=0, lt=BPS_DENOMINATOR, description="Deposit fee in basis points")
    withdraw_fee_bps: int = Field(0, ge=0, lt=BPS_DENOMINATOR, description="Withdraw fee in basis points")
    cap: Optional[int] = Field(None, ge=0, le=UINT_MAX, description="Deposit cap (None = uncapped)")
    deposit_fee_accounting: Literal["pool", "treasury"] = Field(
        "pool", description="Whether deposit fees stay in the pool or accrue to the treasury"
    )
    share_name: str = Field("Vault Share", min_length=1)
    share_symbol: str = Field("vSHARE", min_length=1)
    share_decimals: int = Field(6, ge=0, le=18)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> VaultSettings:
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (for tests)

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for name in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            raw = raw.strip()
            if name == "cap" and raw.lower() in ("", "none"):
                values[name] = None
            else:
                values[name] = raw
        return cls.model_validate(values)
