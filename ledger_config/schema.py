"""
Runtime configuration schema for the ledger.

Defines the structure and defaults for ledger-wide settings.  Values are
loaded from YAML by ``ledger_config.get_active_config()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from typing import Any

from ledger_kernel.db.types import is_valid_currency
from ledger_kernel.domain.roles import DEFAULT_ROLE_CODES

logger = logging.getLogger("ledger_kernel.config")

FX_RATE_MODES = ("lenient", "strict")
SETTLEMENT_BASES = ("invoice_total", "carrying_value")


@dataclass(frozen=True)
class LedgerConfig:
    """
    Ledger configuration.

    Field defaults match the behaviour of a single-company SAR deployment:

        config = LedgerConfig(
            default_base_currency="USD",
            fx_rate_mode="strict",
        )

    fx_rate_mode:
        ``lenient`` defaults a missing exchange rate to the caller's
        fallback (or 1) and logs it; ``strict`` raises
        ExchangeRateNotFoundError.
    settlement_credit_basis:
        ``invoice_total`` credits AR with the full invoice total on every
        payment and books the difference to the payment as FX gain or loss;
        ``carrying_value`` credits AR with the paid portion at the
        invoice's booked rate.
    """

    default_base_currency: str = "SAR"
    fx_rate_mode: str = "lenient"
    materiality_threshold: Decimal = Decimal("0.01")
    cash_account_prefix: str = "10"
    settlement_credit_basis: str = "invoice_total"
    role_codes: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ROLE_CODES))

    def __post_init__(self):
        if not is_valid_currency(self.default_base_currency):
            raise ValueError(
                f"default_base_currency must be an ISO 4217 code, "
                f"got '{self.default_base_currency}'"
            )
        if self.fx_rate_mode not in FX_RATE_MODES:
            raise ValueError(
                f"fx_rate_mode must be one of {FX_RATE_MODES}, got '{self.fx_rate_mode}'"
            )
        if self.settlement_credit_basis not in SETTLEMENT_BASES:
            raise ValueError(
                f"settlement_credit_basis must be one of {SETTLEMENT_BASES}, "
                f"got '{self.settlement_credit_basis}'"
            )
        try:
            threshold = Decimal(str(self.materiality_threshold))
        except InvalidOperation:
            raise ValueError(
                f"materiality_threshold must be numeric, got '{self.materiality_threshold}'"
            ) from None
        if threshold < 0:
            raise ValueError("materiality_threshold cannot be negative")
        object.__setattr__(self, "materiality_threshold", threshold)

        if not self.cash_account_prefix:
            raise ValueError("cash_account_prefix cannot be empty")
        object.__setattr__(self, "cash_account_prefix", str(self.cash_account_prefix))

        merged = dict(DEFAULT_ROLE_CODES)
        merged.update({str(k): str(v) for k, v in (self.role_codes or {}).items()})
        object.__setattr__(self, "role_codes", merged)

    @property
    def strict_fx(self) -> bool:
        return self.fx_rate_mode == "strict"

    @classmethod
    def with_defaults(cls) -> LedgerConfig:
        """Create config with the built-in defaults."""
        logger.info("ledger_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerConfig:
        """Create config from a dictionary (e.g. parsed YAML). Unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")
        logger.info(
            "ledger_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
