"""
FxRateService -- exchange-rate maintenance and resolution.

Responsibility:
    Records dated rates and resolves the rate to use for a currency pair on
    a given date.  Rates are shared across tenants.

Architecture position:
    Kernel > Services.  Used by billing (invoice and payment conversion)
    and FX revaluation.

Invariants enforced:
    - A pair with identical codes always resolves to 1.
    - Latest-by-date wins; among rows with the same rate_date the most
      recently recorded row wins.
    - Stored rates are > 0 with distinct ISO 4217 codes.

Failure modes:
    - strict mode: ExchangeRateNotFoundError when no rate exists.
    - lenient mode: falls back to the caller's fallback, else 1, and logs
      fx_rate_defaulted so silent defaults stay observable.
    - InvalidExchangeRateError / InvalidCurrencyError from record_rate().
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.money import ONE, ZERO, to_decimal, validate_currency
from ledger_kernel.exceptions import (
    ExchangeRateNotFoundError,
    InvalidAmountError,
    InvalidExchangeRateError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.exchange_rate import FxRate
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.fx_rates")


class FxRateService(BaseService):
    """
    Contract:
        resolve_rate(base, quote) returns the factor that converts an amount
        in ``base`` into ``quote``.

    Non-goals:
        - Inverse lookup or triangulation through a third currency.
    """

    def __init__(self, session: Session, strict: bool = False, clock: Clock | None = None):
        super().__init__(session, clock)
        self.strict = strict
        self._sequences = SequenceService(session)

    def record_rate(
        self,
        base_code: str,
        quote_code: str,
        rate: Any,
        rate_date: date,
        actor_id: UUID | None = None,
    ) -> FxRate:
        base = validate_currency(base_code)
        quote = validate_currency(quote_code)
        if base == quote:
            raise InvalidExchangeRateError(rate, "base and quote currency must differ")
        try:
            value = to_decimal(rate, "rate")
        except InvalidAmountError:
            raise InvalidExchangeRateError(rate, "rate must be a finite number") from None
        if value <= ZERO:
            raise InvalidExchangeRateError(rate, "rate must be positive")

        fx = FxRate(
            base_code=base,
            quote_code=quote,
            rate=value,
            rate_date=rate_date,
            recorded_seq=self._sequences.next_value(SequenceService.FX_RATE),
            created_by_id=actor_id,
        )
        self.session.add(fx)
        self.session.flush()

        logger.info(
            "fx_rate_recorded",
            extra={
                "base_code": base,
                "quote_code": quote,
                "rate": str(value),
                "rate_date": rate_date.isoformat(),
            },
        )
        return fx

    def latest(
        self,
        base_code: str,
        quote_code: str,
        as_of: date | None = None,
    ) -> FxRate | None:
        """Most recent stored rate for the pair, optionally on or before as_of."""
        query = select(FxRate).where(
            FxRate.base_code == base_code.upper(),
            FxRate.quote_code == quote_code.upper(),
        )
        if as_of is not None:
            query = query.where(FxRate.rate_date <= as_of)
        query = query.order_by(
            FxRate.rate_date.desc(),
            FxRate.recorded_seq.desc(),
        )
        return self.session.execute(query.limit(1)).scalar_one_or_none()

    def resolve_rate(
        self,
        base_code: str,
        quote_code: str,
        as_of: date | None = None,
        fallback: Decimal | None = None,
    ) -> Decimal:
        """
        Rate converting ``base_code`` amounts into ``quote_code``.

        Args:
            base_code: Currency of the amount being converted.
            quote_code: Target currency (normally the tenant's base).
            as_of: Only rates dated on or before this date are considered.
            fallback: Lenient-mode value when no rate exists.

        Raises:
            ExchangeRateNotFoundError: strict mode and no stored rate.
        """
        if base_code.upper() == quote_code.upper():
            return ONE

        fx = self.latest(base_code, quote_code, as_of)
        if fx is not None:
            return Decimal(fx.rate)

        if self.strict:
            logger.warning(
                "fx_rate_missing",
                extra={"base_code": base_code, "quote_code": quote_code, "as_of": as_of},
            )
            raise ExchangeRateNotFoundError(base_code, quote_code, as_of)

        defaulted = fallback if fallback is not None and fallback > ZERO else ONE
        logger.warning(
            "fx_rate_defaulted",
            extra={
                "base_code": base_code,
                "quote_code": quote_code,
                "as_of": as_of,
                "rate": str(defaulted),
                "used_fallback": fallback is not None and fallback > ZERO,
            },
        )
        return Decimal(defaulted)
