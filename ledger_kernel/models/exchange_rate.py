"""
Module: ledger_kernel.models.exchange_rate
Responsibility: ORM persistence for currency exchange rates.  Each row is a
    dated conversion factor between two ISO 4217 currencies.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - rate > 0 and base_code != quote_code (validated by FxRateService).
    - Rates are shared across tenants; the latest row by rate_date is
      authoritative for a pair.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import Rate, round_money


class FxRate(TrackedBase):
    """
    Dated exchange rate -- one directional conversion factor.

    Contract:
        ``amount_in_base_code * rate = amount_in_quote_code``.  For a tenant
        whose base currency is SAR, a USD receivable is converted with the
        USD/SAR row (base_code="USD", quote_code="SAR").

    Non-goals:
        - Inverse-rate consistency or triangulation.
    """

    __tablename__ = "fx_rates"

    __table_args__ = (
        Index("idx_fx_rate_lookup", "base_code", "quote_code", "rate_date"),
    )

    base_code: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    quote_code: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    rate: Mapped[Rate] = mapped_column(
        nullable=False,
    )

    rate_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # Recording order; breaks ties between rows with the same rate_date
    recorded_seq: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<FxRate {self.base_code}/{self.quote_code} = {self.rate} @ {self.rate_date}>"

    def convert(self, amount: Decimal) -> Decimal:
        """Convert an amount in base_code into quote_code, rounded to 2 places."""
        return round_money(amount * self.rate)
