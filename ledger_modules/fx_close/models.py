"""
FX Close Domain Models (``ledger_modules.fx_close.models``).

Responsibility
--------------
Frozen value objects for unrealized exposure and period-close results, and
the pure revaluation calculation they are built from.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* unrealized == round(convert(foreign_amount, current_rate) - invoice_base, 2);
  revaluing at the booked rate always yields zero.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.money import ZERO, convert, round_money


@dataclass(frozen=True)
class InvoiceExposure:
    """One open invoice revalued at the current rate."""
    invoice_id: UUID
    invoice_no: str
    currency: str
    foreign_amount: Decimal
    original_rate: Decimal
    current_rate: Decimal
    invoice_base: Decimal
    revalued_base: Decimal
    unrealized: Decimal

    @classmethod
    def revalue(
        cls,
        invoice_id: UUID,
        invoice_no: str,
        currency: str,
        foreign_amount: Decimal,
        original_rate: Decimal,
        current_rate: Decimal,
        invoice_base: Decimal,
    ) -> "InvoiceExposure":
        revalued = convert(foreign_amount, current_rate)
        return cls(
            invoice_id=invoice_id,
            invoice_no=invoice_no,
            currency=currency,
            foreign_amount=foreign_amount,
            original_rate=original_rate,
            current_rate=current_rate,
            invoice_base=invoice_base,
            revalued_base=revalued,
            unrealized=round_money(revalued - invoice_base),
        )


@dataclass(frozen=True)
class ExposureReport:
    exposures: tuple[InvoiceExposure, ...]
    total: Decimal
    as_of: date | None = None


@dataclass(frozen=True)
class PeriodCloseResult:
    """
    Outcome of an FX period close.

    journal_entry_id is None when there was nothing material to close.
    omitted_roles lists the gain/loss role whose pair could not be posted
    when only one side of the revaluation was configured.
    """
    as_of: date
    diffs: tuple[InvoiceExposure, ...]
    total_gain: Decimal = ZERO
    total_loss: Decimal = ZERO
    journal_entry_id: UUID | None = None
    message: str | None = None
    omitted_roles: tuple[str, ...] = field(default_factory=tuple)

    @property
    def posted(self) -> bool:
        return self.journal_entry_id is not None
