"""
Billing Domain Models (``ledger_modules.billing.models``).

Responsibility
--------------
Frozen dataclass value objects for the invoice lifecycle (invoices, line
items, payments, results) plus the two pure calculations billing relies
on: status derivation and settlement amounts.

Architecture position
---------------------
**Modules layer** -- pure data definitions and functions with ZERO I/O.
Consumed by ``BillingService`` and returned to callers.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``derive_status`` is a function of (total, collected) only, so status is
  always recomputed from the full payment aggregate.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from ledger_kernel.domain.dtos import PostingOutcome
from ledger_kernel.domain.money import ZERO, convert, round_money


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class SettlementBasis(str, Enum):
    """How much AR a payment relieves."""
    INVOICE_TOTAL = "invoice_total"
    CARRYING_VALUE = "carrying_value"


def derive_status(total: Decimal, collected: Decimal) -> InvoiceStatus:
    """
    Status implied by the amount collected against an invoice total.

    SENT when nothing is collected, PARTIALLY_PAID while short of the
    total, PAID once the total is reached.  Compared at 2 decimals.
    """
    collected = round_money(collected)
    if collected <= ZERO:
        return InvoiceStatus.SENT
    if collected < round_money(total):
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.PAID


@dataclass(frozen=True)
class InvoiceItemSpec:
    """Caller input for one invoice line."""
    description: str
    quantity: Any
    unit_price: Any


@dataclass(frozen=True)
class InvoiceItem:
    id: UUID
    description: str
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class Invoice:
    """
    An invoice with its current collection position.

    total_amount is in the tenant's base currency; foreign_amount is the sum
    of the items in currency_code.
    """
    id: UUID
    tenant_id: UUID
    project_id: UUID
    invoice_no: str
    issue_date: date
    currency_code: str
    fx_rate: Decimal
    foreign_amount: Decimal
    total_amount: Decimal
    status: InvoiceStatus
    due_date: date | None = None
    notes: str | None = None
    journal_entry_id: UUID | None = None
    items: tuple[InvoiceItem, ...] = field(default_factory=tuple)
    collected: Decimal = ZERO

    @property
    def outstanding(self) -> Decimal:
        return round_money(self.total_amount - self.collected)


@dataclass(frozen=True)
class Payment:
    """A payment against an invoice; amount is in base currency."""
    id: UUID
    invoice_id: UUID
    project_id: UUID
    amount: Decimal
    paid_date: date
    currency_code: str
    fx_rate: Decimal
    foreign_amount: Decimal
    method: str | None = None
    reference: str | None = None
    journal_entry_id: UUID | None = None


@dataclass(frozen=True)
class InvoiceResult:
    invoice: Invoice
    posting: PostingOutcome


@dataclass(frozen=True)
class PaymentResult:
    payment: Payment
    invoice_status: InvoiceStatus
    collected: Decimal
    posting: PostingOutcome


@dataclass(frozen=True)
class RevenueSummary:
    """Base-currency cash collected for a project within a paid-date range."""
    project_id: UUID
    collected: Decimal
    payment_count: int
    date_from: date | None = None
    date_to: date | None = None


@dataclass(frozen=True)
class Settlement:
    """
    Amounts for a payment's settlement entry.

    bank_debit - ar_credit == fx_difference; a positive difference is a
    realized gain, a negative one a realized loss.
    """
    bank_debit: Decimal
    ar_credit: Decimal
    fx_difference: Decimal

    @property
    def is_gain(self) -> bool:
        return self.fx_difference > ZERO

    @property
    def is_loss(self) -> bool:
        return self.fx_difference < ZERO


def compute_settlement(
    payment_base: Decimal,
    payment_foreign: Decimal,
    payment_currency: str,
    invoice_currency: str,
    invoice_rate: Decimal,
    invoice_total: Decimal,
    basis: SettlementBasis | str = SettlementBasis.INVOICE_TOTAL,
) -> Settlement:
    """
    Split a payment into the bank debit, the AR relieved and the realized
    FX difference.

    With ``invoice_total`` every payment credits the full invoice total and
    the difference is payment base minus that total.  With
    ``carrying_value`` a payment in the invoice's currency relieves AR at
    the invoice's booked rate, so the difference is the rate movement on the
    paid portion; a payment in any other currency relieves its own base
    value.
    """
    basis = SettlementBasis(basis)
    if basis is SettlementBasis.INVOICE_TOTAL:
        settled = round_money(invoice_total)
    elif payment_currency == invoice_currency:
        settled = convert(payment_foreign, invoice_rate)
    else:
        settled = round_money(payment_base)
    return Settlement(
        bank_debit=round_money(payment_base),
        ar_credit=settled,
        fx_difference=round_money(payment_base - settled),
    )
