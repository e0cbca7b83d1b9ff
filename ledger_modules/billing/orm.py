"""
Billing ORM Models (``ledger_modules.billing.orm``).

Responsibility
--------------
SQLAlchemy persistence models for the billing module.  Maps invoices, their
line items and payments to database tables and back to the frozen
dataclasses in ``models.py``.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``ledger_kernel``.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.db.types import Money, Rate, round_money


# ---------------------------------------------------------------------------
# 1. InvoiceModel
# ---------------------------------------------------------------------------


class InvoiceModel(TrackedBase):
    """
    ORM model for invoices.

    Guarantees:
        - invoice_no is unique within the tenant (uq_invoices_tenant_no).
        - total_amount is the base-currency value booked to AR.
        - status is stored, and recomputed from payments by BillingService.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("tenant_id", "invoice_no", name="uq_invoices_tenant_no"),
        Index("idx_invoices_tenant_project", "tenant_id", "project_id"),
        Index("idx_invoices_tenant_status", "tenant_id", "status"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False
    )
    project_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    invoice_no: Mapped[str] = mapped_column(String(100), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    fx_rate: Mapped[Rate] = mapped_column(nullable=False)
    foreign_amount: Mapped[Money] = mapped_column(nullable=False)
    total_amount: Mapped[Money] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    items: Mapped[list["InvoiceItemModel"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceItemModel.line_seq",
    )
    payments: Mapped[list["PaymentModel"]] = relationship(
        back_populates="invoice",
        lazy="selectin",
        order_by="PaymentModel.paid_date",
    )

    @property
    def collected(self) -> Decimal:
        return round_money(sum((p.amount for p in self.payments), Decimal("0")))

    def to_dto(self, collected: Decimal | None = None):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.billing.models import Invoice, InvoiceStatus

        return Invoice(
            id=self.id,
            tenant_id=self.tenant_id,
            project_id=self.project_id,
            invoice_no=self.invoice_no,
            issue_date=self.issue_date,
            due_date=self.due_date,
            notes=self.notes,
            currency_code=self.currency_code,
            fx_rate=self.fx_rate,
            foreign_amount=self.foreign_amount,
            total_amount=self.total_amount,
            status=InvoiceStatus(self.status),
            journal_entry_id=self.journal_entry_id,
            items=tuple(item.to_dto() for item in self.items),
            collected=self.collected if collected is None else collected,
        )

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_no}: {self.total_amount} [{self.status}]>"


# ---------------------------------------------------------------------------
# 2. InvoiceItemModel
# ---------------------------------------------------------------------------


class InvoiceItemModel(TrackedBase):
    """ORM model for invoice line items; amounts in the invoice currency."""

    __tablename__ = "invoice_items"

    __table_args__ = (
        Index("idx_invoice_items_invoice", "invoice_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("invoices.id"), nullable=False
    )
    line_seq: Mapped[int] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Money] = mapped_column(nullable=False)
    unit_price: Mapped[Money] = mapped_column(nullable=False)
    line_total: Mapped[Money] = mapped_column(nullable=False)

    invoice: Mapped["InvoiceModel"] = relationship(back_populates="items")

    def to_dto(self):
        from ledger_modules.billing.models import InvoiceItem

        return InvoiceItem(
            id=self.id,
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            line_total=self.line_total,
        )


# ---------------------------------------------------------------------------
# 3. PaymentModel
# ---------------------------------------------------------------------------


class PaymentModel(TrackedBase):
    """
    ORM model for invoice payments.

    Guarantees:
        - amount is the base-currency value (foreign_amount * fx_rate,
          rounded to 2 decimals); it is what collection totals sum.
        - Payments are append-only; a correction is a new document.
    """

    __tablename__ = "payments"

    __table_args__ = (
        Index("idx_payments_invoice", "invoice_id"),
        Index("idx_payments_tenant_project_date", "tenant_id", "project_id", "paid_date"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False
    )
    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("invoices.id"), nullable=False
    )
    project_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    amount: Mapped[Money] = mapped_column(nullable=False)
    paid_date: Mapped[date] = mapped_column(Date, nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    fx_rate: Mapped[Rate] = mapped_column(nullable=False)
    foreign_amount: Mapped[Money] = mapped_column(nullable=False)
    method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference: Mapped[str | None] = mapped_column(String(200), nullable=True)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    invoice: Mapped["InvoiceModel"] = relationship(back_populates="payments")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.billing.models import Payment

        return Payment(
            id=self.id,
            invoice_id=self.invoice_id,
            project_id=self.project_id,
            amount=self.amount,
            paid_date=self.paid_date,
            currency_code=self.currency_code,
            fx_rate=self.fx_rate,
            foreign_amount=self.foreign_amount,
            method=self.method,
            reference=self.reference,
            journal_entry_id=self.journal_entry_id,
        )

    def __repr__(self) -> str:
        return f"<PaymentModel {self.id}: {self.amount} on {self.paid_date}>"
