"""
Payroll ORM Models (``ledger_modules.payroll.orm``).

Responsibility
--------------
SQLAlchemy persistence models for payroll runs and their staff lines.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``ledger_kernel``.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.db.types import Money


class PayrollRunModel(TrackedBase):
    """
    ORM model for a monthly payroll run.

    Guarantees:
        - total_net_pay equals the sum of the lines' net_pay.
        - journal_entry_id is set when the accrual was posted.
    """

    __tablename__ = "payroll_runs"

    __table_args__ = (
        Index("idx_payroll_runs_tenant_period", "tenant_id", "year", "month"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    run_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_net_pay: Mapped[Money] = mapped_column(nullable=False)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    lines: Mapped[list["PayrollRunLineModel"]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PayrollRunLineModel.line_seq",
    )

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.payroll.models import PayrollRun

        return PayrollRun(
            id=self.id,
            tenant_id=self.tenant_id,
            year=self.year,
            month=self.month,
            run_date=self.run_date,
            total_net_pay=self.total_net_pay,
            lines=tuple(line.to_dto() for line in self.lines),
            journal_entry_id=self.journal_entry_id,
        )

    def __repr__(self) -> str:
        return f"<PayrollRunModel {self.year}-{self.month:02d}: {self.total_net_pay}>"


class PayrollRunLineModel(TrackedBase):
    """ORM model for one staff member's line in a payroll run."""

    __tablename__ = "payroll_run_lines"

    __table_args__ = (
        Index("idx_payroll_run_lines_run", "payroll_run_id"),
    )

    payroll_run_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("payroll_runs.id"), nullable=False
    )
    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)
    staff_ref: Mapped[str] = mapped_column(String(100), nullable=False)
    base_salary: Mapped[Money] = mapped_column(nullable=False)
    allowances: Mapped[Money] = mapped_column(nullable=False)
    deductions: Mapped[Money] = mapped_column(nullable=False)
    advances: Mapped[Money] = mapped_column(nullable=False)
    net_pay: Mapped[Money] = mapped_column(nullable=False)

    run: Mapped["PayrollRunModel"] = relationship(back_populates="lines")

    def to_dto(self):
        from ledger_modules.payroll.models import PayrollLine

        return PayrollLine(
            id=self.id,
            staff_ref=self.staff_ref,
            base_salary=self.base_salary,
            allowances=self.allowances,
            deductions=self.deductions,
            advances=self.advances,
            net_pay=self.net_pay,
        )
