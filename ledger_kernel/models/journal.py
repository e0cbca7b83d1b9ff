"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines -- the
    single source of financial truth in the ledger.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Balance: round(sum(debit), 2) == round(sum(credit), 2) per entry
      (checked by JournalEngine before any row is added; verified here via
      the is_balanced property for read-side assertions).
    - Sequence safety: entry_no is monotonic per tenant
      (uq_journal_tenant_entry_no, allocated by SequenceService).
    - Immutability: ORM listeners in db/immutability.py prevent UPDATE and
      DELETE of entries and their lines.

Failure modes:
    - ImmutabilityViolationError on UPDATE/DELETE of an entry or line.
    - UnbalancedEntryError if debits != credits at posting time.

Audit relevance:
    JournalEntry and JournalLine rows are the authoritative financial record.
    The general ledger, trial balance and statements are all derived from
    them; nothing else stores balances.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.db.types import Money, Rate, round_money

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class JournalEntry(TrackedBase):
    """
    Journal entry header -- the atomic unit of double-entry accounting.

    Contract:
        Entries are created already posted, in a single flush together with
        their lines, and never modified afterwards.

    Guarantees:
        - Debits == Credits at 2 decimals (checked at posting).
        - entry_no is unique and monotonic within the tenant.

    Non-goals:
        - This model does NOT enforce balance at the ORM level; enforcement
          lives in JournalEngine.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("tenant_id", "entry_no", name="uq_journal_tenant_entry_no"),
        Index("idx_journal_tenant_date", "tenant_id", "entry_date"),
        Index("idx_journal_tenant_reference", "tenant_id", "reference"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tenants.id"),
        nullable=False,
    )

    # Per-tenant monotonic number (assigned at posting)
    entry_no: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    # Accounting date
    entry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # Source document reference, e.g. "INV-1001", "PAY-<id>", "CLOSE-2024-03-31"
    reference: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_seq",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry #{self.entry_no} {self.reference or ''}>"

    @property
    def total_debits(self) -> Decimal:
        """Sum of all debit amounts."""
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        """Sum of all credit amounts."""
        return sum((line.credit for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        """Check if debits equal credits at 2 decimals."""
        return round_money(self.total_debits) == round_money(self.total_credits)


class JournalLine(TrackedBase):
    """
    Individual line within a journal entry.

    Contract:
        Each line belongs to exactly one JournalEntry and references exactly
        one Account of the same tenant.  debit and credit are both >= 0.

    Guarantees:
        - line_seq gives deterministic ordering within the entry.
        - foreign_amount/foreign_code/fx_rate record the original currency
          side of a converted amount when present.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    line_seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    debit: Mapped[Money] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    credit: Mapped[Money] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    foreign_amount: Mapped[Money | None] = mapped_column(
        nullable=True,
    )

    foreign_code: Mapped[str | None] = mapped_column(
        String(3),
        nullable=True,
    )

    fx_rate: Mapped[Rate | None] = mapped_column(
        nullable=True,
    )

    memo: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")
    account: Mapped["Account"] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return f"<JournalLine {self.line_seq} Dr {self.debit} Cr {self.credit}>"
