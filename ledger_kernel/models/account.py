"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the per-tenant Chart of Accounts -- the
    target of every journal line -- and the explicit role bindings that map
    logical roles (AR, Bank, Revenue, ...) to concrete accounts.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Account.code is unique within a tenant (uq_account_tenant_code).
    - Accounts are never physically deleted; deactivation sets is_active.
    - At most one binding per (tenant, role) (uq_role_binding_tenant_role).

Failure modes:
    - AccountNotFoundError when a posting references a non-existent account.
    - AccountInactiveError when a posting targets an inactive account.

Audit relevance:
    Account rows define the structure of the general ledger.  Deactivation
    rather than deletion keeps historical lines resolvable.
"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalLine


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def is_debit_normal(self) -> bool:
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class Account(TrackedBase):
    """
    Chart of Accounts entry -- a single node in a tenant's general ledger.

    Contract:
        (tenant_id, code) is unique.  account_type places the account on the
        balance sheet (ASSET, LIABILITY, EQUITY) or the P&L (REVENUE, EXPENSE).

    Guarantees:
        - code is unique within the tenant and non-null.
        - is_active defaults to True.

    Non-goals:
        - Hierarchical parent/child accounts.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_account_tenant_code"),
        Index("idx_account_tenant_active", "tenant_id", "is_active"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tenants.id"),
        nullable=False,
    )

    # Human-readable code, e.g. "1200"
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    account_type: Mapped[AccountType] = mapped_column(
        String(20),
        nullable=False,
    )

    is_retained_earnings: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Whether the account accepts new postings
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    journal_lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def type(self) -> AccountType:
        """account_type coerced to the enum (raw strings come back from the DB)."""
        return AccountType(self.account_type)


class AccountRoleBinding(TrackedBase):
    """
    Explicit mapping of a logical account role to a tenant account.

    Contract:
        Bindings take precedence over the conventional account codes when
        the role map is loaded.
    """

    __tablename__ = "account_role_bindings"

    __table_args__ = (
        UniqueConstraint("tenant_id", "role", name="uq_role_binding_tenant_role"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tenants.id"),
        nullable=False,
    )

    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    account: Mapped["Account"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<AccountRoleBinding {self.role} -> {self.account_id}>"
