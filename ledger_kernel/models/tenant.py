"""
Module: ledger_kernel.models.tenant
Responsibility: ORM persistence for tenants -- the isolation boundary for
    every account, journal entry, invoice and payment.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - base_currency is a 3-character ISO 4217 code (validated by
      TenantService at creation).
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Tenant(TrackedBase):
    """
    A company using the ledger.

    Contract:
        All ledger data is partitioned by tenant_id.  Operations for one
        tenant never read or write another tenant's rows.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Reporting/base currency for every converted amount of this tenant
    base_currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Tenant {self.name} ({self.base_currency})>"
