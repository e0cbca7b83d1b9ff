"""Shared helpers for foreign-currency invoice tests."""

from datetime import date
from uuid import uuid4

import pytest

from ledger_modules.billing import InvoiceItemSpec


@pytest.fixture
def foreign_invoice(billing_service, tenant_ctx):
    """Factory: a single-item foreign-currency invoice at an explicit rate."""
    counter = iter(range(1, 1000))

    def _create(amount="100", currency="USD", rate="3.75", issue_date=date(2024, 3, 1), **kwargs):
        return billing_service.create_invoice(
            tenant_ctx,
            project_id=uuid4(),
            invoice_no=f"FX-{next(counter)}",
            issue_date=issue_date,
            items=[InvoiceItemSpec("Services", 1, amount)],
            currency_code=currency,
            fx_rate=rate,
            **kwargs,
        ).invoice

    return _create
