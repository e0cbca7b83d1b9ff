"""
Transaction boundaries: services flush, callers commit.

Verifies:
- session_scope() commits on normal exit
- session_scope() rolls back on an exception and re-raises it
- A rejected posting inside a scope leaves no trace
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from ledger_kernel.db.engine import session_scope
from ledger_kernel.domain.dtos import JournalEntryRequest, LineSpec
from ledger_kernel.exceptions import UnbalancedEntryError
from ledger_kernel.models.account import AccountType
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.models.tenant import Tenant
from ledger_kernel.services.account_service import ChartOfAccountsService
from ledger_kernel.services.journal_engine import JournalEngine
from ledger_kernel.services.tenant_service import TenantService


def _count(model) -> int:
    with session_scope() as session:
        return session.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.fixture
def committed_tenant(tables, test_actor_id):
    """A tenant with Bank and Equity accounts, committed."""
    with session_scope() as session:
        tenant = TenantService(session).create_tenant("Scoped Co", "SAR", actor_id=test_actor_id)
        ctx = TenantService(session).context_for(tenant.id, actor_id=test_actor_id)
        accounts = ChartOfAccountsService(session)
        bank = accounts.create_account(ctx, "1010", "Bank", AccountType.ASSET).id
        equity = accounts.create_account(ctx, "3000", "Equity", AccountType.EQUITY).id
    return ctx, bank, equity


def _request(bank, equity, debit="100", credit="100"):
    return JournalEntryRequest(
        entry_date=date(2024, 3, 1),
        lines=(LineSpec.debit_line(bank, Decimal(debit)), LineSpec.credit_line(equity, Decimal(credit))),
    )


class TestSessionScope:

    def test_commit_on_exit(self, committed_tenant):
        ctx, bank, equity = committed_tenant

        with session_scope() as session:
            JournalEngine(session).post(ctx, _request(bank, equity))

        assert _count(JournalEntry) == 1
        assert _count(Tenant) == 1

    def test_rollback_on_error(self, committed_tenant):
        ctx, bank, equity = committed_tenant

        with pytest.raises(RuntimeError):
            with session_scope() as session:
                JournalEngine(session).post(ctx, _request(bank, equity))
                raise RuntimeError("caller failed after posting")

        assert _count(JournalEntry) == 0

    def test_rejected_posting_leaves_no_trace(self, committed_tenant):
        ctx, bank, equity = committed_tenant

        with pytest.raises(UnbalancedEntryError):
            with session_scope() as session:
                JournalEngine(session).post(ctx, _request(bank, equity, debit="500", credit="400"))

        assert _count(JournalEntry) == 0
