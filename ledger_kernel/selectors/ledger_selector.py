"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries: general ledger listing, trial
    balance, and the financial statement bundle (balance sheet, profit and
    loss, cash flow, equity movement).  The ledger is a derived view over
    JournalLines -- there are no stored balances anywhere in the system.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from services/ or outer
    layers.

Invariants enforced:
    - Tenant isolation: every query filters on JournalEntry.tenant_id.
    - Zero-sum: because every entry balances, trial balance total debits
      equal total credits at 2 decimals for any as_of date.
    - Reports are all-time snapshots with an optional inclusive upper bound
      on entry_date.

Failure modes:
    - Returns empty results and zero totals when no entries exist.

Audit relevance:
    This selector is the authoritative read path for financial reporting.
    All figures are Decimal, rounded to 2 places only at presentation.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.db.types import round_money
from ledger_kernel.domain.dtos import TenantContext
from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector

ZERO = Decimal("0")


@dataclass(frozen=True)
class LedgerLine:
    """A single line from the general ledger view, denormalized."""

    journal_entry_id: UUID
    journal_line_id: UUID
    entry_no: int
    entry_date: date
    reference: str | None
    description: str | None
    line_seq: int
    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType
    debit: Decimal
    credit: Decimal
    memo: str | None
    foreign_amount: Decimal | None
    foreign_code: str | None
    fx_rate: Decimal | None


@dataclass(frozen=True)
class TrialBalanceRow:
    """A single row in a trial balance report."""

    account_id: UUID
    code: str
    name: str
    account_type: AccountType
    debit: Decimal
    credit: Decimal

    @property
    def balance(self) -> Decimal:
        """Net balance (debits - credits)."""
        return self.debit - self.credit


@dataclass(frozen=True)
class TrialBalance:
    rows: list[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal

    @property
    def is_balanced(self) -> bool:
        return round_money(self.total_debit) == round_money(self.total_credit)


@dataclass(frozen=True)
class StatementRow:
    account_id: UUID
    code: str
    name: str
    account_type: AccountType
    amount: Decimal


@dataclass(frozen=True)
class BalanceSheet:
    """Balances are debit - credit for every section (liabilities show negative)."""

    assets: list[StatementRow]
    liabilities: list[StatementRow]
    equity: list[StatementRow]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal


@dataclass(frozen=True)
class ProfitAndLoss:
    revenue: list[StatementRow]
    expense: list[StatementRow]
    total_revenue: Decimal
    total_expense: Decimal

    @property
    def net_income(self) -> Decimal:
        return self.total_revenue - self.total_expense


@dataclass(frozen=True)
class CashFlow:
    inflows: Decimal
    outflows: Decimal

    @property
    def net(self) -> Decimal:
        return self.inflows - self.outflows


@dataclass(frozen=True)
class EquityStatement:
    rows: list[StatementRow] = field(default_factory=list)
    total_change: Decimal = ZERO


@dataclass(frozen=True)
class FinancialStatements:
    as_of: date | None
    balance_sheet: BalanceSheet
    profit_and_loss: ProfitAndLoss
    cashflow: CashFlow
    equity: EquityStatement


@dataclass(frozen=True)
class _AccountTotals:
    account_id: UUID
    code: str
    name: str
    account_type: AccountType
    debit: Decimal
    credit: Decimal


class LedgerSelector(BaseSelector):
    """
    Selector for ledger queries -- the authoritative balance computation.

    Contract:
        All queries are scoped to ctx.tenant_id and optionally bounded by
        entry_date.  Line ordering is entry_date, entry_no, line_seq.

    Non-goals:
        - Currency conversion; every amount is already in base currency.
        - Opening balances or period-scoped P&L (reports are cumulative).
    """

    # ------------------------------------------------------------------
    # General ledger
    # ------------------------------------------------------------------

    def general_ledger(
        self,
        ctx: TenantContext,
        account_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[LedgerLine]:
        query = (
            select(JournalLine, JournalEntry, Account)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(JournalEntry.tenant_id == ctx.tenant_id)
        )
        if account_id is not None:
            query = query.where(JournalLine.account_id == account_id)
        if date_from is not None:
            query = query.where(JournalEntry.entry_date >= date_from)
        if date_to is not None:
            query = query.where(JournalEntry.entry_date <= date_to)
        query = query.order_by(
            JournalEntry.entry_date.asc(),
            JournalEntry.entry_no.asc(),
            JournalLine.line_seq.asc(),
        )

        return [
            LedgerLine(
                journal_entry_id=entry.id,
                journal_line_id=line.id,
                entry_no=entry.entry_no,
                entry_date=entry.entry_date,
                reference=entry.reference,
                description=entry.description,
                line_seq=line.line_seq,
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                account_type=AccountType(account.account_type),
                debit=Decimal(line.debit),
                credit=Decimal(line.credit),
                memo=line.memo,
                foreign_amount=line.foreign_amount,
                foreign_code=line.foreign_code,
                fx_rate=line.fx_rate,
            )
            for line, entry, account in self.session.execute(query).all()
        ]

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def _account_totals(self, ctx: TenantContext, as_of: date | None) -> list[_AccountTotals]:
        query = (
            select(
                Account.id,
                Account.code,
                Account.name,
                Account.account_type,
                func.coalesce(func.sum(JournalLine.debit), 0),
                func.coalesce(func.sum(JournalLine.credit), 0),
            )
            .join(JournalLine, JournalLine.account_id == Account.id)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalEntry.tenant_id == ctx.tenant_id)
            .group_by(Account.id, Account.code, Account.name, Account.account_type)
            .order_by(Account.code.asc())
        )
        if as_of is not None:
            query = query.where(JournalEntry.entry_date <= as_of)

        return [
            _AccountTotals(
                account_id=row[0],
                code=row[1],
                name=row[2],
                account_type=AccountType(row[3]),
                debit=round_money(Decimal(str(row[4]))),
                credit=round_money(Decimal(str(row[5]))),
            )
            for row in self.session.execute(query).all()
        ]

    def trial_balance(self, ctx: TenantContext, as_of: date | None = None) -> TrialBalance:
        rows = [
            TrialBalanceRow(
                account_id=t.account_id,
                code=t.code,
                name=t.name,
                account_type=t.account_type,
                debit=t.debit,
                credit=t.credit,
            )
            for t in self._account_totals(ctx, as_of)
        ]
        return TrialBalance(
            rows=rows,
            total_debit=round_money(sum((r.debit for r in rows), ZERO)),
            total_credit=round_money(sum((r.credit for r in rows), ZERO)),
        )

    def balance_sheet_and_pl(
        self,
        ctx: TenantContext,
        as_of: date | None = None,
        cash_prefix: str = "10",
    ) -> FinancialStatements:
        assets: list[StatementRow] = []
        liabilities: list[StatementRow] = []
        equity: list[StatementRow] = []
        revenue: list[StatementRow] = []
        expense: list[StatementRow] = []
        equity_changes: list[StatementRow] = []
        inflows = ZERO
        outflows = ZERO

        for t in self._account_totals(ctx, as_of):
            def row(amount: Decimal) -> StatementRow:
                return StatementRow(t.account_id, t.code, t.name, t.account_type, amount)

            delta = t.debit - t.credit
            if t.account_type is AccountType.ASSET:
                assets.append(row(delta))
                if t.code.startswith(cash_prefix):
                    inflows += t.debit
                    outflows += t.credit
            elif t.account_type is AccountType.LIABILITY:
                liabilities.append(row(delta))
            elif t.account_type is AccountType.EQUITY:
                equity.append(row(delta))
                equity_changes.append(row(t.credit - t.debit))
            elif t.account_type is AccountType.REVENUE:
                revenue.append(row(t.credit - t.debit))
            elif t.account_type is AccountType.EXPENSE:
                expense.append(row(delta))

        def total(rows: list[StatementRow]) -> Decimal:
            return round_money(sum((r.amount for r in rows), ZERO))

        return FinancialStatements(
            as_of=as_of,
            balance_sheet=BalanceSheet(
                assets=assets,
                liabilities=liabilities,
                equity=equity,
                total_assets=total(assets),
                total_liabilities=total(liabilities),
                total_equity=total(equity),
            ),
            profit_and_loss=ProfitAndLoss(
                revenue=revenue,
                expense=expense,
                total_revenue=total(revenue),
                total_expense=total(expense),
            ),
            cashflow=CashFlow(inflows=round_money(inflows), outflows=round_money(outflows)),
            equity=EquityStatement(rows=equity_changes, total_change=total(equity_changes)),
        )
