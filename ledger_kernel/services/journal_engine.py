"""
JournalEngine -- the single choke point for writing journal entries.

Responsibility:
    Validates a proposed JournalEntryRequest and persists it, header and
    lines, with a per-tenant entry number.  Billing, payroll and FX close
    all post through this engine; nothing else creates JournalEntry rows.

Architecture position:
    Kernel > Services -- imperative shell.  Pure checks use domain.money;
    numbering uses SequenceService.

Invariants enforced:
    - Balance: round(sum(debit), 2) == round(sum(credit), 2) per entry.
    - No-trace rejection: every precondition is checked before the first
      session.add(), so a rejected request leaves nothing in the session.
    - Tenant isolation: every line account must belong to ctx.tenant_id.
    - Atomicity: header and lines are flushed together inside the caller's
      transaction.

Failure modes (checked in this order):
    - ValidationError: no lines.
    - InvalidAmountError: non-numeric or negative debit/credit.
    - InvalidCurrencyError: bad foreign_code on a line.
    - AccountNotFoundError: account missing or belongs to another tenant.
    - AccountInactiveError: account deactivated.
    - UnbalancedEntryError: debits != credits at 2 decimals.

Audit relevance:
    Emits journal_post_started, balance_validated and journal_posted with
    the totals as strings.
"""

import time
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import round_money
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import JournalEntryRequest, LineSpec, TenantContext
from ledger_kernel.domain.money import ZERO, to_decimal, validate_currency
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    InvalidAmountError,
    NotFoundError,
    UnbalancedEntryError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.services.base import BaseService, tenant_operation
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal_engine")


class _ValidatedLine:
    __slots__ = ("spec", "debit", "credit", "foreign_amount", "foreign_code", "fx_rate")

    def __init__(self, spec: LineSpec, debit, credit, foreign_amount, foreign_code, fx_rate):
        self.spec = spec
        self.debit = debit
        self.credit = credit
        self.foreign_amount = foreign_amount
        self.foreign_code = foreign_code
        self.fx_rate = fx_rate


class JournalEngine(BaseService):
    """
    Contract:
        post() either returns a flushed JournalEntry whose lines balance at
        2 decimals, or raises without having added anything to the session.

    Guarantees:
        - entry_no is allocated from the tenant's locked counter row.
        - Lines keep the order given, numbered from 1 (line_seq).

    Non-goals:
        - Does NOT commit.  Durability comes from the caller's transaction.
        - Does NOT resolve account roles; callers pass account ids.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._sequences = SequenceService(session)

    @tenant_operation
    def post(self, ctx: TenantContext, request: JournalEntryRequest) -> JournalEntry:
        t0 = time.monotonic()
        logger.info(
            "journal_post_started",
            extra={
                "reference": request.reference,
                "line_count": len(request.lines),
            },
        )

        lines = self._validate_amounts(request)
        self._validate_accounts(ctx, lines)
        total_debit, total_credit = self._validate_balance(request, lines)

        entry_no = self._sequences.next_value(
            SequenceService.journal_sequence_name(ctx.tenant_id)
        )
        entry = JournalEntry(
            tenant_id=ctx.tenant_id,
            entry_no=entry_no,
            entry_date=request.entry_date,
            reference=request.reference,
            description=request.description,
            created_by_id=ctx.actor_id,
        )
        for seq, line in enumerate(lines, start=1):
            entry.lines.append(
                JournalLine(
                    account_id=line.spec.account_id,
                    line_seq=seq,
                    debit=line.debit,
                    credit=line.credit,
                    foreign_amount=line.foreign_amount,
                    foreign_code=line.foreign_code,
                    fx_rate=line.fx_rate,
                    memo=line.spec.memo,
                    created_by_id=ctx.actor_id,
                )
            )
        self.session.add(entry)
        self.session.flush()

        with LogContext.bind(entry_id=str(entry.id)):
            logger.info(
                "journal_posted",
                extra={
                    "entry_no": entry_no,
                    "reference": request.reference,
                    "entry_date": request.entry_date.isoformat(),
                    "total_debit": str(total_debit),
                    "total_credit": str(total_credit),
                    "line_count": len(lines),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
        return entry

    def get_entry(self, ctx: TenantContext, entry_id: UUID) -> JournalEntry:
        entry = self.session.get(JournalEntry, entry_id)
        if entry is None or entry.tenant_id != ctx.tenant_id:
            raise NotFoundError("JournalEntry", entry_id)
        return entry

    def find_by_reference(self, ctx: TenantContext, reference: str) -> JournalEntry | None:
        return self.session.execute(
            select(JournalEntry)
            .where(
                JournalEntry.tenant_id == ctx.tenant_id,
                JournalEntry.reference == reference,
            )
            .order_by(JournalEntry.entry_no.desc())
            .limit(1)
        ).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def _validate_amounts(self, request: JournalEntryRequest) -> list[_ValidatedLine]:
        if not request.lines:
            raise ValidationError("Journal entry requires at least one line", field="lines")

        validated = []
        for idx, spec in enumerate(request.lines, start=1):
            debit = to_decimal(spec.debit, f"lines[{idx}].debit")
            credit = to_decimal(spec.credit, f"lines[{idx}].credit")
            if debit < ZERO:
                raise InvalidAmountError(f"lines[{idx}].debit", debit, "must be non-negative")
            if credit < ZERO:
                raise InvalidAmountError(f"lines[{idx}].credit", credit, "must be non-negative")

            foreign_amount = (
                to_decimal(spec.foreign_amount, f"lines[{idx}].foreign_amount")
                if spec.foreign_amount is not None
                else None
            )
            foreign_code = (
                validate_currency(spec.foreign_code) if spec.foreign_code is not None else None
            )
            fx_rate = (
                to_decimal(spec.fx_rate, f"lines[{idx}].fx_rate")
                if spec.fx_rate is not None
                else None
            )
            validated.append(
                _ValidatedLine(spec, debit, credit, foreign_amount, foreign_code, fx_rate)
            )
        return validated

    def _validate_accounts(self, ctx: TenantContext, lines: list[_ValidatedLine]) -> None:
        ids = {line.spec.account_id for line in lines}
        accounts = {
            a.id: a
            for a in self.session.execute(
                select(Account).where(
                    Account.tenant_id == ctx.tenant_id,
                    Account.id.in_(ids),
                )
            ).scalars()
        }
        for line in lines:
            account = accounts.get(line.spec.account_id)
            if account is None:
                logger.warning(
                    "journal_account_not_found",
                    extra={"account_id": str(line.spec.account_id)},
                )
                raise AccountNotFoundError(line.spec.account_id)
        for line in lines:
            account = accounts[line.spec.account_id]
            if not account.is_active:
                raise AccountInactiveError(account.id, account.code)

    def _validate_balance(
        self,
        request: JournalEntryRequest,
        lines: list[_ValidatedLine],
    ) -> tuple[Decimal, Decimal]:
        total_debit = round_money(sum((l.debit for l in lines), ZERO))
        total_credit = round_money(sum((l.credit for l in lines), ZERO))
        balanced = total_debit == total_credit

        logger.info(
            "balance_validated",
            extra={
                "reference": request.reference,
                "sum_debit": str(total_debit),
                "sum_credit": str(total_credit),
                "balanced": balanced,
            },
        )
        if not balanced:
            logger.warning(
                "unbalanced_entry_rejected",
                extra={
                    "imbalance": str(total_debit - total_credit),
                },
            )
            raise UnbalancedEntryError(total_debit, total_credit)
        return total_debit, total_credit
