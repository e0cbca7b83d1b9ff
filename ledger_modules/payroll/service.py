"""
Payroll Posting Service - monthly payroll accrual.

Persists a payroll run with one line per staff member and accrues the total
net pay:

    Dr Payroll Expense / Cr Staff Payable   (reference PR-<run id>)

The run is kept even when the tenant has no payroll accounts configured;
the skipped posting is reported in the result.

Usage:
    service = PayrollPostingService(session, clock=clock)
    result = service.run_payroll(ctx, year=2024, month=3, lines=[
        PayrollLineSpec("EMP-001", base_salary=Decimal("8000"), advances=Decimal("500")),
    ])
"""

from __future__ import annotations

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import (
    JournalEntryRequest,
    LineSpec,
    PostingOutcome,
    TenantContext,
)
from ledger_kernel.domain.money import ZERO, round_money, to_decimal
from ledger_kernel.domain.roles import AccountRole
from ledger_kernel.exceptions import InvalidAmountError, NotFoundError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.account_service import ChartOfAccountsService
from ledger_kernel.services.base import BaseService, tenant_operation
from ledger_kernel.services.journal_engine import JournalEngine
from ledger_modules.payroll.models import (
    PayrollLineSpec,
    PayrollRun,
    PayrollRunResult,
    net_pay,
)
from ledger_modules.payroll.orm import PayrollRunLineModel, PayrollRunModel

logger = get_logger("modules.payroll.service")


class PayrollPostingService(BaseService):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: LedgerConfig | None = None,
    ):
        super().__init__(session, clock)
        self.config = config or LedgerConfig()
        self._accounts = ChartOfAccountsService(session, self.clock)
        self._journal = JournalEngine(session, self.clock)

    @tenant_operation
    def run_payroll(
        self,
        ctx: TenantContext,
        year: int,
        month: int,
        lines: Sequence[PayrollLineSpec],
        run_date: date | None = None,
    ) -> PayrollRunResult:
        """
        Record a payroll run and post its accrual.

        Raises:
            ValidationError: month outside 1..12 or non-positive year.
            InvalidAmountError: non-numeric or negative pay component, or a
                staff line whose deductions and advances exceed gross pay.
        """
        if not 1 <= int(month) <= 12:
            raise ValidationError(f"Month must be 1..12, got {month}", field="month")
        if int(year) <= 0:
            raise ValidationError(f"Year must be positive, got {year}", field="year")
        run_date = run_date or self.clock.today()

        logger.info("payroll_run_started", extra={
            "year": int(year),
            "month": int(month),
            "staff_count": len(lines),
        })

        run = PayrollRunModel(
            tenant_id=ctx.tenant_id,
            year=int(year),
            month=int(month),
            run_date=run_date,
            total_net_pay=ZERO,
            created_by_id=ctx.actor_id,
        )
        total = ZERO
        for idx, spec in enumerate(lines, start=1):
            components = {}
            for name in ("base_salary", "allowances", "deductions", "advances"):
                value = to_decimal(getattr(spec, name), f"lines[{idx}].{name}")
                if value < ZERO:
                    raise InvalidAmountError(f"lines[{idx}].{name}", value, "must be non-negative")
                components[name] = value
            line_net = net_pay(**components)
            if line_net < ZERO:
                raise InvalidAmountError(
                    f"lines[{idx}].net_pay", line_net, "deductions and advances exceed gross pay"
                )
            total += line_net
            run.lines.append(PayrollRunLineModel(
                line_seq=idx,
                staff_ref=spec.staff_ref,
                net_pay=line_net,
                created_by_id=ctx.actor_id,
                **components,
            ))
        run.total_net_pay = round_money(total)
        self.session.add(run)
        self.session.flush()

        with LogContext.bind(payroll_run_id=run.id):
            posting = self._post_accrual(ctx, run)
            if posting.posted:
                run.journal_entry_id = posting.journal_entry_id
                self.session.flush()

            logger.info("payroll_run_recorded", extra={
                "total_net_pay": str(run.total_net_pay),
                "journal_posted": posting.posted,
                "reason": posting.reason,
            })
        return PayrollRunResult(run=run.to_dto(), posting=posting)

    def get_run(self, ctx: TenantContext, run_id: UUID) -> PayrollRun:
        run = self.session.get(PayrollRunModel, run_id)
        if run is None or run.tenant_id != ctx.tenant_id:
            raise NotFoundError("PayrollRun", run_id)
        return run.to_dto()

    def _post_accrual(self, ctx: TenantContext, run: PayrollRunModel) -> PostingOutcome:
        if run.total_net_pay <= ZERO:
            return PostingOutcome.nothing_to_post()

        roles = self._accounts.load_role_map(ctx, self.config.role_codes)
        missing = roles.missing(AccountRole.PAYROLL_EXPENSE, AccountRole.STAFF_PAYABLE)
        if missing:
            logger.warning("payroll_journal_skipped", extra={
                "reason": PostingOutcome.MISSING_CONFIGURATION,
                "missing_roles": missing,
            })
            return PostingOutcome.missing_configuration(missing)

        entry = self._journal.post(ctx, JournalEntryRequest(
            entry_date=run.run_date,
            reference=f"PR-{run.id}",
            description=f"Payroll {run.year}-{run.month}",
            lines=(
                LineSpec.debit_line(
                    roles.account_id(AccountRole.PAYROLL_EXPENSE), run.total_net_pay,
                    memo="Payroll expense",
                ),
                LineSpec.credit_line(
                    roles.account_id(AccountRole.STAFF_PAYABLE), run.total_net_pay,
                    memo="Staff payable",
                ),
            ),
        ))
        return PostingOutcome.success(entry.id)
