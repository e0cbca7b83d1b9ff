"""
FX Revaluation Service - unrealized exposure and period-end close.

Revalues every open foreign-currency invoice at the current rate and, on
close, books the net movement against AR:

    gain:  Dr AR / Cr FX Gain
    loss:  Dr FX Loss / Cr AR

Each invoice is revalued against the base amount it was booked at.  The
close entry is referenced CLOSE-<as_of> and a tenant can close a given date
only once.

The caller owns the transaction boundary: this service only flushes.

Usage:
    service = FxRevaluationService(session, clock=clock, config=config)
    report = service.unrealized_exposure(ctx)
    result = service.close_period(ctx, as_of=date(2024, 3, 31))
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import JournalEntryRequest, LineSpec, TenantContext
from ledger_kernel.domain.money import ZERO, round_money
from ledger_kernel.domain.roles import AccountRole
from ledger_kernel.exceptions import MissingConfigurationError, PeriodAlreadyClosedError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.account_service import ChartOfAccountsService
from ledger_kernel.services.base import BaseService, tenant_operation
from ledger_kernel.services.fx_rate_service import FxRateService
from ledger_kernel.services.journal_engine import JournalEngine
from ledger_modules.billing.models import InvoiceStatus
from ledger_modules.billing.orm import InvoiceModel
from ledger_modules.fx_close.models import ExposureReport, InvoiceExposure, PeriodCloseResult

logger = get_logger("modules.fx_close.service")

# Invoices that are not carried in AR, or no longer are
_CLOSED_STATUSES = (
    InvoiceStatus.DRAFT.value,
    InvoiceStatus.PAID.value,
    InvoiceStatus.CANCELLED.value,
)


class FxRevaluationService(BaseService):
    """
    Contract:
        - unrealized_exposure() is read-only.
        - close_period() posts at most one entry per tenant and date, made of
          balanced AR/gain and AR/loss pairs, or raises.
    """

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
        self._fx = FxRateService(session, strict=self.config.strict_fx, clock=self.clock)

    @staticmethod
    def close_reference(as_of: date) -> str:
        return f"CLOSE-{as_of.isoformat()}"

    @tenant_operation
    def unrealized_exposure(
        self,
        ctx: TenantContext,
        as_of: date | None = None,
    ) -> ExposureReport:
        """
        Revalue open foreign-currency invoices.

        The current rate is the latest stored rate on or before as_of (any
        date when as_of is None); without one, the invoice's own rate is
        used in lenient mode, giving zero exposure.
        """
        invoices = self.session.execute(
            select(InvoiceModel)
            .where(
                InvoiceModel.tenant_id == ctx.tenant_id,
                InvoiceModel.status.not_in(_CLOSED_STATUSES),
                InvoiceModel.currency_code != ctx.base_currency,
            )
            .order_by(InvoiceModel.issue_date.asc(), InvoiceModel.invoice_no.asc())
        ).scalars()

        exposures = []
        for invoice in invoices:
            if not invoice.foreign_amount:
                continue
            original_rate = Decimal(invoice.fx_rate)
            current_rate = self._fx.resolve_rate(
                invoice.currency_code,
                ctx.base_currency,
                as_of=as_of,
                fallback=original_rate,
            )
            exposures.append(InvoiceExposure.revalue(
                invoice_id=invoice.id,
                invoice_no=invoice.invoice_no,
                currency=invoice.currency_code,
                foreign_amount=Decimal(invoice.foreign_amount),
                original_rate=original_rate,
                current_rate=current_rate,
                invoice_base=Decimal(invoice.total_amount),
            ))

        total = round_money(sum((e.unrealized for e in exposures), ZERO))
        logger.info("fx_exposure_computed", extra={
            "invoice_count": len(exposures),
            "total_unrealized": str(total),
        })
        return ExposureReport(exposures=tuple(exposures), total=total, as_of=as_of)

    @tenant_operation
    def close_period(self, ctx: TenantContext, as_of: date | None = None) -> PeriodCloseResult:
        """
        Post the unrealized FX revaluation as of a date.

        Raises:
            PeriodAlreadyClosedError: a close entry already exists for as_of.
            MissingConfigurationError: no AR account, or neither the gain
                nor the loss pair can be built.
        """
        as_of = as_of or self.clock.today()
        reference = self.close_reference(as_of)

        logger.info("fx_period_close_started", extra={
            "as_of": as_of.isoformat(),
        })

        existing = self._journal.find_by_reference(ctx, reference)
        if existing is not None:
            raise PeriodAlreadyClosedError(as_of, existing.id)

        report = self.unrealized_exposure(ctx, as_of)
        threshold = self.config.materiality_threshold
        diffs = tuple(e for e in report.exposures if abs(e.unrealized) >= threshold)

        total_gain = round_money(sum((d.unrealized for d in diffs if d.unrealized > ZERO), ZERO))
        total_loss = round_money(sum((-d.unrealized for d in diffs if d.unrealized < ZERO), ZERO))

        if total_gain == ZERO and total_loss == ZERO:
            logger.info("fx_period_nothing_to_close", extra={
                "as_of": as_of.isoformat(),
            })
            return PeriodCloseResult(
                as_of=as_of,
                diffs=diffs,
                message="No unrealized exposures to close",
            )

        roles = self._accounts.load_role_map(ctx, self.config.role_codes)
        ar = roles.require(AccountRole.AR)

        lines: list[LineSpec] = []
        omitted: list[str] = []
        if total_gain > ZERO:
            gain = roles.get(AccountRole.FX_GAIN)
            if gain is None:
                omitted.append(AccountRole.FX_GAIN.value)
            else:
                lines.append(LineSpec.debit_line(ar.account_id, total_gain, memo="Unrealized FX gain"))
                lines.append(LineSpec.credit_line(gain.account_id, total_gain, memo="Unrealized FX gain"))
        if total_loss > ZERO:
            loss = roles.get(AccountRole.FX_LOSS)
            if loss is None:
                omitted.append(AccountRole.FX_LOSS.value)
            else:
                lines.append(LineSpec.credit_line(ar.account_id, total_loss, memo="Unrealized FX loss"))
                lines.append(LineSpec.debit_line(loss.account_id, total_loss, memo="Unrealized FX loss"))

        if not lines:
            logger.warning("fx_period_close_failed", extra={
                "as_of": as_of.isoformat(),
                "missing_roles": omitted,
            })
            raise MissingConfigurationError(
                omitted, message="FX gain/loss accounts missing for period close"
            )
        if omitted:
            logger.warning("fx_period_close_partial", extra={
                "as_of": as_of.isoformat(),
                "missing_roles": omitted,
            })

        entry = self._journal.post(ctx, JournalEntryRequest(
            entry_date=as_of,
            reference=reference,
            description=f"Unrealized FX closing {as_of.isoformat()}",
            lines=lines,
        ))

        logger.info("fx_period_closed", extra={
            "as_of": as_of.isoformat(),
            "journal_entry_id": str(entry.id),
            "total_gain": str(total_gain),
            "total_loss": str(total_loss),
            "diff_count": len(diffs),
        })
        return PeriodCloseResult(
            as_of=as_of,
            diffs=diffs,
            total_gain=total_gain,
            total_loss=total_loss,
            journal_entry_id=entry.id,
            omitted_roles=tuple(omitted),
        )
