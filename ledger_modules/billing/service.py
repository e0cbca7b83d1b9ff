"""
Billing Module Service - invoice lifecycle and payment settlement.

Thin glue layer that:
1. Computes invoice and payment amounts with the kernel money primitives
2. Resolves exchange rates through FxRateService
3. Resolves AR / Revenue / Bank / FX accounts through the tenant role map
4. Posts every journal entry through JournalEngine

Invoice and payment documents are persisted whether or not the tenant's
chart of accounts can take the posting; a skipped posting is reported in
the returned PostingOutcome and logged, never swallowed.

The caller owns the transaction boundary: this service only flushes.

Usage:
    service = BillingService(session, clock=clock, config=get_active_config())
    result = service.create_invoice(
        ctx, project_id=project_id, invoice_no="1001",
        issue_date=date(2024, 3, 1),
        items=[InvoiceItemSpec("Consulting", 10, Decimal("100"))],
    )
    paid = service.record_payment(
        ctx, result.invoice.id, amount=Decimal("600"), paid_date=date(2024, 3, 15),
    )
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import (
    JournalEntryRequest,
    LineSpec,
    PostingOutcome,
    TenantContext,
)
from ledger_kernel.domain.money import ONE, ZERO, convert, round_money, to_decimal, validate_currency
from ledger_kernel.domain.roles import AccountRole, ChartOfAccountsRoleMap
from ledger_kernel.exceptions import (
    DuplicateCodeError,
    InvalidAmountError,
    InvalidExchangeRateError,
    InvoiceNotFoundError,
    InvoiceStatusError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.account_service import ChartOfAccountsService
from ledger_kernel.services.base import BaseService, tenant_operation
from ledger_kernel.services.fx_rate_service import FxRateService
from ledger_kernel.services.journal_engine import JournalEngine
from ledger_modules.billing.models import (
    Invoice,
    InvoiceItemSpec,
    InvoiceResult,
    InvoiceStatus,
    Payment,
    PaymentResult,
    RevenueSummary,
    compute_settlement,
    derive_status,
)
from ledger_modules.billing.orm import InvoiceItemModel, InvoiceModel, PaymentModel

logger = get_logger("modules.billing.service")


def _positive_rate(value: Any) -> Decimal:
    try:
        rate = to_decimal(value, "fx_rate")
    except InvalidAmountError:
        raise InvalidExchangeRateError(value, "rate must be a finite number") from None
    if rate <= ZERO:
        raise InvalidExchangeRateError(value, "rate must be positive")
    return rate


class BillingService(BaseService):
    """
    Orchestrates invoicing and collections through the kernel.

    Contract:
        - Every method is scoped by ctx.tenant_id.
        - Invoice status is derived from SUM(payments) inside the same
          transaction as the payment insert, with the invoice row locked.
        - Postings go through JournalEngine only; a posting that cannot be
          built balanced is skipped and reported, never attempted.
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

    # =========================================================================
    # Invoices
    # =========================================================================

    @tenant_operation
    def create_invoice(
        self,
        ctx: TenantContext,
        project_id: UUID,
        invoice_no: str,
        issue_date: date,
        items: Sequence[InvoiceItemSpec],
        due_date: date | None = None,
        currency_code: str | None = None,
        fx_rate: Any = None,
        notes: str | None = None,
        draft: bool = False,
    ) -> InvoiceResult:
        """
        Create an invoice and, unless it is a draft, book it to AR.

        foreign total = sum(quantity * unit_price) in currency_code; the
        base total is convert(foreign total, rate) where rate is the explicit
        fx_rate, else the stored rate for currency -> base on issue_date,
        else 1 for base-currency invoices.

        Raises:
            ValidationError: blank invoice number or no items.
            InvalidAmountError: non-numeric or negative quantity/price.
            DuplicateCodeError: invoice number already used by the tenant.
            ExchangeRateNotFoundError: strict FX mode and no stored rate.
        """
        if not invoice_no or not str(invoice_no).strip():
            raise ValidationError("Invoice number is required", field="invoice_no")
        if not items:
            raise ValidationError("Invoice requires at least one item", field="items")
        invoice_no = str(invoice_no).strip()
        currency = validate_currency(currency_code or ctx.base_currency)

        logger.info("billing_create_invoice_started", extra={
            "invoice_no": invoice_no,
            "project_id": str(project_id),
            "currency": currency,
            "item_count": len(items),
        })

        if self._find_by_number(ctx, invoice_no) is not None:
            raise DuplicateCodeError("Invoice", invoice_no)

        item_models = []
        foreign_total = ZERO
        for idx, spec in enumerate(items, start=1):
            quantity = to_decimal(spec.quantity, f"items[{idx}].quantity")
            unit_price = to_decimal(spec.unit_price, f"items[{idx}].unit_price")
            if quantity < ZERO:
                raise InvalidAmountError(f"items[{idx}].quantity", quantity, "must be non-negative")
            if unit_price < ZERO:
                raise InvalidAmountError(f"items[{idx}].unit_price", unit_price, "must be non-negative")
            foreign_total += quantity * unit_price
            item_models.append(InvoiceItemModel(
                line_seq=idx,
                description=spec.description,
                quantity=quantity,
                unit_price=unit_price,
                line_total=round_money(quantity * unit_price),
                created_by_id=ctx.actor_id,
            ))
        foreign_total = round_money(foreign_total)

        if fx_rate is not None:
            rate = _positive_rate(fx_rate)
        elif currency != ctx.base_currency:
            rate = self._fx.resolve_rate(currency, ctx.base_currency, as_of=issue_date)
        else:
            rate = ONE

        invoice = InvoiceModel(
            tenant_id=ctx.tenant_id,
            project_id=project_id,
            invoice_no=invoice_no,
            issue_date=issue_date,
            due_date=due_date,
            notes=notes,
            currency_code=currency,
            fx_rate=rate,
            foreign_amount=foreign_total,
            total_amount=convert(foreign_total, rate),
            status=(InvoiceStatus.DRAFT if draft else InvoiceStatus.SENT).value,
            created_by_id=ctx.actor_id,
        )
        invoice.items.extend(item_models)
        self.session.add(invoice)
        self.session.flush()

        with LogContext.bind(invoice_id=str(invoice.id)):
            posting = PostingOutcome.not_attempted() if draft else self._post_invoice(ctx, invoice)
            logger.info("billing_invoice_created", extra={
                "invoice_no": invoice_no,
                "status": invoice.status,
                "foreign_amount": str(foreign_total),
                "fx_rate": str(rate),
                "total_amount": str(invoice.total_amount),
                "journal_posted": posting.posted,
            })
        return InvoiceResult(invoice=invoice.to_dto(), posting=posting)

    @tenant_operation
    def issue_invoice(self, ctx: TenantContext, invoice_id: UUID) -> InvoiceResult:
        """Move a DRAFT invoice to SENT and book it to AR."""
        invoice = self._lock_invoice(ctx, invoice_id)
        if invoice.status != InvoiceStatus.DRAFT.value:
            raise InvoiceStatusError(invoice.id, invoice.status, "issue")

        invoice.status = InvoiceStatus.SENT.value
        invoice.updated_by_id = ctx.actor_id
        self.session.flush()

        with LogContext.bind(invoice_id=str(invoice.id)):
            posting = self._post_invoice(ctx, invoice)
            logger.info("billing_invoice_issued", extra={
                "invoice_no": invoice.invoice_no,
                "status": invoice.status,
                "journal_posted": posting.posted,
            })
        return InvoiceResult(invoice=invoice.to_dto(), posting=posting)

    @tenant_operation
    def cancel_invoice(
        self,
        ctx: TenantContext,
        invoice_id: UUID,
        cancel_date: date | None = None,
    ) -> InvoiceResult:
        """
        Cancel any invoice that is not PAID.

        When the invoice was booked to AR, the receivable still carried is
        reversed (Dr Revenue / Cr AR).  Payments already recorded stay.
        """
        invoice = self._lock_invoice(ctx, invoice_id)
        if invoice.status in (InvoiceStatus.PAID.value, InvoiceStatus.CANCELLED.value):
            raise InvoiceStatusError(invoice.id, invoice.status, "cancel")

        cancel_date = cancel_date or self.clock.today()
        invoice.status = InvoiceStatus.CANCELLED.value
        invoice.updated_by_id = ctx.actor_id
        self.session.flush()

        with LogContext.bind(invoice_id=str(invoice.id)):
            if invoice.journal_entry_id is None:
                posting = PostingOutcome.not_attempted()
            else:
                posting = self._post_cancellation(ctx, invoice, cancel_date)
            logger.info("billing_invoice_cancelled", extra={
                "invoice_no": invoice.invoice_no,
                "journal_posted": posting.posted,
            })
        return InvoiceResult(invoice=invoice.to_dto(), posting=posting)

    def get_invoice(self, ctx: TenantContext, invoice_id: UUID) -> Invoice:
        return self._get_invoice_model(ctx, invoice_id).to_dto()

    def list_invoices(
        self,
        ctx: TenantContext,
        project_id: UUID | None = None,
        status: InvoiceStatus | str | None = None,
    ) -> list[Invoice]:
        """Invoices newest first, each with collected and outstanding amounts."""
        query = select(InvoiceModel).where(InvoiceModel.tenant_id == ctx.tenant_id)
        if project_id is not None:
            query = query.where(InvoiceModel.project_id == project_id)
        if status is not None:
            query = query.where(InvoiceModel.status == InvoiceStatus(status).value)
        query = query.order_by(InvoiceModel.issue_date.desc(), InvoiceModel.invoice_no.desc())
        return [model.to_dto() for model in self.session.execute(query).scalars()]

    # =========================================================================
    # Payments
    # =========================================================================

    @tenant_operation
    def record_payment(
        self,
        ctx: TenantContext,
        invoice_id: UUID,
        amount: Any,
        paid_date: date | None = None,
        currency_code: str | None = None,
        fx_rate: Any = None,
        method: str | None = None,
        reference: str | None = None,
    ) -> PaymentResult:
        """
        Record a payment, recompute the invoice status and post settlement.

        The payment currency defaults to the invoice's currency.  Its rate is
        the explicit fx_rate, else 1 for the base currency, else the stored
        rate on paid_date (falling back to the invoice's booked rate when the
        payment is in the invoice currency).

        Settlement entry (PAY-<payment id>): Dr Bank payment base, Cr AR the
        relieved amount, and the realized FX difference to FxGain (credit)
        or FxLoss (debit).

        Raises:
            InvoiceNotFoundError: unknown invoice for the tenant.
            InvoiceStatusError: invoice is DRAFT (not yet booked to AR) or
                CANCELLED.
            InvalidAmountError: amount is not a positive number.
        """
        invoice = self._lock_invoice(ctx, invoice_id)
        if invoice.status in (InvoiceStatus.DRAFT.value, InvoiceStatus.CANCELLED.value):
            raise InvoiceStatusError(invoice.id, invoice.status, "record payment for")

        foreign_amount = to_decimal(amount, "amount")
        if foreign_amount <= ZERO:
            raise InvalidAmountError("amount", foreign_amount, "must be positive")
        paid_date = paid_date or self.clock.today()
        currency = validate_currency(currency_code or invoice.currency_code or ctx.base_currency)

        if fx_rate is not None:
            rate = _positive_rate(fx_rate)
        elif currency == ctx.base_currency:
            rate = ONE
        else:
            fallback = Decimal(invoice.fx_rate) if currency == invoice.currency_code else None
            rate = self._fx.resolve_rate(
                currency, ctx.base_currency, as_of=paid_date, fallback=fallback
            )

        with LogContext.bind(invoice_id=str(invoice.id)):
            logger.info("billing_record_payment_started", extra={
                "invoice_no": invoice.invoice_no,
                "amount": str(foreign_amount),
                "currency": currency,
                "fx_rate": str(rate),
            })

            payment = PaymentModel(
                tenant_id=ctx.tenant_id,
                invoice=invoice,
                project_id=invoice.project_id,
                amount=convert(foreign_amount, rate),
                paid_date=paid_date,
                currency_code=currency,
                fx_rate=rate,
                foreign_amount=foreign_amount,
                method=method,
                reference=reference,
                created_by_id=ctx.actor_id,
            )
            self.session.add(payment)
            self.session.flush()

            collected = self._apply_status(ctx, invoice)
            posting = self._post_settlement(ctx, invoice, payment)
            if posting.posted:
                payment.journal_entry_id = posting.journal_entry_id
                self.session.flush()

            logger.info("billing_payment_recorded", extra={
                "payment_id": str(payment.id),
                "base_amount": str(payment.amount),
                "collected": str(collected),
                "status": invoice.status,
                "journal_posted": posting.posted,
            })

        return PaymentResult(
            payment=payment.to_dto(),
            invoice_status=InvoiceStatus(invoice.status),
            collected=collected,
            posting=posting,
        )

    @tenant_operation
    def recompute_status(self, ctx: TenantContext, invoice_id: UUID) -> InvoiceStatus:
        """Re-derive the invoice status from the full payment set.  Idempotent."""
        invoice = self._lock_invoice(ctx, invoice_id)
        self._apply_status(ctx, invoice)
        return InvoiceStatus(invoice.status)

    def list_payments(self, ctx: TenantContext, invoice_id: UUID) -> list[Payment]:
        invoice = self._get_invoice_model(ctx, invoice_id)
        return [p.to_dto() for p in invoice.payments]

    def revenue_summary(
        self,
        ctx: TenantContext,
        project_id: UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> RevenueSummary:
        """Base-currency cash collected for a project, bounded by paid_date."""
        query = select(
            func.coalesce(func.sum(PaymentModel.amount), 0),
            func.count(PaymentModel.id),
        ).where(
            PaymentModel.tenant_id == ctx.tenant_id,
            PaymentModel.project_id == project_id,
        )
        if date_from is not None:
            query = query.where(PaymentModel.paid_date >= date_from)
        if date_to is not None:
            query = query.where(PaymentModel.paid_date <= date_to)
        total, count = self.session.execute(query).one()
        return RevenueSummary(
            project_id=project_id,
            collected=round_money(Decimal(str(total))),
            payment_count=int(count),
            date_from=date_from,
            date_to=date_to,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _find_by_number(self, ctx: TenantContext, invoice_no: str) -> InvoiceModel | None:
        return self.session.execute(
            select(InvoiceModel).where(
                InvoiceModel.tenant_id == ctx.tenant_id,
                InvoiceModel.invoice_no == invoice_no,
            )
        ).scalar_one_or_none()

    def _get_invoice_model(self, ctx: TenantContext, invoice_id: UUID) -> InvoiceModel:
        invoice = self.session.get(InvoiceModel, invoice_id)
        if invoice is None or invoice.tenant_id != ctx.tenant_id:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def _lock_invoice(self, ctx: TenantContext, invoice_id: UUID) -> InvoiceModel:
        # Serializes concurrent payments on one invoice (no-op on SQLite)
        invoice = self.session.execute(
            select(InvoiceModel)
            .where(
                InvoiceModel.id == invoice_id,
                InvoiceModel.tenant_id == ctx.tenant_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def _collected(self, invoice_id: UUID) -> Decimal:
        total = self.session.execute(
            select(func.coalesce(func.sum(PaymentModel.amount), 0)).where(
                PaymentModel.invoice_id == invoice_id
            )
        ).scalar_one()
        return round_money(Decimal(str(total)))

    def _apply_status(self, ctx: TenantContext, invoice: InvoiceModel) -> Decimal:
        """Write the status implied by the fresh payment aggregate; returns it."""
        collected = self._collected(invoice.id)
        if invoice.status in (InvoiceStatus.DRAFT.value, InvoiceStatus.CANCELLED.value):
            return collected

        new_status = derive_status(invoice.total_amount, collected).value
        if new_status != invoice.status:
            logger.info("billing_invoice_status_changed", extra={
                "invoice_no": invoice.invoice_no,
                "from_status": invoice.status,
                "to_status": new_status,
                "collected": str(collected),
                "total_amount": str(invoice.total_amount),
            })
            invoice.status = new_status
            invoice.updated_by_id = ctx.actor_id
            self.session.flush()
        return collected

    def _role_map(self, ctx: TenantContext) -> ChartOfAccountsRoleMap:
        return self._accounts.load_role_map(ctx, self.config.role_codes)

    def _skipped(self, event: str, missing: list[str], **fields) -> PostingOutcome:
        logger.warning(event, extra={
            "reason": PostingOutcome.MISSING_CONFIGURATION,
            "missing_roles": missing,
            **fields,
        })
        return PostingOutcome.missing_configuration(missing)

    def _post_invoice(self, ctx: TenantContext, invoice: InvoiceModel) -> PostingOutcome:
        roles = self._role_map(ctx)
        missing = roles.missing(AccountRole.AR, AccountRole.REVENUE)
        if missing:
            return self._skipped("invoice_journal_skipped", missing, invoice_no=invoice.invoice_no)
        if invoice.total_amount == ZERO:
            return PostingOutcome.nothing_to_post()

        total = Decimal(invoice.total_amount)
        entry = self._journal.post(ctx, JournalEntryRequest(
            entry_date=invoice.issue_date,
            reference=f"INV-{invoice.invoice_no}",
            description=f"Invoice {invoice.invoice_no}",
            lines=(
                LineSpec.debit_line(
                    roles.account_id(AccountRole.AR), total,
                    memo=f"Invoice {invoice.invoice_no}",
                    foreign_amount=invoice.foreign_amount,
                    foreign_code=invoice.currency_code,
                    fx_rate=invoice.fx_rate,
                ),
                LineSpec.credit_line(
                    roles.account_id(AccountRole.REVENUE), total,
                    memo=f"Revenue {invoice.invoice_no}",
                ),
            ),
        ))
        invoice.journal_entry_id = entry.id
        self.session.flush()
        return PostingOutcome.success(entry.id)

    def _post_settlement(
        self,
        ctx: TenantContext,
        invoice: InvoiceModel,
        payment: PaymentModel,
    ) -> PostingOutcome:
        settlement = compute_settlement(
            payment_base=Decimal(payment.amount),
            payment_foreign=Decimal(payment.foreign_amount),
            payment_currency=payment.currency_code,
            invoice_currency=invoice.currency_code,
            invoice_rate=Decimal(invoice.fx_rate),
            invoice_total=Decimal(invoice.total_amount),
            basis=self.config.settlement_credit_basis,
        )

        needed = [AccountRole.BANK, AccountRole.AR]
        if settlement.is_gain:
            needed.append(AccountRole.FX_GAIN)
        elif settlement.is_loss:
            needed.append(AccountRole.FX_LOSS)

        roles = self._role_map(ctx)
        missing = roles.missing(*needed)
        if missing:
            return self._skipped(
                "payment_journal_skipped", missing,
                payment_id=str(payment.id),
                fx_difference=str(settlement.fx_difference),
            )

        lines = [
            LineSpec.debit_line(
                roles.account_id(AccountRole.BANK), settlement.bank_debit,
                memo=f"Payment {invoice.invoice_no}",
                foreign_amount=payment.foreign_amount,
                foreign_code=payment.currency_code,
                fx_rate=payment.fx_rate,
            ),
            LineSpec.credit_line(
                roles.account_id(AccountRole.AR), settlement.ar_credit,
                memo="Settlement",
            ),
        ]
        if settlement.is_gain:
            lines.append(LineSpec.credit_line(
                roles.account_id(AccountRole.FX_GAIN), settlement.fx_difference,
                memo="Realized FX gain",
            ))
        elif settlement.is_loss:
            lines.append(LineSpec.debit_line(
                roles.account_id(AccountRole.FX_LOSS), -settlement.fx_difference,
                memo="Realized FX loss",
            ))

        entry = self._journal.post(ctx, JournalEntryRequest(
            entry_date=payment.paid_date,
            reference=f"PAY-{payment.id}",
            description=f"Payment for invoice {invoice.invoice_no}",
            lines=lines,
        ))
        if settlement.fx_difference != ZERO:
            logger.info("billing_realized_fx_posted", extra={
                "payment_id": str(payment.id),
                "fx_difference": str(settlement.fx_difference),
            })
        return PostingOutcome.success(entry.id)

    def _post_cancellation(
        self,
        ctx: TenantContext,
        invoice: InvoiceModel,
        cancel_date: date,
    ) -> PostingOutcome:
        relieved = ZERO
        for payment in invoice.payments:
            if payment.journal_entry_id is None:
                continue
            relieved += compute_settlement(
                payment_base=Decimal(payment.amount),
                payment_foreign=Decimal(payment.foreign_amount),
                payment_currency=payment.currency_code,
                invoice_currency=invoice.currency_code,
                invoice_rate=Decimal(invoice.fx_rate),
                invoice_total=Decimal(invoice.total_amount),
                basis=self.config.settlement_credit_basis,
            ).ar_credit
        carried = round_money(Decimal(invoice.total_amount) - relieved)
        if carried <= ZERO:
            return PostingOutcome.nothing_to_post()

        roles = self._role_map(ctx)
        missing = roles.missing(AccountRole.AR, AccountRole.REVENUE)
        if missing:
            return self._skipped("cancellation_journal_skipped", missing, invoice_no=invoice.invoice_no)

        entry = self._journal.post(ctx, JournalEntryRequest(
            entry_date=cancel_date,
            reference=f"INV-{invoice.invoice_no}-CANCEL",
            description=f"Cancellation of invoice {invoice.invoice_no}",
            lines=(
                LineSpec.debit_line(
                    roles.account_id(AccountRole.REVENUE), carried,
                    memo=f"Reverse revenue {invoice.invoice_no}",
                ),
                LineSpec.credit_line(
                    roles.account_id(AccountRole.AR), carried,
                    memo=f"Cancel invoice {invoice.invoice_no}",
                ),
            ),
        ))
        return PostingOutcome.success(entry.id)
