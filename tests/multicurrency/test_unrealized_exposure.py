"""
Unrealized FX exposure on open foreign-currency invoices.

Verifies:
- Exposure = convert(foreign amount, current rate) - booked base amount
- Only open (SENT / PARTIALLY_PAID) foreign-currency invoices are revalued
- Without a current rate the booked rate is used, giving zero exposure
- The report is read-only
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_modules.billing import InvoiceStatus


class TestExposure:

    def test_usd_invoice_gain(self, fx_close_service, fx_rate_service, tenant_ctx, standard_accounts, foreign_invoice):
        invoice = foreign_invoice("100", "USD", "3.75")
        fx_rate_service.record_rate("USD", "SAR", "3.80", date(2024, 3, 31))

        report = fx_close_service.unrealized_exposure(tenant_ctx)

        assert len(report.exposures) == 1
        exposure = report.exposures[0]
        assert exposure.invoice_id == invoice.id
        assert exposure.currency == "USD"
        assert exposure.original_rate == Decimal("3.75")
        assert exposure.current_rate == Decimal("3.80")
        assert exposure.invoice_base == Decimal("375.00")
        assert exposure.revalued_base == Decimal("380.00")
        assert exposure.unrealized == Decimal("5.00")
        assert report.total == Decimal("5.00")

    def test_loss_is_negative(self, fx_close_service, fx_rate_service, tenant_ctx, standard_accounts, foreign_invoice):
        foreign_invoice("100", "USD", "3.75")
        fx_rate_service.record_rate("USD", "SAR", "3.70", date(2024, 3, 31))

        assert fx_close_service.unrealized_exposure(tenant_ctx).total == Decimal("-5.00")

    def test_unchanged_rate_has_no_exposure(self, fx_close_service, fx_rate_service, tenant_ctx, standard_accounts, foreign_invoice):
        foreign_invoice("1234.56", "EUR", "4.0512")
        fx_rate_service.record_rate("EUR", "SAR", "4.0512", date(2024, 3, 31))

        assert fx_close_service.unrealized_exposure(tenant_ctx).total == Decimal("0.00")

    @pytest.mark.parametrize("current, expected", [("3.76", "10.00"), ("3.85", "100.00"), ("3.65", "-100.00")])
    def test_exposure_proportional_to_rate_move(
        self, fx_close_service, fx_rate_service, tenant_ctx, standard_accounts, foreign_invoice, current, expected
    ):
        foreign_invoice("1000", "USD", "3.75")
        fx_rate_service.record_rate("USD", "SAR", current, date(2024, 3, 31))

        assert fx_close_service.unrealized_exposure(tenant_ctx).total == Decimal(expected)

    def test_missing_rate_uses_invoice_rate(self, fx_close_service, tenant_ctx, standard_accounts, foreign_invoice):
        foreign_invoice("100", "USD", "3.75")

        report = fx_close_service.unrealized_exposure(tenant_ctx)

        assert report.exposures[0].current_rate == Decimal("3.75")
        assert report.total == Decimal("0.00")

    def test_as_of_limits_rate(self, fx_close_service, fx_rate_service, tenant_ctx, standard_accounts, foreign_invoice):
        foreign_invoice("100", "USD", "3.75")
        fx_rate_service.record_rate("USD", "SAR", "3.80", date(2024, 3, 31))

        report = fx_close_service.unrealized_exposure(tenant_ctx, as_of=date(2024, 3, 15))

        assert report.as_of == date(2024, 3, 15)
        assert report.total == Decimal("0.00")

    def test_multiple_currencies_sum(self, fx_close_service, fx_rate_service, tenant_ctx, standard_accounts, foreign_invoice):
        foreign_invoice("100", "USD", "3.75")
        foreign_invoice("200", "EUR", "4.00")
        fx_rate_service.record_rate("USD", "SAR", "3.80", date(2024, 3, 31))
        fx_rate_service.record_rate("EUR", "SAR", "3.95", date(2024, 3, 31))

        report = fx_close_service.unrealized_exposure(tenant_ctx)

        assert sorted(e.unrealized for e in report.exposures) == [Decimal("-10.00"), Decimal("5.00")]
        assert report.total == Decimal("-5.00")


class TestExposureScope:

    def test_excludes_base_currency_invoices(self, fx_close_service, tenant_ctx, standard_accounts, foreign_invoice):
        foreign_invoice("100", "SAR", "1")
        assert fx_close_service.unrealized_exposure(tenant_ctx).exposures == ()

    def test_excludes_paid_cancelled_and_draft(
        self, fx_close_service, fx_rate_service, billing_service, tenant_ctx, standard_accounts, foreign_invoice
    ):
        paid = foreign_invoice("100", "USD", "3.75")
        billing_service.record_payment(tenant_ctx, paid.id, amount="100", fx_rate="3.75")
        cancelled = foreign_invoice("100", "USD", "3.75")
        billing_service.cancel_invoice(tenant_ctx, cancelled.id)
        foreign_invoice("100", "USD", "3.75", draft=True)
        open_invoice = foreign_invoice("100", "USD", "3.75")
        fx_rate_service.record_rate("USD", "SAR", "3.80", date(2024, 3, 31))

        report = fx_close_service.unrealized_exposure(tenant_ctx)

        assert [e.invoice_id for e in report.exposures] == [open_invoice.id]

    def test_partially_paid_invoice_included(
        self, fx_close_service, fx_rate_service, billing_service, tenant_ctx, standard_accounts, foreign_invoice
    ):
        invoice = foreign_invoice("100", "USD", "3.75")
        payment = billing_service.record_payment(tenant_ctx, invoice.id, amount="40", fx_rate="3.75")
        assert payment.invoice_status is InvoiceStatus.PARTIALLY_PAID
        fx_rate_service.record_rate("USD", "SAR", "3.80", date(2024, 3, 31))

        assert fx_close_service.unrealized_exposure(tenant_ctx).total == Decimal("5.00")

    def test_other_tenant_not_included(
        self, fx_close_service, fx_rate_service, other_tenant_ctx, standard_accounts, foreign_invoice
    ):
        foreign_invoice("100", "USD", "3.75")
        assert fx_close_service.unrealized_exposure(other_tenant_ctx).exposures == ()

    def test_exposure_is_read_only(
        self, fx_close_service, fx_rate_service, ledger_selector, tenant_ctx, standard_accounts, foreign_invoice
    ):
        foreign_invoice("100", "USD", "3.75")
        fx_rate_service.record_rate("USD", "SAR", "3.80", date(2024, 3, 31))
        before = len(ledger_selector.general_ledger(tenant_ctx))

        fx_close_service.unrealized_exposure(tenant_ctx)

        assert len(ledger_selector.general_ledger(tenant_ctx)) == before
