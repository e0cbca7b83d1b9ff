"""
Billing Module.

Handles invoices, payments, status derivation and realized FX on settlement.
"""

from ledger_modules.billing.models import (
    Invoice,
    InvoiceItem,
    InvoiceItemSpec,
    InvoiceResult,
    InvoiceStatus,
    Payment,
    PaymentResult,
    RevenueSummary,
    SettlementBasis,
    compute_settlement,
    derive_status,
)
from ledger_modules.billing.service import BillingService

__all__ = [
    "BillingService",
    "Invoice",
    "InvoiceItem",
    "InvoiceItemSpec",
    "InvoiceResult",
    "InvoiceStatus",
    "Payment",
    "PaymentResult",
    "RevenueSummary",
    "SettlementBasis",
    "compute_settlement",
    "derive_status",
]
