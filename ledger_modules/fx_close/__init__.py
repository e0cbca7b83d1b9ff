"""
FX Close Module.

Unrealized FX exposure on open foreign-currency invoices and the period-end
revaluation entry.
"""

from ledger_modules.fx_close.models import ExposureReport, InvoiceExposure, PeriodCloseResult
from ledger_modules.fx_close.service import FxRevaluationService

__all__ = [
    "ExposureReport",
    "FxRevaluationService",
    "InvoiceExposure",
    "PeriodCloseResult",
]
