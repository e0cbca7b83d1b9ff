"""
Payroll Module.

Monthly payroll runs and their accrual posting (Dr payroll expense /
Cr staff payable).
"""

from ledger_modules.payroll.models import (
    PayrollLine,
    PayrollLineSpec,
    PayrollRun,
    PayrollRunResult,
)
from ledger_modules.payroll.service import PayrollPostingService

__all__ = [
    "PayrollLine",
    "PayrollLineSpec",
    "PayrollPostingService",
    "PayrollRun",
    "PayrollRunResult",
]
