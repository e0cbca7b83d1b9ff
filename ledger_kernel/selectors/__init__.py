"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.ledger_selector import (
    FinancialStatements,
    LedgerLine,
    LedgerSelector,
    TrialBalance,
    TrialBalanceRow,
)

__all__ = [
    "FinancialStatements",
    "LedgerLine",
    "LedgerSelector",
    "TrialBalance",
    "TrialBalanceRow",
]
