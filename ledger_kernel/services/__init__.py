"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_service import ChartOfAccountsService
from ledger_kernel.services.fx_rate_service import FxRateService
from ledger_kernel.services.journal_engine import JournalEngine
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.tenant_service import TenantService

__all__ = [
    "ChartOfAccountsService",
    "FxRateService",
    "JournalEngine",
    "SequenceService",
    "TenantService",
]
