"""Domain models for the ledger kernel."""

from ledger_kernel.models.account import Account, AccountRoleBinding, AccountType
from ledger_kernel.models.exchange_rate import FxRate
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.models.sequence import SequenceCounter
from ledger_kernel.models.tenant import Tenant

__all__ = [
    "Tenant",
    "Account",
    "AccountType",
    "AccountRoleBinding",
    "JournalEntry",
    "JournalLine",
    "FxRate",
    "SequenceCounter",
]
