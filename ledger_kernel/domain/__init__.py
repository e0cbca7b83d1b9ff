"""Pure domain layer: clock, money primitives, account roles and DTOs."""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    JournalEntryRequest,
    LineSpec,
    PostingOutcome,
    TenantContext,
)
from ledger_kernel.domain.money import amounts_equal, convert, to_decimal, validate_currency
from ledger_kernel.domain.roles import (
    DEFAULT_ROLE_CODES,
    AccountRole,
    ChartOfAccountsRoleMap,
    RoleBinding,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "TenantContext",
    "LineSpec",
    "JournalEntryRequest",
    "PostingOutcome",
    "convert",
    "amounts_equal",
    "to_decimal",
    "validate_currency",
    "AccountRole",
    "DEFAULT_ROLE_CODES",
    "ChartOfAccountsRoleMap",
    "RoleBinding",
]
