"""
Account roles -- logical names for the accounts automated postings need.

Responsibility:
    Billing, payroll and FX close never hard-code account codes.  They ask a
    ChartOfAccountsRoleMap for a role (AR, Bank, Revenue, ...) and either get
    the tenant's concrete account or learn that the role is unconfigured.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  The map is built by
    ChartOfAccountsService.load_role_map() once per operation.
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from ledger_kernel.exceptions import MissingConfigurationError


class AccountRole(str, Enum):
    """Logical account roles used by automated postings."""

    AR = "AR"
    BANK = "Bank"
    REVENUE = "Revenue"
    PAYROLL_EXPENSE = "PayrollExpense"
    STAFF_PAYABLE = "StaffPayable"
    FX_GAIN = "FxGain"
    FX_LOSS = "FxLoss"


# Conventional account codes used when a tenant has no explicit binding
DEFAULT_ROLE_CODES: dict[str, str] = {
    AccountRole.AR.value: "1200",
    AccountRole.BANK.value: "1010",
    AccountRole.REVENUE.value: "4000",
    AccountRole.PAYROLL_EXPENSE.value: "5000",
    AccountRole.STAFF_PAYABLE.value: "2100",
    AccountRole.FX_GAIN.value: "7300",
    AccountRole.FX_LOSS.value: "7500",
}


def _role_key(role: AccountRole | str) -> str:
    return role.value if isinstance(role, AccountRole) else str(role)


@dataclass(frozen=True)
class RoleBinding:
    """A role resolved to a concrete account."""

    role: str
    account_id: UUID
    account_code: str
    source: str  # "binding" or "convention"


@dataclass(frozen=True)
class ChartOfAccountsRoleMap:
    """
    Resolved role -> account map for one tenant at one point in time.

    Contract:
        Immutable snapshot; resolving the same role twice within an
        operation always gives the same account.

    Guarantees:
        - get() returns None for an unconfigured role.
        - require() raises MissingConfigurationError naming the role.
        - missing() lists unconfigured roles in the order asked.
    """

    tenant_id: UUID
    bindings: dict[str, RoleBinding] = field(default_factory=dict)

    def get(self, role: AccountRole | str) -> RoleBinding | None:
        return self.bindings.get(_role_key(role))

    def account_id(self, role: AccountRole | str) -> UUID | None:
        binding = self.get(role)
        return binding.account_id if binding else None

    def require(self, role: AccountRole | str) -> RoleBinding:
        binding = self.get(role)
        if binding is None:
            raise MissingConfigurationError([_role_key(role)])
        return binding

    def missing(self, *roles: AccountRole | str) -> list[str]:
        return [_role_key(r) for r in roles if _role_key(r) not in self.bindings]

    def has(self, *roles: AccountRole | str) -> bool:
        return not self.missing(*roles)
