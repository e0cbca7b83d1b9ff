"""
Ledger Modules.

Thin orchestration layers over the ledger kernel.  Each module contains:
- Domain models (the nouns, frozen dataclasses)
- ORM models where the module persists its own documents
- A service that computes amounts and posts through JournalEngine

Modules:
- Billing: invoices, payments, realized FX on settlement
- FX close: unrealized exposure and period-end revaluation
- Payroll: monthly payroll accrual posting

Account selection always goes through the tenant's ChartOfAccountsRoleMap;
no module hard-codes account codes.
"""
