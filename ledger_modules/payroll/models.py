"""
Payroll Domain Models (``ledger_modules.payroll.models``).

Responsibility
--------------
Frozen dataclass value objects for payroll runs and their staff lines.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``PayrollPostingService`` and returned to callers.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* net_pay = base_salary + allowances - deductions - advances.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from ledger_kernel.domain.dtos import PostingOutcome
from ledger_kernel.domain.money import ZERO, round_money


def net_pay(
    base_salary: Decimal,
    allowances: Decimal = ZERO,
    deductions: Decimal = ZERO,
    advances: Decimal = ZERO,
) -> Decimal:
    return round_money(base_salary + allowances - deductions - advances)


@dataclass(frozen=True)
class PayrollLineSpec:
    """Caller input for one staff member's pay for the month."""
    staff_ref: str
    base_salary: Any
    allowances: Any = ZERO
    deductions: Any = ZERO
    advances: Any = ZERO


@dataclass(frozen=True)
class PayrollLine:
    id: UUID
    staff_ref: str
    base_salary: Decimal
    allowances: Decimal
    deductions: Decimal
    advances: Decimal
    net_pay: Decimal


@dataclass(frozen=True)
class PayrollRun:
    id: UUID
    tenant_id: UUID
    year: int
    month: int
    run_date: date
    total_net_pay: Decimal
    lines: tuple[PayrollLine, ...] = field(default_factory=tuple)
    journal_entry_id: UUID | None = None


@dataclass(frozen=True)
class PayrollRunResult:
    run: PayrollRun
    posting: PostingOutcome
