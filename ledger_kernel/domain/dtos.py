"""
DTOs -- immutable data structures crossing the service boundary.

Responsibility:
    TenantContext (who and for which company an operation runs), LineSpec
    and JournalEntryRequest (input to JournalEngine.post), and
    PostingOutcome (observable result of a posting that may be skipped).

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Amount validation happens in
    JournalEngine, which reports problems with typed errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

ZERO = Decimal("0")


@dataclass(frozen=True)
class TenantContext:
    """
    Identity of the caller and the tenant an operation is scoped to.

    Contract:
        Every core operation takes a TenantContext.  Services never read or
        write rows belonging to another tenant_id.
    """

    tenant_id: UUID
    base_currency: str
    actor_id: UUID | None = None

    def log_fields(self) -> dict[str, str]:
        fields = {"tenant_id": str(self.tenant_id)}
        if self.actor_id is not None:
            fields["actor_id"] = str(self.actor_id)
        return fields


@dataclass(frozen=True)
class LineSpec:
    """
    Input for a journal line.

    Amounts are in the tenant's base currency.  The optional foreign_*
    fields record the original-currency side of a converted amount.
    """

    account_id: UUID
    debit: Any = ZERO
    credit: Any = ZERO
    memo: str | None = None
    foreign_amount: Decimal | None = None
    foreign_code: str | None = None
    fx_rate: Decimal | None = None

    @classmethod
    def debit_line(cls, account_id: UUID, amount: Decimal, **kwargs: Any) -> LineSpec:
        return cls(account_id=account_id, debit=amount, credit=ZERO, **kwargs)

    @classmethod
    def credit_line(cls, account_id: UUID, amount: Decimal, **kwargs: Any) -> LineSpec:
        return cls(account_id=account_id, debit=ZERO, credit=amount, **kwargs)


@dataclass(frozen=True)
class JournalEntryRequest:
    """A proposed journal entry: header fields plus ordered lines."""

    entry_date: date
    lines: tuple[LineSpec, ...]
    reference: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        # Accept any sequence but store a tuple
        if not isinstance(self.lines, tuple):
            object.__setattr__(self, "lines", tuple(self.lines))


@dataclass(frozen=True)
class PostingOutcome:
    """
    Result of a posting that is allowed to be skipped.

    Contract:
        posted=True carries journal_entry_id.  posted=False carries a
        machine-readable reason ("MISSING_CONFIGURATION", "NOTHING_TO_POST")
        and, for missing configuration, the unresolved roles.
    """

    posted: bool
    journal_entry_id: UUID | None = None
    reason: str | None = None
    missing_roles: tuple[str, ...] = field(default_factory=tuple)

    MISSING_CONFIGURATION = "MISSING_CONFIGURATION"
    NOTHING_TO_POST = "NOTHING_TO_POST"

    @classmethod
    def success(cls, journal_entry_id: UUID) -> PostingOutcome:
        return cls(posted=True, journal_entry_id=journal_entry_id)

    @classmethod
    def missing_configuration(cls, missing_roles: list[str]) -> PostingOutcome:
        return cls(
            posted=False,
            reason=cls.MISSING_CONFIGURATION,
            missing_roles=tuple(missing_roles),
        )

    @classmethod
    def nothing_to_post(cls) -> PostingOutcome:
        return cls(posted=False, reason=cls.NOTHING_TO_POST)

    @classmethod
    def not_attempted(cls) -> PostingOutcome:
        return cls(posted=False)
