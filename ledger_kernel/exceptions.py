"""
Typed exception hierarchy for the ledger kernel.

Every error raised by the kernel or the ledger modules is a subclass of
LedgerKernelError.  Each class carries two static identifiers:

    code  machine-readable identifier for the specific failure
    kind  the category callers branch on (shared by related codes)

and stores its context as instance attributes, so exceptions survive being
logged, serialized, or returned through an API without message parsing.

    LedgerKernelError
    |
    +-- ValidationError                 kind=VALIDATION_ERROR
    |   +-- InvalidAmountError
    |   +-- InvalidCurrencyError
    |   +-- InvalidExchangeRateError
    |   +-- AccountInactiveError
    |   +-- InvoiceStatusError
    |
    +-- UnbalancedEntryError            kind=UNBALANCED_ENTRY
    |
    +-- NotFoundError                   kind=NOT_FOUND
    |   +-- TenantNotFoundError
    |   +-- AccountNotFoundError
    |   +-- InvoiceNotFoundError
    |   +-- ExchangeRateNotFoundError
    |
    +-- MissingConfigurationError       kind=MISSING_CONFIGURATION
    +-- DuplicateCodeError              kind=DUPLICATE_CODE
    +-- PeriodAlreadyClosedError        kind=CONFLICT
    +-- ImmutabilityViolationError      kind=IMMUTABILITY

Handling pattern:

    try:
        engine.post(ctx, request)
    except UnbalancedEntryError as e:
        return {"error": e.code, "debits": e.total_debit, "credits": e.total_credit}
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must define a `code` class attribute for machine-readable
    identification and inherit or override `kind`.
    """

    code: str = "LEDGER_KERNEL_ERROR"
    kind: str = "LEDGER_KERNEL_ERROR"

    def context(self) -> dict[str, Any]:
        """Structured attributes set by the concrete exception."""
        return {
            k: v for k, v in vars(self).items() if not k.startswith("_")
        }

    def to_dict(self) -> dict[str, Any]:
        """Serializable representation (Decimal/date/UUID rendered as str)."""
        payload: dict[str, Any] = {
            "kind": self.kind,
            "code": self.code,
            "message": str(self),
        }
        for key, value in self.context().items():
            payload[key] = _jsonable(value)
        return payload


def _jsonable(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (Decimal, date, UUID)):
        return str(value)
    return value


# Validation


class ValidationError(LedgerKernelError):
    """Input failed a precondition check."""

    code: str = "VALIDATION_ERROR"
    kind: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidAmountError(ValidationError):
    """Amount is not a finite number, or is negative where not allowed."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: Any, reason: str = "must be a finite number"):
        self.value = None if value is None else str(value)
        self.reason = reason
        super().__init__(f"Invalid amount for {field}: {value!r} ({reason})", field=field)


class InvalidCurrencyError(ValidationError):
    """Currency code is not a valid ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: {currency!r}", field="currency")


class InvalidExchangeRateError(ValidationError):
    """Exchange rate value is zero, negative, or otherwise unusable."""

    code: str = "INVALID_EXCHANGE_RATE"

    def __init__(self, rate_value: Any, reason: str):
        self.rate_value = str(rate_value)
        self.reason = reason
        super().__init__(f"Invalid exchange rate {rate_value}: {reason}", field="rate")


class AccountInactiveError(ValidationError):
    """Posting targets an account that has been deactivated."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_id: Any, account_code: str | None = None):
        self.account_id = str(account_id)
        self.account_code = account_code
        super().__init__(
            f"Account is inactive: {account_code or account_id}", field="account_id"
        )


class InvoiceStatusError(ValidationError):
    """Operation is not permitted in the invoice's current status."""

    code: str = "INVALID_INVOICE_STATUS"

    def __init__(self, invoice_id: Any, status: str, operation: str):
        self.invoice_id = str(invoice_id)
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} invoice {invoice_id} in status {status}",
            field="status",
        )


# Balance


class UnbalancedEntryError(LedgerKernelError):
    """Total debits and total credits differ after 2-decimal rounding."""

    code: str = "UNBALANCED_ENTRY"
    kind: str = "UNBALANCED_ENTRY"

    def __init__(self, total_debit: Decimal, total_credit: Decimal):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Entry is unbalanced: debits={total_debit}, credits={total_credit}"
        )


# Lookups


class NotFoundError(LedgerKernelError):
    """A referenced record does not exist (within the tenant)."""

    code: str = "NOT_FOUND"
    kind: str = "NOT_FOUND"

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = str(identifier)
        super().__init__(f"{entity} not found: {identifier}")


class TenantNotFoundError(NotFoundError):
    code: str = "TENANT_NOT_FOUND"

    def __init__(self, tenant_id: Any):
        super().__init__("Tenant", tenant_id)


class AccountNotFoundError(NotFoundError):
    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: Any):
        super().__init__("Account", account_id)


class InvoiceNotFoundError(NotFoundError):
    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: Any):
        super().__init__("Invoice", invoice_id)


class ExchangeRateNotFoundError(NotFoundError):
    """No stored rate for the pair on or before the requested date."""

    code: str = "EXCHANGE_RATE_NOT_FOUND"

    def __init__(self, from_currency: str, to_currency: str, as_of: date | None = None):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.as_of = as_of
        pair = f"{from_currency}/{to_currency}"
        suffix = f" as of {as_of}" if as_of else ""
        super().__init__("ExchangeRate", f"{pair}{suffix}")


# Configuration


class MissingConfigurationError(LedgerKernelError):
    """Required account roles are not configured for the tenant."""

    code: str = "MISSING_CONFIGURATION"
    kind: str = "MISSING_CONFIGURATION"

    def __init__(self, missing_roles: list[str] | tuple[str, ...], message: str | None = None):
        self.missing_roles = list(missing_roles)
        super().__init__(
            message
            or f"Missing account configuration for roles: {', '.join(self.missing_roles)}"
        )


class DuplicateCodeError(LedgerKernelError):
    """A per-tenant unique code (account code, invoice number) already exists."""

    code: str = "DUPLICATE_CODE"
    kind: str = "DUPLICATE_CODE"

    def __init__(self, entity: str, value: str):
        self.entity = entity
        self.value = value
        super().__init__(f"{entity} code already exists: {value}")


class PeriodAlreadyClosedError(LedgerKernelError):
    """An FX period close was already posted for this tenant and date."""

    code: str = "PERIOD_ALREADY_CLOSED"
    kind: str = "CONFLICT"

    def __init__(self, as_of: date, journal_entry_id: Any):
        self.as_of = as_of
        self.journal_entry_id = str(journal_entry_id)
        super().__init__(
            f"Period already closed as of {as_of} (entry {journal_entry_id})"
        )


class ImmutabilityViolationError(LedgerKernelError):
    """Attempt to modify or delete a posted journal record."""

    code: str = "IMMUTABILITY_VIOLATION"
    kind: str = "IMMUTABILITY"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")
