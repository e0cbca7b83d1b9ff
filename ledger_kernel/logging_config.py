"""
Structured JSON logging for the ledger.

Every record renders as one JSON line.  Operation scope (tenant, actor,
operation name and the document being worked on) is bound once with
``LogContext.bind()`` and stamped onto every record emitted inside it, so
call sites pass only event-specific fields through ``extra``.

Usage::

    with LogContext.bind(operation="record_payment", **ctx.log_fields()):
        logger.info("payment_recorded", extra={"amount": amount})
"""

__all__ = [
    "SCOPE_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any, TextIO
from uuid import UUID

_LOGGER_PREFIX = "ledger_kernel"

SCOPE_FIELDS = (
    "tenant_id",
    "actor_id",
    "operation",
    "entry_id",
    "invoice_id",
    "payroll_run_id",
)

_EMPTY_SCOPE: Mapping[str, str] = MappingProxyType({})
_scope: ContextVar[Mapping[str, str]] = ContextVar("ledger_log_scope", default=_EMPTY_SCOPE)


class LogContext:
    """Operation-scoped log fields, carried in a contextvar."""

    @staticmethod
    def current() -> dict[str, str]:
        return dict(_scope.get())

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """
        Add fields to the log scope for the duration of the block.

        None values are skipped.  A nested bind overrides outer values and
        the outer scope comes back on exit.

        Raises:
            ValueError: a field name outside SCOPE_FIELDS.
        """
        unknown = sorted(set(fields) - set(SCOPE_FIELDS))
        if unknown:
            raise ValueError(f"Unknown log scope fields: {unknown}")
        merged = dict(_scope.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _scope.set(MappingProxyType(merged))
        try:
            yield
        finally:
            _scope.reset(token)

    @staticmethod
    def clear() -> None:
        _scope.set(_EMPTY_SCOPE)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(str(v) for v in value)
    return str(value)


def _describe_error(exc: BaseException) -> dict[str, Any]:
    # Ledger errors carry code, kind and their structured context in to_dict()
    to_dict = getattr(exc, "to_dict", None)
    detail = to_dict() if callable(to_dict) else {"message": str(exc)}
    return {"type": type(exc).__name__, **detail}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: header, scope fields, extras, error."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_scope.get())

        for key, val in vars(record).items():
            if key not in _RECORD_ATTRS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload["error"] = _describe_error(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_jsonable)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ledger_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> logging.Logger:
    """
    Route the ledger_kernel hierarchy to a single JSON handler.

    The first call installs the handler; later calls only change the level.
    """
    global _installed_handler
    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False
    if _installed_handler is None:
        _installed_handler = handler or logging.StreamHandler(stream or sys.stderr)
        _installed_handler.setFormatter(StructuredFormatter())
        root.addHandler(_installed_handler)
    return root


def reset_logging() -> None:
    """Remove the installed handler and restore defaults. For tests."""
    global _installed_handler
    root = logging.getLogger(_LOGGER_PREFIX)
    if _installed_handler is not None:
        root.removeHandler(_installed_handler)
        _installed_handler = None
    root.setLevel(logging.WARNING)
    root.propagate = True
