"""
BaseService -- abstract base for all ledger services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    service that writes.  Services receive a SQLAlchemy ``Session`` and use
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Module services
    (billing, fx_close, payroll) extend it as well.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's transaction
      and never commit or rollback themselves.  The caller (session_scope()
      or a test fixture) owns commit/rollback, so a failed operation leaves
      no partial rows.
"""

import functools
from abc import ABC
from typing import Any, Callable, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import TenantContext
from ledger_kernel.logging_config import LogContext

T = TypeVar("T")


class BaseService(ABC):
    """
    Abstract base class for all services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide report queries -- those belong in
          ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()


def tenant_operation(method: Callable[..., T]) -> Callable[..., T]:
    """
    Run a service method inside a log scope bound to its TenantContext.

    The decorated method takes the TenantContext as its first argument;
    every record logged during the call carries tenant_id, actor_id and
    the method name as operation.
    """

    @functools.wraps(method)
    def wrapper(self, ctx: TenantContext, *args: Any, **kwargs: Any) -> T:
        with LogContext.bind(operation=method.__name__, **ctx.log_fields()):
            return method(self, ctx, *args, **kwargs)

    return wrapper
