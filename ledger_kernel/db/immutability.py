"""
ORM-level immutability enforcement for posted journal records.

Posted journal entries cannot be modified, only offset by new entries that
leave a visible trail.  SQLAlchemy fires mapper events before UPDATE/DELETE
statements reach the database; the listeners here intercept them:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
    [before_delete] --> _check_*_delete() ---------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Protected entities:

    Entity        | When immutable
    --------------|-----------------------------------------------
    JournalEntry  | Always (entries are only created already posted)
    JournalLine   | Always (lines are part of the entry)

updated_at / updated_by_id are audit metadata and may change.

Registered by init_engine_from_url().  Tests that need to bypass the checks
call unregister_immutability_listeners() and re-register afterwards.
"""

from sqlalchemy import event, inspect

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _changed_fields(target) -> list[str]:
    insp = inspect(target)
    return [
        attr.key
        for attr in insp.attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _block(entity_type: str, target, operation: str, reason: str, **extra) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "statement": operation,
            **extra,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_journal_entry_immutability(mapper, connection, target):
    """Prevent updates to JournalEntry records."""
    changed = _changed_fields(target)
    # Relationship collection changes (lines) are checked on the lines themselves
    changed = [f for f in changed if f != "lines"]
    if changed:
        _block(
            "JournalEntry",
            target,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on posted journal entry",
            field=changed[0],
        )


def _check_journal_entry_delete(mapper, connection, target):
    """Prevent deletion of JournalEntry records."""
    _block("JournalEntry", target, "DELETE", "Posted journal entries cannot be deleted")


def _check_journal_line_immutability(mapper, connection, target):
    """Prevent updates to JournalLine records."""
    changed = _changed_fields(target)
    changed = [f for f in changed if f != "entry"]
    if changed:
        _block(
            "JournalLine",
            target,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on a posted journal line",
            field=changed[0],
        )


def _check_journal_line_delete(mapper, connection, target):
    """Prevent deletion of JournalLine records."""
    _block("JournalLine", target, "DELETE", "Journal lines cannot be deleted")


_LISTENERS = (
    ("JournalEntry", "before_update", _check_journal_entry_immutability),
    ("JournalEntry", "before_delete", _check_journal_entry_delete),
    ("JournalLine", "before_update", _check_journal_line_immutability),
    ("JournalLine", "before_delete", _check_journal_line_delete),
)


def _targets():
    from ledger_kernel.models.journal import JournalEntry, JournalLine

    return {"JournalEntry": JournalEntry, "JournalLine": JournalLine}


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: a listener already attached is not attached twice.
    """
    targets = _targets()
    for name, event_name, listener_fn in _LISTENERS:
        target = targets[name]
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    targets = _targets()
    for name, event_name, listener_fn in _LISTENERS:
        target = targets[name]
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
