"""
Module ORM Registry (``ledger_modules._orm_registry``).

Responsibility
--------------
Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before tables are
created.  ``ledger_kernel.db.engine.create_tables()`` calls
``import_all_orm_models()`` lazily, so the kernel itself never imports a
module at import time.

Architecture position
---------------------
**Modules layer** -- utility.  Imports from sibling ``ledger_modules``
packages and from ``ledger_kernel.models`` (allowed: modules -> kernel).
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``ledger_modules.*.orm`` module.

    Kernel models (Tenant, Account, JournalEntry, ...) are registered first
    because module tables carry foreign keys to them.

    This function is idempotent -- repeated calls are harmless.
    """
    import ledger_kernel.models  # noqa: F401
    import ledger_modules.billing.orm  # noqa: F401
    import ledger_modules.payroll.orm  # noqa: F401
