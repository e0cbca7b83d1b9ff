"""
Ledger Kernel

A multi-tenant, append-only double-entry ledger with:
- Balanced, atomic journal posting through a single engine
- Per-tenant chart of accounts and role map
- Derived (never stored) ledger, trial balance and statements
- Multi-currency conversion with explicit 2-decimal rounding
"""

__version__ = "0.1.0"
