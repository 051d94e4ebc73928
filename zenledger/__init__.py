"""
ZenLedger - Source Package

The ledger aggregation engine behind a personal bookkeeping app.
Users record income, expense and transfer events against a few accounts,
tag them with categories, and read back balances, budget consumption
and period trends.

DESIGN PRINCIPLES:
1. The transaction log is the only source of truth
2. Derived numbers are recomputed on every read, never stored
3. Dangling references are displayed, never fatal
4. Assistant suggests → Human confirms → Store records
5. Storage layer is swappable
"""

__version__ = "1.2.0"
__author__ = "ZenLedger Team"
