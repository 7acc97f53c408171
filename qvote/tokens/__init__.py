"""
qvote voting balances

Provides:
  - FundLock       : freeze/unfreeze contract consumed by the governance core
  - BalanceLedger  : in-memory reference implementation of FundLock
"""

from .ledger import (
    BalanceLedger,
    FundLock,
    FundsFrozen,
    FundsMinted,
    FundsThawed,
    LedgerError,
)

__all__ = [
    "BalanceLedger",
    "FundLock",
    "FundsFrozen",
    "FundsMinted",
    "FundsThawed",
    "LedgerError",
]
