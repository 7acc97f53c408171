"""
Voting Balance Ledger

Implements the fund-lock collaborator the governance core votes against:
  - FundLock protocol: lock / unlock / spendable
  - BalanceLedger: in-memory fungible balances with per-account frozen amounts

The host ledger that really holds balances is external; BalanceLedger is the
reference implementation used by the test-suite and the VotingInterface.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..constants import BALANCE_MAX
from ..exceptions import Defect, InsufficientFunds, QVoteException
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class LedgerError(QVoteException):
    """Base exception for ledger operations."""


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FundsMinted:
    """Emitted when an account is credited."""
    account: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Minted",
            "account": self.account,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FundsFrozen:
    """Emitted when part of a balance is frozen."""
    account: str
    amount: int
    frozen_total: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Frozen",
            "account": self.account,
            "amount": self.amount,
            "frozenTotal": self.frozen_total,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FundsThawed:
    """Emitted when a frozen amount is released."""
    account: str
    amount: int
    frozen_total: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Thawed",
            "account": self.account,
            "amount": self.amount,
            "frozenTotal": self.frozen_total,
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  FUND LOCK INTERFACE
# ══════════════════════════════════════════════════════════════════════

@runtime_checkable
class FundLock(Protocol):
    """
    Freeze/unfreeze contract consumed by the voting and claim engines.

    ``lock`` raises InsufficientFunds when the spendable balance is too low.
    ``unlock`` of more than is locked is a bookkeeping Defect.
    """

    def spendable(self, account: str) -> int: ...

    def lock(self, account: str, amount: int) -> None: ...

    def unlock(self, account: str, amount: int) -> None: ...


# ══════════════════════════════════════════════════════════════════════
#  BALANCE LEDGER
# ══════════════════════════════════════════════════════════════════════

class BalanceLedger:
    """
    In-memory fungible balances with freezes.

    A frozen amount stays in the account balance but cannot be spent;
    ``spendable = balance - frozen``. Total issuance is bounded by
    BALANCE_MAX. Mutations are serialized by an internal lock.
    """

    def __init__(self, symbol: str = "VOTE", balances: Optional[Dict[str, int]] = None):
        if not symbol:
            raise LedgerError("Ledger symbol cannot be empty")
        self.symbol = symbol
        self._balances: Dict[str, int] = {}
        self._frozen: Dict[str, int] = {}
        self._issuance = 0
        self._events: List[Any] = []
        self._lock = threading.Lock()

        for account, amount in (balances or {}).items():
            self.mint(account, amount)

    # ── Read-only views ───────────────────────────────────────────────

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def frozen_of(self, account: str) -> int:
        return self._frozen.get(account, 0)

    def spendable(self, account: str) -> int:
        return self.balance_of(account) - self.frozen_of(account)

    @property
    def total_issuance(self) -> int:
        return self._issuance

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    # ── Issuance ──────────────────────────────────────────────────────

    def mint(self, account: str, amount: int) -> FundsMinted:
        """
        Credit *account* with *amount* units.

        Total issuance is bounded by BALANCE_MAX, so no sum of balances
        (and no sum of frozen amounts) can exceed the balance type.
        """
        if not account:
            raise LedgerError("Account is required")
        if amount < 0:
            raise LedgerError("Mint amount cannot be negative")
        with self._lock:
            issuance = self._issuance + amount
            if issuance > BALANCE_MAX:
                raise LedgerError(
                    f"Minting {amount} {self.symbol} to {account} would push "
                    f"total issuance past {BALANCE_MAX}"
                )
            self._balances[account] = self.balance_of(account) + amount
            self._issuance = issuance
            event = FundsMinted(account=account, amount=amount)
            self._events.append(event)
        logger.debug(f"Mint: '{account}' +{amount} {self.symbol}")
        return event

    # ── Freeze / thaw (FundLock) ──────────────────────────────────────

    def lock(self, account: str, amount: int) -> None:
        """Freeze *amount* of the spendable balance of *account*."""
        if amount < 0:
            raise LedgerError("Lock amount cannot be negative")
        with self._lock:
            available = self.spendable(account)
            if available < amount:
                raise InsufficientFunds(
                    f"'{account}' spendable {available} < lock amount {amount} {self.symbol}"
                )
            frozen = self.frozen_of(account) + amount
            self._frozen[account] = frozen
            self._events.append(FundsFrozen(account=account, amount=amount, frozen_total=frozen))
        logger.debug(f"Lock: '{account}' +{amount} {self.symbol} (frozen={frozen})")

    def unlock(self, account: str, amount: int) -> None:
        """Release *amount* previously frozen for *account*."""
        if amount < 0:
            raise LedgerError("Unlock amount cannot be negative")
        with self._lock:
            frozen = self.frozen_of(account)
            if amount > frozen:
                raise Defect(
                    f"Unlock of {amount} {self.symbol} exceeds frozen {frozen} for '{account}'"
                )
            remaining = frozen - amount
            if remaining:
                self._frozen[account] = remaining
            else:
                self._frozen.pop(account, None)
            self._events.append(FundsThawed(account=account, amount=amount, frozen_total=remaining))
        logger.debug(f"Unlock: '{account}' -{amount} {self.symbol} (frozen={remaining})")

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "symbol": self.symbol,
                "totalIssuance": self._issuance,
                "balances": dict(self._balances),
                "frozen": dict(self._frozen),
            }

    def __repr__(self) -> str:
        return f"<BalanceLedger {self.symbol} accounts={len(self._balances)}>"
