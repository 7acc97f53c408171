"""
Governance Types

Proposal kinds and lifecycle states, the bounded collections a proposal is
built from, the running tally, and the per-voter vote record.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, FrozenSet, Iterable, Iterator, Optional, Tuple

from ..constants import BALANCE_MAX
from ..exceptions import Defect, ListTooLarge, OffchainDataTooLarge


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class ProposalKind(IntEnum):
    """How a proposal reads its account list."""
    PUBLIC = 0    # Account list is a ban list; closes only on explicit close
    PRIVATE = 1   # Account list is an allow list; auto-closes on majority


class ProposalStatus(IntEnum):
    """
    Lifecycle stage.

    Only PENDING (initial) and CLOSED (terminal) are ever stored. ACTIVE and
    ENDED are derived from the block height at read time.
    """
    PENDING = 0
    ACTIVE = 1
    ENDED = 2
    CLOSED = 3


# ══════════════════════════════════════════════════════════════════════
#  BOUNDED COLLECTIONS
# ══════════════════════════════════════════════════════════════════════

class BoundedBytes(bytes):
    """Immutable byte string that refuses to exceed its capacity."""

    def __new__(cls, data: bytes = b"", capacity: int = 0):
        if isinstance(data, str):
            data = data.encode()
        data = bytes(data)
        if len(data) > capacity:
            raise OffchainDataTooLarge(
                f"Offchain data is {len(data)} bytes, limit is {capacity}"
            )
        obj = bytes.__new__(cls, data)
        obj.capacity = capacity
        return obj

    def __repr__(self) -> str:
        return f"BoundedBytes({bytes(self)!r}, capacity={self.capacity})"


class BoundedAccountList:
    """
    Fixed-capacity, duplicate-free, ordered set of account identifiers.
    """

    __slots__ = ("_accounts", "_members", "capacity")

    def __init__(self, accounts: Optional[Iterable[str]] = None, capacity: int = 0):
        if isinstance(accounts, (str, bytes)):
            raise TypeError("Account list must be an iterable of accounts, not a single string")
        unique = tuple(dict.fromkeys(accounts or ()))
        if len(unique) > capacity:
            raise ListTooLarge(
                f"Account list holds {len(unique)} accounts, limit is {capacity}"
            )
        self._accounts: Tuple[str, ...] = unique
        self._members: FrozenSet[str] = frozenset(unique)
        self.capacity = capacity

    def __contains__(self, account: object) -> bool:
        return account in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(self._accounts)

    def __len__(self) -> int:
        return len(self._accounts)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BoundedAccountList):
            return self._accounts == other._accounts
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._accounts)

    def to_list(self):
        return list(self._accounts)

    def __repr__(self) -> str:
        return f"BoundedAccountList({list(self._accounts)!r}, capacity={self.capacity})"


# ══════════════════════════════════════════════════════════════════════
#  TALLY
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Tally:
    """
    Running vote ratio for a proposal.

    ``aye_power`` accumulates the quadratic cost of aye votes,
    ``total_power`` that of all votes. Additions saturate at BALANCE_MAX;
    a subtraction that would underflow is a bookkeeping Defect.
    """
    aye_power: int = 0
    total_power: int = 0

    def add(self, aye: bool, power: int) -> None:
        if aye:
            self.aye_power = min(self.aye_power + power, BALANCE_MAX)
        self.total_power = min(self.total_power + power, BALANCE_MAX)

    def remove(self, aye: bool, power: int) -> None:
        if power > self.total_power or (aye and power > self.aye_power):
            raise Defect(
                f"Tally underflow removing {power} ({'aye' if aye else 'nay'}) "
                f"from {self.ratio}"
            )
        if aye:
            self.aye_power -= power
        self.total_power -= power

    @property
    def ratio(self) -> Tuple[int, int]:
        return (self.aye_power, self.total_power)

    @property
    def has_majority(self) -> bool:
        """Strictly more than half of the cast power is aye."""
        return self.aye_power * 2 > self.total_power

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ayePower": self.aye_power,
            "totalPower": self.total_power,
            "hasMajority": self.has_majority,
        }


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Proposal:
    """
    Quadratic-voting proposal.

    Fields:
        id:             Unique monotonic identifier
        creator:        Account that created the proposal
        offchain_data:  Opaque payload (CID, link, plain text)
        kind:           PUBLIC (ban list) or PRIVATE (allow list)
        account_list:   Accounts the kind's rule applies to
        start_block:    First block accepting votes
        end_block:      Last block accepting votes
        status:         Stored status, PENDING or CLOSED
        tally:          Running (aye_power, total_power)
    """
    id: int
    creator: str
    offchain_data: BoundedBytes
    kind: ProposalKind
    account_list: BoundedAccountList
    start_block: int
    end_block: int
    status: ProposalStatus = ProposalStatus.PENDING
    tally: Tally = field(default_factory=Tally)

    def is_creator(self, who: str) -> bool:
        return self.creator == who

    def has_started(self, block: int) -> bool:
        return self.start_block <= block

    def has_ended(self, block: int) -> bool:
        return block > self.end_block

    @property
    def is_closed(self) -> bool:
        return self.status == ProposalStatus.CLOSED

    @property
    def duration(self) -> int:
        return self.end_block - self.start_block

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "creator": self.creator,
            "offchainData": bytes(self.offchain_data).hex(),
            "kind": self.kind.name,
            "accountList": self.account_list.to_list(),
            "startBlock": self.start_block,
            "endBlock": self.end_block,
            "status": self.status.name,
            "tally": self.tally.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.id} kind={self.kind.name} "
            f"blocks={self.start_block}..{self.end_block} status={self.status.name}>"
        )


# ══════════════════════════════════════════════════════════════════════
#  VOTE RECORD
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class VoteRecord:
    """A live vote; its locked amount is the square of its weight."""
    proposal_id: int
    voter: str
    aye: bool
    weight: int

    @property
    def locked_amount(self) -> int:
        return self.weight * self.weight

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "vote": "AYE" if self.aye else "NAY",
            "weight": self.weight,
            "lockedAmount": self.locked_amount,
        }
