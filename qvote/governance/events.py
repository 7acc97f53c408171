"""
Governance Events

Records appended to the runtime journal after a call succeeds. Forwarding
them to an indexer or chain event log is the host's job.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class VoterRegistered:
    who: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": "NewVoterRegistered", "who": self.who, "timestamp": self.timestamp}


@dataclass(frozen=True)
class VoterUnregistered:
    who: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": "VoterUnregistered", "who": self.who, "timestamp": self.timestamp}


@dataclass(frozen=True)
class ProposalCreated:
    """Emitted with the full creation payload."""
    proposal_id: int
    creator: str
    offchain_data: bytes
    kind: str
    account_list: Tuple[str, ...]
    start_block: int
    end_block: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "NewProposal",
            "proposalId": self.proposal_id,
            "creator": self.creator,
            "offchainData": self.offchain_data.hex(),
            "kind": self.kind,
            "accountList": list(self.account_list),
            "startBlock": self.start_block,
            "endBlock": self.end_block,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProposalCancelled:
    proposal_id: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": "ProposalCancelled", "proposalId": self.proposal_id,
                "timestamp": self.timestamp}


@dataclass(frozen=True)
class AccountListSet:
    proposal_id: int
    account_list: Tuple[str, ...]
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "AccountListSet",
            "proposalId": self.proposal_id,
            "accountList": list(self.account_list),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class VoteCast:
    """A new or changed vote."""
    proposal_id: int
    voter: str
    aye: bool
    weight: int
    locked_delta: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "VoteCast",
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "vote": "AYE" if self.aye else "NAY",
            "weight": self.weight,
            "lockedDelta": self.locked_delta,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class VoteWithdrawn:
    proposal_id: int
    voter: str
    released: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "VoteWithdrawn",
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "released": self.released,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProposalClosed:
    """``ratio`` is (aye_power, total_power) at closing time."""
    proposal_id: int
    ratio: Tuple[int, int]
    approved: bool
    auto: bool = False
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalClosed",
            "proposalId": self.proposal_id,
            "ratio": list(self.ratio),
            "approved": self.approved,
            "auto": self.auto,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FundsClaimed:
    proposal_id: int
    voter: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "FundsClaimed",
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


def last_event_of(events: List[Any], event_type: type) -> Optional[Any]:
    """Most recent event of *event_type* in a journal, or None."""
    for event in reversed(events):
        if isinstance(event, event_type):
            return event
    return None
