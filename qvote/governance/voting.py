"""
Quadratic Voting Engine

Implements:
  - Cost of a vote = weight², frozen on the voter's balance for the life of
    the vote and counted with the same value in the proposal tally
  - Re-voting: only the difference between old and new cost is locked or
    released, and the tally swaps the old contribution for the new one
  - Withdrawal: weight 0 releases the whole lock and removes the record
  - Early termination: a PRIVATE proposal closes as soon as aye power is a
    strict majority of total power
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..constants import BALANCE_MAX
from ..exceptions import (
    AlreadyClosed,
    AlreadyEnded,
    IdenticalVote,
    InsufficientFunds,
    InvalidWeight,
    NotAllowed,
    NotStarted,
    WeightTooLarge,
)
from ..logger import get_logger
from ..tokens.ledger import FundLock
from .lifecycle import ProposalLifecycleClock
from .proposals import ProposalStore
from .registry import VoterRegistry
from .types import ProposalKind, ProposalStatus, Tally, VoteRecord

logger = get_logger(__name__)

# Largest weight whose square still fits the balance type
MAX_WEIGHT = math.isqrt(BALANCE_MAX)


def quadratic_cost(weight: int) -> int:
    """Quantity locked (and tallied) for casting *weight* votes."""
    if weight > MAX_WEIGHT:
        raise WeightTooLarge(f"Weight {weight} squared exceeds {BALANCE_MAX}")
    return weight * weight


@dataclass(frozen=True)
class VoteOutcome:
    """What a single vote call changed."""
    proposal_id: int
    voter: str
    previous: Optional[VoteRecord]
    current: Optional[VoteRecord]
    locked_delta: int
    ratio: Tuple[int, int]
    auto_closed: bool = False

    @property
    def withdrawn(self) -> bool:
        return self.current is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "previous": self.previous.to_dict() if self.previous else None,
            "current": self.current.to_dict() if self.current else None,
            "lockedDelta": self.locked_delta,
            "ratio": list(self.ratio),
            "autoClosed": self.auto_closed,
        }


class VotingEngine:
    """
    Validates and applies votes.

    Holds at most one live VoteRecord per (proposal, voter) pair. All checks
    run before the fund lock is touched, and the new tally is computed on a
    copy before anything is committed, so a rejected vote leaves no trace.
    """

    def __init__(self, registry: VoterRegistry, store: ProposalStore, funds: FundLock):
        self.registry = registry
        self.store = store
        self.funds = funds
        self._votes: Dict[int, Dict[str, VoteRecord]] = {}

    # ── Cast / change / withdraw ──────────────────────────────────────

    def vote(
        self,
        proposal_id: int,
        voter: str,
        aye: bool,
        weight: int,
        current_block: int,
    ) -> VoteOutcome:
        """
        Cast, change or withdraw (weight 0) a vote.

        Raises, in order of evaluation:
            InvalidWeight, NotRegistered, ProposalNotFound,
            NotStarted / AlreadyEnded / AlreadyClosed, NotAllowed,
            IdenticalVote, WeightTooLarge, InsufficientFunds
        """
        if isinstance(weight, bool) or not isinstance(weight, int) or weight < 0:
            raise InvalidWeight(f"Weight must be a non-negative integer, got {weight!r}")
        aye = bool(aye)

        self.registry.ensure_registered(voter)
        proposal = self.store.get_or_raise(proposal_id)

        status = ProposalLifecycleClock.status_of(proposal, current_block)
        if status == ProposalStatus.PENDING:
            raise NotStarted(
                f"Proposal #{proposal_id} opens at block {proposal.start_block}"
            )
        if status == ProposalStatus.ENDED:
            raise AlreadyEnded(
                f"Proposal #{proposal_id} ended at block {proposal.end_block}"
            )
        if status == ProposalStatus.CLOSED:
            raise AlreadyClosed(f"Proposal #{proposal_id} is closed")

        if not self.store.policy.is_permitted(proposal, voter):
            raise NotAllowed(f"'{voter}' may not vote on Proposal #{proposal_id}")

        prior = self.get_vote(proposal_id, voter)
        if prior is None and weight == 0:
            raise IdenticalVote(f"'{voter}' has no vote to withdraw on Proposal #{proposal_id}")
        if prior is not None and prior.aye == aye and prior.weight == weight:
            raise IdenticalVote(f"'{voter}' already voted this way on Proposal #{proposal_id}")

        new_cost = quadratic_cost(weight)
        old_cost = prior.locked_amount if prior else 0
        delta = new_cost - old_cost
        if delta > 0:
            available = self.funds.spendable(voter)
            if available < delta:
                raise InsufficientFunds(
                    f"'{voter}' spendable {available} < required {delta} "
                    f"for weight {weight} on Proposal #{proposal_id}"
                )

        updated = Tally(proposal.tally.aye_power, proposal.tally.total_power)
        if prior is not None:
            updated.remove(prior.aye, old_cost)
        if weight > 0:
            updated.add(aye, new_cost)

        if delta > 0:
            self.funds.lock(voter, delta)
        elif delta < 0:
            self.funds.unlock(voter, -delta)

        proposal.tally = updated
        votes = self._votes.setdefault(proposal_id, {})
        if weight > 0:
            current = VoteRecord(proposal_id=proposal_id, voter=voter, aye=aye, weight=weight)
            votes[voter] = current
            logger.info(
                f"Vote: '{voter}' → {'AYE' if aye else 'NAY'} x{weight} on Proposal #{proposal_id} "
                f"(locked {new_cost}, ratio={updated.aye_power}/{updated.total_power})"
            )
        else:
            current = None
            del votes[voter]
            if not votes:
                del self._votes[proposal_id]
            logger.info(
                f"Vote withdrawn: '{voter}' on Proposal #{proposal_id} "
                f"(released {old_cost}, ratio={updated.aye_power}/{updated.total_power})"
            )

        auto_closed = False
        if proposal.kind == ProposalKind.PRIVATE and updated.has_majority:
            self.store.mark_closed(proposal, auto=True)
            auto_closed = True

        return VoteOutcome(
            proposal_id=proposal_id,
            voter=voter,
            previous=prior,
            current=current,
            locked_delta=delta,
            ratio=updated.ratio,
            auto_closed=auto_closed,
        )

    # ── Records ───────────────────────────────────────────────────────

    def take_vote(self, proposal_id: int, voter: str) -> Optional[VoteRecord]:
        """Remove and return the live record, used once funds are released."""
        votes = self._votes.get(proposal_id)
        if not votes or voter not in votes:
            return None
        record = votes.pop(voter)
        if not votes:
            del self._votes[proposal_id]
        return record

    # ── Queries ───────────────────────────────────────────────────────

    def get_vote(self, proposal_id: int, voter: str) -> Optional[VoteRecord]:
        return self._votes.get(proposal_id, {}).get(voter)

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        return self.get_vote(proposal_id, voter) is not None

    def votes_for(self, proposal_id: int) -> List[VoteRecord]:
        return list(self._votes.get(proposal_id, {}).values())

    def locked_total(self, proposal_id: int) -> int:
        return sum(v.locked_amount for v in self._votes.get(proposal_id, {}).values())

    def voter_count(self, proposal_id: int) -> int:
        return len(self._votes.get(proposal_id, {}))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "votes": {
                pid: [v.to_dict() for v in votes.values()]
                for pid, votes in sorted(self._votes.items())
            },
        }

    def __repr__(self) -> str:
        return f"<VotingEngine proposals={len(self._votes)}>"
