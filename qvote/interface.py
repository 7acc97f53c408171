"""
Minimal voting interface

The four-call surface external test harnesses drive a quadratic voting
implementation through. It is deliberately not the dispatch API: proposals
get sensible defaults and the runtime clock is moved when a vote is closed.
"""

from typing import Optional

from .governance.lifecycle import ProposalLifecycleClock
from .governance.origin import Origin
from .governance.runtime import GovernanceRuntime
from .governance.types import ProposalKind, ProposalStatus
from .tokens.ledger import BalanceLedger


class VotingInterface:
    """
    Harness adapter over a GovernanceRuntime backed by a BalanceLedger.

    ``vote_weight`` is the number of votes; the voter needs ``vote_weight²``
    spendable balance.
    """

    def __init__(self, runtime: Optional[GovernanceRuntime] = None, creator: str = "governance"):
        self.runtime = runtime or GovernanceRuntime(funds=BalanceLedger())
        if not isinstance(self.runtime.funds, BalanceLedger):
            raise TypeError("VotingInterface needs a runtime backed by a BalanceLedger")
        self.creator = creator

    def add_voter(self, who: str, amount: int) -> None:
        """Register *who* and give it *amount* voting balance."""
        self.runtime.register_voter(Origin.root(), who)
        self.runtime.funds.mint(who, amount)

    def create_proposal(self, metadata: bytes) -> int:
        """
        Create a PUBLIC proposal with an empty ban list, opening now and
        running for the longest allowed window.
        """
        self.runtime.register_voter(Origin.root(), self.creator)
        now = self.runtime.current_block
        return self.runtime.create_proposal(
            Origin.signed(self.creator),
            metadata,
            ProposalKind.PUBLIC,
            [],
            now,
            now + self.runtime.config.maximum_duration,
        )

    def vote(self, proposal: int, voter: str, aye: bool, vote_weight: int) -> None:
        self.runtime.vote(Origin.signed(voter), proposal, aye, vote_weight)

    def close_vote(self, proposal: int) -> bool:
        """
        Resolve the vote, moving the clock past the end block if needed.

        Returns:
            True if the proposal passed.
        """
        record = self.runtime.store.get_or_raise(proposal)
        status = ProposalLifecycleClock.status_of(record, self.runtime.current_block)
        if status in (ProposalStatus.PENDING, ProposalStatus.ACTIVE):
            self.runtime.clock.set_block_number(record.end_block + 1)
        return self.runtime.close_proposal(Origin.root(), proposal)
