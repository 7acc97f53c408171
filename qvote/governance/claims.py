"""
Claim Engine

Releases a voter's locked funds once a proposal is closed. The vote record
is deleted with the release, so each (proposal, voter) pair claims once.
"""

from ..exceptions import NoVoteToClaim, NotClosed
from ..logger import get_logger
from ..tokens.ledger import FundLock
from .proposals import ProposalStore
from .registry import VoterRegistry
from .types import VoteRecord
from .voting import VotingEngine

logger = get_logger(__name__)


class ClaimEngine:
    """Unlocks the quadratic cost of votes on closed proposals."""

    def __init__(
        self,
        registry: VoterRegistry,
        store: ProposalStore,
        engine: VotingEngine,
        funds: FundLock,
    ):
        self.registry = registry
        self.store = store
        self.engine = engine
        self.funds = funds

    def claim(self, voter: str, proposal_id: int) -> VoteRecord:
        """
        Release the lock held by *voter* on *proposal_id*.

        Raises:
            NotRegistered, ProposalNotFound, NotClosed, NoVoteToClaim
        """
        self.registry.ensure_registered(voter)
        proposal = self.store.get_or_raise(proposal_id)
        if not proposal.is_closed:
            raise NotClosed(f"Proposal #{proposal_id} is not closed")

        record = self.engine.get_vote(proposal_id, voter)
        if record is None:
            raise NoVoteToClaim(f"'{voter}' has nothing to claim on Proposal #{proposal_id}")

        self.funds.unlock(voter, record.locked_amount)
        self.engine.take_vote(proposal_id, voter)
        logger.info(
            f"Claim: '{voter}' released {record.locked_amount} from Proposal #{proposal_id}"
        )
        return record
