"""
Proposal Store

Owns proposal entities and their stored status:
  - creation with scheduling and size constraints
  - cancellation while pending (the proposal is removed)
  - closing once the voting window is over, or after an auto-close
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from ..config.loader import GovernanceConfig
from ..constants import FIRST_PROPOSAL_ID
from ..exceptions import (
    AlreadyStarted,
    DurationTooLong,
    DurationTooShort,
    EndBeforeStart,
    NotEnded,
    ProposalNotFound,
    StartInPast,
    StartTooFarInFuture,
    Unauthorized,
)
from ..logger import get_logger
from .lifecycle import ProposalLifecycleClock
from .policy import AccountListPolicy
from .registry import VoterRegistry
from .types import BoundedBytes, Proposal, ProposalKind, ProposalStatus

logger = get_logger(__name__)


class ProposalStore:
    """
    Key-addressable map of proposals by id.

    Ids are handed out monotonically and never reused, even after a
    cancellation removes a proposal.
    """

    def __init__(
        self,
        registry: VoterRegistry,
        config: Optional[GovernanceConfig] = None,
        policy: Optional[AccountListPolicy] = None,
    ):
        self.registry = registry
        self.config = config or GovernanceConfig()
        self.policy = policy or AccountListPolicy(self.config.account_size_limit)
        self._proposals: Dict[int, Proposal] = {}
        self._next_id = FIRST_PROPOSAL_ID

    # ── Lookup ────────────────────────────────────────────────────────

    def get(self, proposal_id: int) -> Optional[Proposal]:
        return self._proposals.get(proposal_id)

    def get_or_raise(self, proposal_id: int) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFound(f"Proposal #{proposal_id} does not exist")
        return proposal

    def __contains__(self, proposal_id: object) -> bool:
        return proposal_id in self._proposals

    def __len__(self) -> int:
        return len(self._proposals)

    def ids(self) -> List[int]:
        return sorted(self._proposals)

    @property
    def next_proposal_id(self) -> int:
        return self._next_id

    # ── Create ────────────────────────────────────────────────────────

    def create_proposal(
        self,
        creator: str,
        offchain_data: Union[bytes, str],
        kind: ProposalKind,
        account_list: Optional[Iterable[str]],
        start_block: int,
        end_block: int,
        current_block: int,
    ) -> int:
        """
        Validate and store a new PENDING proposal with an empty tally.

        Returns:
            The id of the new proposal.
        """
        self.registry.ensure_registered(creator)
        data = BoundedBytes(offchain_data, capacity=self.config.offchain_data_limit)
        accounts = self.policy.bound(account_list)
        kind = ProposalKind(kind)

        if start_block < current_block:
            raise StartInPast(
                f"Start block {start_block} is before current block {current_block}"
            )
        if end_block <= start_block:
            raise EndBeforeStart(
                f"End block {end_block} must be after start block {start_block}"
            )
        duration = end_block - start_block
        if duration > self.config.maximum_duration:
            raise DurationTooLong(
                f"Duration {duration} exceeds maximum {self.config.maximum_duration} blocks"
            )
        if duration < self.config.minimum_duration:
            raise DurationTooShort(
                f"Duration {duration} is below minimum {self.config.minimum_duration} blocks"
            )
        delay = start_block - current_block
        if delay > self.config.delay_limit:
            raise StartTooFarInFuture(
                f"Start delay {delay} exceeds limit {self.config.delay_limit} blocks"
            )

        proposal_id = self._next_id
        self._next_id += 1
        self._proposals[proposal_id] = Proposal(
            id=proposal_id,
            creator=creator,
            offchain_data=data,
            kind=kind,
            account_list=accounts,
            start_block=start_block,
            end_block=end_block,
        )
        logger.info(
            f"Proposal #{proposal_id} created by '{creator}' "
            f"({kind.name}, blocks {start_block}..{end_block})"
        )
        return proposal_id

    # ── Cancel ────────────────────────────────────────────────────────

    def cancel_proposal(
        self,
        caller: Optional[str],
        proposal_id: int,
        current_block: int,
        is_root: bool = False,
    ) -> Proposal:
        """
        Remove a pending proposal. No funds are locked before the start
        block, so nothing needs releasing.
        """
        proposal = self.get_or_raise(proposal_id)
        if not (is_root or proposal.is_creator(caller)):
            raise Unauthorized(f"'{caller}' cannot cancel Proposal #{proposal_id}")
        if not ProposalLifecycleClock.is_pending(proposal, current_block):
            raise AlreadyStarted(
                f"Proposal #{proposal_id} has already started at block {proposal.start_block}"
            )
        del self._proposals[proposal_id]
        logger.info(f"Proposal #{proposal_id} cancelled")
        return proposal

    # ── Close ─────────────────────────────────────────────────────────

    def close_proposal(
        self,
        caller: Optional[str],
        proposal_id: int,
        current_block: int,
        is_root: bool = False,
    ) -> bool:
        """
        Finalize a proposal whose window is over. Closing an already closed
        proposal succeeds without changing anything.

        Returns:
            True if aye power is a strict majority of total power.
        """
        proposal = self.get_or_raise(proposal_id)
        if not (is_root or proposal.is_creator(caller)):
            raise Unauthorized(f"'{caller}' cannot close Proposal #{proposal_id}")

        status = ProposalLifecycleClock.status_of(proposal, current_block)
        if status == ProposalStatus.CLOSED:
            logger.debug(f"Proposal #{proposal_id} already CLOSED")
            return proposal.tally.has_majority
        if status != ProposalStatus.ENDED:
            raise NotEnded(
                f"Proposal #{proposal_id} is {status.name} until block {proposal.end_block}"
            )
        return self.mark_closed(proposal)

    def mark_closed(self, proposal: Proposal, auto: bool = False) -> bool:
        proposal.status = ProposalStatus.CLOSED
        approved = proposal.tally.has_majority
        aye, total = proposal.tally.ratio
        logger.info(
            f"Proposal #{proposal.id}: CLOSED{' (majority reached)' if auto else ''} "
            f"ratio={aye}/{total} {'approved' if approved else 'rejected'}"
        )
        return approved

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nextProposalId": self._next_id,
            "proposals": {pid: p.to_dict() for pid, p in sorted(self._proposals.items())},
        }

    def __repr__(self) -> str:
        return f"<ProposalStore proposals={len(self._proposals)} next={self._next_id}>"
