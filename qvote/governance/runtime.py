"""
Governance Runtime

Dispatch surface of the governance core. Each public call is one atomic
transaction: it runs under the runtime lock, checks every precondition
before mutating anything, and appends its events to the journal only once
it has succeeded.

    runtime = GovernanceRuntime(funds=BalanceLedger(), clock=BlockClock(1))
    runtime.register_voter(Origin.root(), "alice")
    pid = runtime.create_proposal(Origin.signed("alice"), b"ipfs://...",
                                  ProposalKind.PUBLIC, [], 1, 200)
"""

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from ..config.loader import GovernanceConfig, QVoteConfig
from ..exceptions import Defect, Unauthorized
from ..logger import apply_logging_config, get_logger
from ..tokens.ledger import BalanceLedger, FundLock
from .claims import ClaimEngine
from .events import (
    AccountListSet,
    FundsClaimed,
    ProposalCancelled,
    ProposalClosed,
    ProposalCreated,
    VoteCast,
    VoterRegistered,
    VoterUnregistered,
    VoteWithdrawn,
)
from .lifecycle import BlockClock, ProposalLifecycleClock
from .origin import Origin
from .policy import AccountListPolicy
from .proposals import ProposalStore
from .registry import VoterRegistry
from .types import Proposal, ProposalKind, ProposalStatus, Tally, VoteRecord
from .voting import VoteOutcome, VotingEngine

logger = get_logger(__name__)


class GovernanceRuntime:
    """
    Quadratic voting state machine wired to its collaborators.

    Args:
        funds:  FundLock implementation holding voter balances
        clock:  block height source
        config: governance limits
    """

    def __init__(
        self,
        funds: Optional[FundLock] = None,
        clock: Optional[BlockClock] = None,
        config: Optional[GovernanceConfig] = None,
    ):
        self.config = config or GovernanceConfig()
        self.config.validate()
        self.funds = funds if funds is not None else BalanceLedger()
        self.clock = clock or BlockClock()

        self.registry = VoterRegistry()
        self.policy = AccountListPolicy(self.config.account_size_limit)
        self.store = ProposalStore(self.registry, self.config, self.policy)
        self.engine = VotingEngine(self.registry, self.store, self.funds)
        self.claims = ClaimEngine(self.registry, self.store, self.engine, self.funds)

        self._events: List[Any] = []
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        cfg: QVoteConfig,
        funds: Optional[FundLock] = None,
        clock: Optional[BlockClock] = None,
    ) -> "GovernanceRuntime":
        cfg.validate()
        apply_logging_config(
            cfg.logging.level,
            Path(cfg.logging.file_path) if cfg.logging.file_path else None,
        )
        return cls(funds=funds, clock=clock, config=cfg.governance)

    # ── Transactions ──────────────────────────────────────────────────

    @contextmanager
    def _transaction(self, call: str, origin: Origin) -> Iterator[None]:
        with self._lock:
            try:
                yield
            except Defect:
                logger.critical(f"Invariant violated during {call} by {origin}", exc_info=True)
                raise

    @property
    def current_block(self) -> int:
        return self.clock.current_block

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    # ── Voter registry ────────────────────────────────────────────────

    def register_voter(self, origin: Origin, who: str) -> bool:
        """Root or the account itself. Re-registering is a no-op."""
        with self._transaction("register_voter", origin):
            origin.ensure_root_or(who)
            added = self.registry.register(who)
            if added:
                self._events.append(VoterRegistered(who=who))
            return added

    def unregister_voter(self, origin: Origin, who: str) -> None:
        """Root or the account itself; needs no spendable balance."""
        with self._transaction("unregister_voter", origin):
            origin.ensure_root_or(who)
            self.registry.unregister(who)
            self._events.append(VoterUnregistered(who=who))

    # ── Proposals ─────────────────────────────────────────────────────

    def create_proposal(
        self,
        origin: Origin,
        offchain_data: Union[bytes, str],
        kind: ProposalKind,
        account_list: Optional[Iterable[str]],
        start_block: int,
        end_block: int,
    ) -> int:
        with self._transaction("create_proposal", origin):
            creator = origin.ensure_signed()
            proposal_id = self.store.create_proposal(
                creator,
                offchain_data,
                kind,
                account_list,
                start_block,
                end_block,
                self.current_block,
            )
            proposal = self.store.get_or_raise(proposal_id)
            self._events.append(ProposalCreated(
                proposal_id=proposal_id,
                creator=creator,
                offchain_data=bytes(proposal.offchain_data),
                kind=proposal.kind.name,
                account_list=tuple(proposal.account_list),
                start_block=start_block,
                end_block=end_block,
            ))
            return proposal_id

    def cancel_proposal(self, origin: Origin, proposal_id: int) -> None:
        """Creator or root, strictly before the start block."""
        with self._transaction("cancel_proposal", origin):
            self.store.cancel_proposal(
                origin.account, proposal_id, self.current_block, is_root=origin.is_root
            )
            self._events.append(ProposalCancelled(proposal_id=proposal_id))

    def set_account_list(
        self,
        origin: Origin,
        proposal_id: int,
        account_list: Optional[Iterable[str]],
    ) -> None:
        """Creator or root, while the proposal is pending."""
        with self._transaction("set_account_list", origin):
            proposal = self.store.get_or_raise(proposal_id)
            if not (origin.is_root or proposal.is_creator(origin.account)):
                raise Unauthorized(
                    f"'{origin.account}' cannot edit the account list of Proposal #{proposal_id}"
                )
            bounded = self.policy.set_account_list(proposal, account_list, self.current_block)
            self._events.append(AccountListSet(proposal_id=proposal_id, account_list=tuple(bounded)))

    def close_proposal(self, origin: Origin, proposal_id: int) -> bool:
        """
        Creator or root, once the window is over. Needs no spendable balance
        and never moves funds.

        Returns:
            True if the proposal passed.
        """
        with self._transaction("close_proposal", origin):
            existing = self.store.get(proposal_id)
            was_closed = existing is not None and existing.is_closed
            approved = self.store.close_proposal(
                origin.account, proposal_id, self.current_block, is_root=origin.is_root
            )
            if not was_closed:
                proposal = self.store.get_or_raise(proposal_id)
                self._events.append(ProposalClosed(
                    proposal_id=proposal_id,
                    ratio=proposal.tally.ratio,
                    approved=approved,
                ))
            return approved

    # ── Votes ─────────────────────────────────────────────────────────

    def vote(self, origin: Origin, proposal_id: int, aye: bool, weight: int = 0) -> VoteOutcome:
        """Cast, change, or (weight 0) withdraw the caller's vote."""
        with self._transaction("vote", origin):
            voter = origin.ensure_signed()
            outcome = self.engine.vote(proposal_id, voter, aye, weight, self.current_block)
            if outcome.withdrawn:
                self._events.append(VoteWithdrawn(
                    proposal_id=proposal_id,
                    voter=voter,
                    released=outcome.previous.locked_amount,
                ))
            else:
                self._events.append(VoteCast(
                    proposal_id=proposal_id,
                    voter=voter,
                    aye=outcome.current.aye,
                    weight=outcome.current.weight,
                    locked_delta=outcome.locked_delta,
                ))
            if outcome.auto_closed:
                self._events.append(ProposalClosed(
                    proposal_id=proposal_id,
                    ratio=outcome.ratio,
                    approved=True,
                    auto=True,
                ))
            return outcome

    def claim(self, origin: Origin, proposal_id: int) -> int:
        """Release the caller's lock on a closed proposal; returns the amount."""
        with self._transaction("claim", origin):
            voter = origin.ensure_signed()
            record = self.claims.claim(voter, proposal_id)
            self._events.append(FundsClaimed(
                proposal_id=proposal_id,
                voter=voter,
                amount=record.locked_amount,
            ))
            return record.locked_amount

    # ── Queries ───────────────────────────────────────────────────────

    def proposal(self, proposal_id: int) -> Optional[Proposal]:
        return self.store.get(proposal_id)

    def status_of(self, proposal_id: int) -> ProposalStatus:
        proposal = self.store.get_or_raise(proposal_id)
        return ProposalLifecycleClock.status_of(proposal, self.current_block)

    def tally_of(self, proposal_id: int) -> Tally:
        return self.store.get_or_raise(proposal_id).tally

    def vote_of(self, proposal_id: int, voter: str) -> Optional[VoteRecord]:
        return self.engine.get_vote(proposal_id, voter)

    def is_registered(self, who: str) -> bool:
        return self.registry.is_registered(who)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "currentBlock": self.current_block,
                "registry": self.registry.to_dict(),
                "proposals": self.store.to_dict(),
                "votes": self.engine.to_dict(),
                "eventCount": len(self._events),
            }

    def __repr__(self) -> str:
        return (
            f"<GovernanceRuntime block={self.current_block} "
            f"voters={len(self.registry)} proposals={len(self.store)}>"
        )
