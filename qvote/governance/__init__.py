"""
qvote Quadratic Voting Governance

Provides:
  - ProposalKind / ProposalStatus / Proposal / Tally / VoteRecord  (types.py)
  - VoterRegistry                                                  (registry.py)
  - AccountListPolicy                                              (policy.py)
  - BlockClock / ProposalLifecycleClock                            (lifecycle.py)
  - ProposalStore                                                  (proposals.py)
  - VotingEngine / VoteOutcome                                     (voting.py)
  - ClaimEngine                                                    (claims.py)
  - Origin / GovernanceRuntime                                     (origin.py, runtime.py)
"""

from .types import (
    BoundedAccountList,
    BoundedBytes,
    Proposal,
    ProposalKind,
    ProposalStatus,
    Tally,
    VoteRecord,
)
from .registry import VoterRegistry
from .policy import AccountListPolicy
from .lifecycle import BlockClock, ProposalLifecycleClock
from .proposals import ProposalStore
from .voting import MAX_WEIGHT, VoteOutcome, VotingEngine, quadratic_cost
from .claims import ClaimEngine
from .origin import Origin
from .runtime import GovernanceRuntime

__all__ = [
    # Types
    "BoundedAccountList",
    "BoundedBytes",
    "Proposal",
    "ProposalKind",
    "ProposalStatus",
    "Tally",
    "VoteRecord",
    # Components
    "VoterRegistry",
    "AccountListPolicy",
    "BlockClock",
    "ProposalLifecycleClock",
    "ProposalStore",
    "MAX_WEIGHT",
    "VoteOutcome",
    "VotingEngine",
    "quadratic_cost",
    "ClaimEngine",
    # Dispatch
    "Origin",
    "GovernanceRuntime",
]
