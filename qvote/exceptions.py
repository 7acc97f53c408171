"""
qvote Exceptions

Custom exception classes for the quadratic voting governance core.

Every user-facing precondition failure derives from ``GovernanceError`` and is
raised before any state is touched. ``Defect`` marks an internal invariant
violation (bookkeeping underflow) and is never a legitimate user error.
"""


class QVoteException(Exception):
    """Base exception for qvote."""
    pass


class ConfigurationError(QVoteException):
    """Configuration error."""
    pass


class Defect(QVoteException):
    """Internal invariant violation (tally or lock underflow)."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  GOVERNANCE ERRORS
# ══════════════════════════════════════════════════════════════════════

class GovernanceError(QVoteException):
    """Base governance exception."""


class Unauthorized(GovernanceError):
    """Origin has no permission for this call."""


class NotRegistered(GovernanceError):
    """Account is not a registered voter."""


class AlreadyRegistered(GovernanceError):
    """Account is already a registered voter."""


class ProposalNotFound(GovernanceError):
    """Proposal does not exist in storage."""


class NotStarted(GovernanceError):
    """Proposal voting window has not opened yet."""


class AlreadyStarted(GovernanceError):
    """Proposal is no longer pending."""


class AlreadyEnded(GovernanceError):
    """Proposal voting window is over."""


class NotEnded(GovernanceError):
    """Proposal voting window is still open."""


class AlreadyClosed(GovernanceError):
    """Proposal has been closed."""


class NotClosed(GovernanceError):
    """Proposal has not been closed yet."""


class NotAllowed(GovernanceError):
    """Voter is excluded by the proposal account list."""


class IdenticalVote(GovernanceError):
    """New vote is identical to the stored one."""


class InsufficientFunds(GovernanceError):
    """Spendable balance cannot cover the quadratic cost."""


class WeightTooLarge(GovernanceError):
    """Squared weight does not fit the asset balance range."""


class InvalidWeight(GovernanceError):
    """Weight is not a non-negative integer."""


class ListTooLarge(GovernanceError):
    """Account list exceeds its capacity."""


class OffchainDataTooLarge(GovernanceError):
    """Offchain data exceeds its capacity."""


class StartInPast(GovernanceError):
    """Proposal cannot start in the past."""


class EndBeforeStart(GovernanceError):
    """Proposal cannot end before starting."""


class DurationTooLong(GovernanceError):
    """Proposal window is too long."""


class DurationTooShort(GovernanceError):
    """Proposal window is too short."""


class StartTooFarInFuture(GovernanceError):
    """Proposal start is beyond the allowed delay."""


class NoVoteToClaim(GovernanceError):
    """No live vote record for this voter on this proposal."""
