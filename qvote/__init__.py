"""
qvote: Quadratic Voting Governance

Core imports are lazily loaded so that importing a submodule does not pull
in the whole package. For direct module access, import from submodules:

    from qvote.governance import GovernanceRuntime, Origin, ProposalKind
    from qvote.tokens import BalanceLedger
    from qvote.exceptions import GovernanceError
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy module loading."""
    if name == 'GovernanceRuntime':
        from .governance.runtime import GovernanceRuntime
        return GovernanceRuntime
    elif name == 'Origin':
        from .governance.origin import Origin
        return Origin
    elif name == 'BalanceLedger':
        from .tokens.ledger import BalanceLedger
        return BalanceLedger
    elif name == 'VotingInterface':
        from .interface import VotingInterface
        return VotingInterface
    raise AttributeError(f"module 'qvote' has no attribute {name!r}")

__all__ = ['GovernanceRuntime', 'Origin', 'BalanceLedger', 'VotingInterface']
