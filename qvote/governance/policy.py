"""
Account List Policy

Public proposals read their account list as a ban list, private proposals
as an allow list. The list is consulted lazily at vote time, so edits made
while a proposal is pending take effect once it opens.
"""

from typing import Iterable, Optional

from ..constants import PROPOSAL_ACCOUNT_SIZE_LIMIT
from ..exceptions import AlreadyStarted
from ..logger import get_logger
from .lifecycle import ProposalLifecycleClock
from .types import BoundedAccountList, Proposal, ProposalKind

logger = get_logger(__name__)


class AccountListPolicy:
    """Resolves voting permission from a proposal's kind and account list."""

    def __init__(self, account_size_limit: int = PROPOSAL_ACCOUNT_SIZE_LIMIT):
        self.account_size_limit = account_size_limit

    def bound(self, accounts: Optional[Iterable[str]]) -> BoundedAccountList:
        """Raises ListTooLarge when *accounts* exceeds the configured limit."""
        return BoundedAccountList(accounts, capacity=self.account_size_limit)

    @staticmethod
    def is_permitted(proposal: Proposal, voter: str) -> bool:
        listed = voter in proposal.account_list
        if proposal.kind == ProposalKind.PUBLIC:
            return not listed
        if proposal.kind == ProposalKind.PRIVATE:
            return listed
        raise ValueError(f"Unknown proposal kind: {proposal.kind!r}")

    def set_account_list(
        self,
        proposal: Proposal,
        new_list: Optional[Iterable[str]],
        current_block: int,
    ) -> BoundedAccountList:
        """
        Replace the account list of a pending proposal.

        Raises:
            AlreadyStarted: the proposal is no longer pending
            ListTooLarge:   the new list exceeds the account size limit
        """
        if not ProposalLifecycleClock.is_pending(proposal, current_block):
            raise AlreadyStarted(
                f"Proposal #{proposal.id} has already started at block {proposal.start_block}"
            )
        bounded = self.bound(new_list)
        proposal.account_list = bounded
        logger.info(
            f"Proposal #{proposal.id}: account list set ({len(bounded)} accounts, "
            f"{'ban' if proposal.kind == ProposalKind.PUBLIC else 'allow'} list)"
        )
        return bounded
