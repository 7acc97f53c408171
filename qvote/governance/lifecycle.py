"""
Proposal Lifecycle

Temporal state is never advanced by a background process: it is derived on
demand from the stored status and the current block height supplied by the
host's BlockClock.
"""

import threading

from ..logger import get_logger
from .types import Proposal, ProposalStatus

logger = get_logger(__name__)


class BlockClock:
    """Externally driven block height source."""

    def __init__(self, block_number: int = 0):
        if block_number < 0:
            raise ValueError("Block number cannot be negative")
        self._block_number = block_number
        self._lock = threading.Lock()

    @property
    def current_block(self) -> int:
        return self._block_number

    def set_block_number(self, block_number: int) -> None:
        if block_number < 0:
            raise ValueError("Block number cannot be negative")
        with self._lock:
            self._block_number = block_number
        logger.debug(f"Clock set to block {block_number}")

    def advance(self, blocks: int = 1) -> int:
        if blocks < 0:
            raise ValueError("Clock cannot move backwards")
        with self._lock:
            self._block_number += blocks
            return self._block_number

    def __repr__(self) -> str:
        return f"<BlockClock block={self._block_number}>"


class ProposalLifecycleClock:
    """
    Maps (proposal, current block) to PENDING / ACTIVE / ENDED.

    CLOSED is sticky and overrides the derivation.
    """

    @staticmethod
    def status_of(proposal: Proposal, current_block: int) -> ProposalStatus:
        if proposal.is_closed:
            return ProposalStatus.CLOSED
        if current_block < proposal.start_block:
            return ProposalStatus.PENDING
        if current_block <= proposal.end_block:
            return ProposalStatus.ACTIVE
        return ProposalStatus.ENDED

    @classmethod
    def is_pending(cls, proposal: Proposal, current_block: int) -> bool:
        return cls.status_of(proposal, current_block) == ProposalStatus.PENDING

    @classmethod
    def is_active(cls, proposal: Proposal, current_block: int) -> bool:
        return cls.status_of(proposal, current_block) == ProposalStatus.ACTIVE
