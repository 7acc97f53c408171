"""
Voter Registry

Tracks which accounts may act on proposals. Registration is idempotent;
unregistration leaves the account's votes and proposals in place.
"""

from typing import Any, Dict, Iterator, Set

from ..exceptions import NotRegistered
from ..logger import get_logger

logger = get_logger(__name__)


class VoterRegistry:
    """Set of registered voter accounts."""

    def __init__(self):
        self._voters: Set[str] = set()

    def register(self, who: str) -> bool:
        """
        Register *who*. Returns False when the account was already present.
        """
        if not who:
            raise ValueError("Voter account is required")
        if who in self._voters:
            logger.debug(f"Voter '{who}' already registered")
            return False
        self._voters.add(who)
        logger.info(f"Voter registered: '{who}'")
        return True

    def unregister(self, who: str) -> None:
        self.ensure_registered(who)
        self._voters.discard(who)
        logger.info(f"Voter unregistered: '{who}'")

    def is_registered(self, who: str) -> bool:
        return who in self._voters

    def ensure_registered(self, who: str) -> None:
        if who not in self._voters:
            raise NotRegistered(f"'{who}' is not a registered voter")

    def __contains__(self, who: object) -> bool:
        return who in self._voters

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._voters))

    def __len__(self) -> int:
        return len(self._voters)

    def to_dict(self) -> Dict[str, Any]:
        return {"voters": sorted(self._voters), "count": len(self._voters)}

    def __repr__(self) -> str:
        return f"<VoterRegistry voters={len(self._voters)}>"
