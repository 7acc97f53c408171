"""
Call origins

Every dispatched call carries an already-authenticated origin: either the
privileged root authority or an ordinary signed account.
"""

from dataclasses import dataclass
from typing import Optional

from ..exceptions import Unauthorized


@dataclass(frozen=True)
class Origin:
    account: Optional[str] = None
    is_root: bool = False

    @classmethod
    def root(cls) -> "Origin":
        return cls(account=None, is_root=True)

    @classmethod
    def signed(cls, account: str) -> "Origin":
        if not account:
            raise ValueError("Signed origin requires an account")
        return cls(account=account, is_root=False)

    def ensure_signed(self) -> str:
        """Return the signing account; root has none."""
        if self.is_root or not self.account:
            raise Unauthorized("Call requires a signed origin")
        return self.account

    def ensure_root_or(self, who: str) -> None:
        """Allow root, or the account *who* acting for itself."""
        if self.is_root:
            return
        if self.account != who:
            raise Unauthorized(f"'{self.account}' cannot act for '{who}'")

    def __str__(self) -> str:
        return "root" if self.is_root else f"signed('{self.account}')"
