"""Enumerations for invitation lifecycle and store outcomes."""

from enum import Enum


class InvitationState(str, Enum):
    """Derived lifecycle state of an invitation.

    Never stored. PENDING moves to EXPIRED by the passage of time or to
    REDEEMED by a successful redemption; both are terminal.
    """

    PENDING = "pending"
    EXPIRED = "expired"
    REDEEMED = "redeemed"

    @property
    def is_terminal(self) -> bool:
        return self is not InvitationState.PENDING


class InvitationRejection(str, Enum):
    """Internal reason an invitation was not returned or not redeemed.

    Used for logs and metrics only; callers always see a uniform outcome.
    """

    MISSING = "missing"
    EXPIRED = "expired"
    REDEEMED = "redeemed"
    # Row was pending on read but the conditional update matched nothing
    CONFLICT = "conflict"
