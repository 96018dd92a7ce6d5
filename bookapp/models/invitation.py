"""Invitation model."""
from sqlalchemy import BigInteger, CheckConstraint, Column, String

from bookapp.models.base import Base
from bookapp.models.enums import InvitationState


class Invitation(Base):
    """Single-use code granting its bearer membership of one organization.

    The code is the primary key. Timestamps are milliseconds since the epoch.
    ``used_by`` and ``redeemed_at`` are written together, once, when the
    invitation is redeemed.
    """

    __tablename__ = "invitations"
    __table_args__ = (
        CheckConstraint(
            "(used_by IS NULL AND redeemed_at IS NULL) "
            "OR (used_by IS NOT NULL AND redeemed_at IS NOT NULL)",
            name="redemption_complete",
        ),
    )

    code = Column(String(32), primary_key=True)
    org_id = Column(String(255), nullable=False, index=True)
    expires = Column(BigInteger, nullable=False)
    created_by = Column(String(255), nullable=False)
    created_at = Column(BigInteger, nullable=False)
    used_by = Column(String(255), nullable=True)
    redeemed_at = Column(BigInteger, nullable=True)

    def is_expired(self, now: int) -> bool:
        return self.expires < now

    def state(self, now: int) -> InvitationState:
        """Derive the lifecycle state at instant ``now`` (ms)."""
        if self.used_by is not None:
            return InvitationState.REDEEMED
        if self.is_expired(now):
            return InvitationState.EXPIRED
        return InvitationState.PENDING

    def __repr__(self) -> str:
        return f"<Invitation(code={self.code}, org_id={self.org_id}, used_by={self.used_by})>"
