"""SQLAlchemy models."""

from bookapp.models.base import Base
from bookapp.models.enums import InvitationRejection, InvitationState
from bookapp.models.invitation import Invitation

__all__ = [
    "Base",
    "Invitation",
    "InvitationRejection",
    "InvitationState",
]
