"""Pydantic schemas for invitation endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class InvitationCreateRequest(BaseModel):
    """Request schema for creating an invitation.

    Used for POST /api/invitations. Identifiers come from an already
    authenticated caller and are not checked against any user directory.
    """

    org_id: str = Field(..., min_length=1, max_length=255, description="Organization to join")
    created_by: str = Field(..., min_length=1, max_length=255, description="Issuing user ID")
    expires: int = Field(..., ge=0, description="Absolute expiry, milliseconds since epoch")


class InvitationResponse(BaseModel):
    """Stored invitation as returned by create and validate."""

    code: str = Field(..., description="Invitation code")
    org_id: str = Field(..., description="Organization the code grants access to")
    expires: int = Field(..., description="Expiry, milliseconds since epoch")
    created_by: str = Field(..., description="Issuing user ID")
    created_at: int = Field(..., description="Creation time, milliseconds since epoch")
    used_by: str | None = Field(None, description="Redeeming user ID")
    redeemed_at: int | None = Field(None, description="Redemption time, milliseconds since epoch")

    model_config = ConfigDict(from_attributes=True)


class RedeemRequest(BaseModel):
    """Request schema for POST /api/invitations/redeem."""

    code: str = Field(..., min_length=1, max_length=64, description="Invitation code")
    user_id: str = Field(..., min_length=1, max_length=255, description="Redeeming user ID")


class RedeemResponse(BaseModel):
    success: bool
