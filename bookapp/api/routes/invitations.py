"""Invitation endpoints: create, validate and redeem codes."""

from fastapi import APIRouter, Depends, HTTPException, status

from bookapp.api.deps import get_invitation_service, require_internal_token
from bookapp.schemas.errors import INVALID_INVITATION_MESSAGE, ErrorResponse
from bookapp.schemas.invitation import (
    InvitationCreateRequest,
    InvitationResponse,
    RedeemRequest,
    RedeemResponse,
)
from bookapp.services.invitation_service import InvitationService

router = APIRouter()


@router.post(
    "",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_internal_token)],
    responses={500: {"model": ErrorResponse}},
)
async def create_invitation(
    invite_data: InvitationCreateRequest,
    service: InvitationService = Depends(get_invitation_service),
):
    """Create invitation endpoint.

    Generates a new code for ``org_id``. The expiry is stored as given;
    choosing a future instant is the issuer's job.

    Returns:
        InvitationResponse with the generated code
    """
    invitation = await service.create_invitation(
        org_id=invite_data.org_id,
        created_by=invite_data.created_by,
        expires=invite_data.expires,
    )
    await service.db.commit()
    return InvitationResponse.model_validate(invitation)


@router.post(
    "/redeem",
    response_model=RedeemResponse,
    responses={500: {"model": ErrorResponse}},
)
async def redeem_invitation(
    redeem_data: RedeemRequest,
    service: InvitationService = Depends(get_invitation_service),
):
    """Redeem invitation endpoint.

    Binds the code to ``user_id`` once. Updating the user's organization
    membership is left to the caller.

    Raises:
        HTTPException: 400 if the code is unknown, expired or already used
    """
    redeemed = await service.redeem_invitation(redeem_data.code, redeem_data.user_id)
    if not redeemed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=INVALID_INVITATION_MESSAGE,
        )

    await service.db.commit()
    return RedeemResponse(success=True)


@router.get(
    "/{code}",
    response_model=InvitationResponse,
    responses={500: {"model": ErrorResponse}},
)
async def validate_invitation(
    code: str,
    service: InvitationService = Depends(get_invitation_service),
):
    """Validate invitation endpoint.

    Raises:
        HTTPException: 404 if the code is unknown, expired or already used
    """
    invitation = await service.validate_invitation(code)
    if invitation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=INVALID_INVITATION_MESSAGE,
        )
    return InvitationResponse.model_validate(invitation)
