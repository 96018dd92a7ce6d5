"""FastAPI dependencies for invitation endpoints."""
import hmac

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookapp.core.codes import code_generator
from bookapp.core.config import Settings
from bookapp.core.database import get_db
from bookapp.services.invitation_service import InvitationService


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


async def get_invitation_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> InvitationService:
    """Build an InvitationService bound to the request's session."""
    return InvitationService(
        db,
        generate_code=code_generator(settings.invitation_code_length),
    )


async def require_internal_token(
    x_internal_token: str | None = Header(default=None, alias="X-Internal-Token"),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Guard issuer-only endpoints with the shared internal token.

    When no token is configured the caller is trusted.

    Raises:
        HTTPException: 403 if a token is configured and the header does not match
    """
    expected = settings.internal_api_token
    if not expected:
        return
    if not x_internal_token or not hmac.compare_digest(x_internal_token, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid internal token",
        )
