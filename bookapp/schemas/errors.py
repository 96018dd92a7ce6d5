"""Error response schema and shared error messages."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# One message for unknown, expired and used codes so callers cannot tell them apart
INVALID_INVITATION_MESSAGE = "Invalid or expired invitation"


class ErrorResponse(BaseModel):
    """Error body for server-side failures (5xx).

    Client errors use FastAPI's ``{"detail": ...}`` shape.
    """

    error: str = Field(
        ...,
        description="Error type identifier",
        examples=["store_error"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Invitation store unavailable"],
    )
    details: Optional[dict] = Field(
        None,
        description="Additional error context",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"error": "store_error", "message": "Invitation store unavailable"},
            ]
        }
    )
