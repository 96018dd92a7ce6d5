"""Invitation service for organization onboarding codes.

Handles creation, validation and single-use redemption of invitation codes.
- Codes are short random strings, stored as the row's primary key
- Expiry is an absolute millisecond timestamp, re-checked on every call
- Redemption is one conditional UPDATE, so concurrent attempts on the same
  code cannot both succeed
- Callers only ever see "valid" or "not valid"; the reason is logged
"""
import logging
from typing import NoReturn

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookapp.core.codes import Clock, CodeGenerator, code_generator, now_ms
from bookapp.core.exceptions import StoreError
from bookapp.core.metrics import record_invitation_operation
from bookapp.core.structured_logging import log_json, redact_code
from bookapp.models.enums import InvitationRejection, InvitationState
from bookapp.models.invitation import Invitation

logger = logging.getLogger(__name__)


class InvitationService:
    """Service for managing invitation codes."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = now_ms,
        generate_code: CodeGenerator | None = None,
    ):
        """Initialize invitation service.

        Args:
            db: Database session; the caller owns commit/rollback
            clock: Returns the current time in milliseconds
            generate_code: Produces a new invitation code
        """
        self.db = db
        self.clock = clock
        self.generate_code = generate_code or code_generator()

    async def create_invitation(self, org_id: str, created_by: str, expires: int) -> Invitation:
        """Create and persist a new invitation.

        The expiry is taken as given; an instant in the past yields an
        invitation that is already expired.

        Args:
            org_id: Organization the invitation grants access to
            created_by: User issuing the invitation
            expires: Absolute expiry instant in milliseconds

        Returns:
            The stored Invitation, including its generated code

        Raises:
            StoreError: if the row could not be written
        """
        invitation = Invitation(
            code=self.generate_code(),
            org_id=org_id,
            expires=expires,
            created_by=created_by,
            created_at=self.clock(),
        )

        try:
            self.db.add(invitation)
            await self.db.flush()
        except SQLAlchemyError as e:
            self._store_failed("create", e)

        record_invitation_operation("create", "created")
        log_json(
            logger,
            logging.INFO,
            "invitation_created",
            code=redact_code(invitation.code),
            org_id=org_id,
            created_by=created_by,
            expires=expires,
        )
        return invitation

    async def validate_invitation(self, code: str) -> Invitation | None:
        """Return the invitation if it is currently pending, else None.

        Missing, expired and already redeemed codes all return None.

        Raises:
            StoreError: if the row could not be read
        """
        invitation = await self._get(code)
        now = self.clock()

        reason = self._rejection(invitation, now)
        if reason is not None:
            record_invitation_operation("validate", reason.value)
            log_json(
                logger,
                logging.INFO,
                "invitation_rejected",
                code=redact_code(code),
                reason=reason.value,
            )
            return None

        record_invitation_operation("validate", "valid")
        log_json(logger, logging.DEBUG, "invitation_validated", code=redact_code(code))
        return invitation

    async def redeem_invitation(self, code: str, user_id: str) -> bool:
        """Bind a pending invitation to ``user_id``.

        Writes ``used_by`` and ``redeemed_at`` only when the row exists, is
        unused and has not expired at this instant, all in one statement.
        Organization membership is not touched here.

        Returns:
            True if this call redeemed the invitation, False otherwise

        Raises:
            StoreError: if the update could not be executed
        """
        now = self.clock()
        stmt = (
            update(Invitation)
            .where(
                Invitation.code == code,
                Invitation.used_by.is_(None),
                Invitation.expires >= now,
            )
            .values(used_by=user_id, redeemed_at=now)
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            self._store_failed("redeem", e)

        if result.rowcount == 1:
            record_invitation_operation("redeem", "redeemed")
            log_json(
                logger,
                logging.INFO,
                "invitation_redeemed",
                code=redact_code(code),
                user_id=user_id,
                redeemed_at=now,
            )
            return True

        # Diagnose for the log only; the caller just sees False
        invitation = await self._get(code)
        reason = self._rejection(invitation, now) or InvitationRejection.CONFLICT
        record_invitation_operation("redeem", reason.value)
        log_json(
            logger,
            logging.INFO,
            "invitation_redeem_failed",
            code=redact_code(code),
            user_id=user_id,
            reason=reason.value,
        )
        return False

    async def _get(self, code: str) -> Invitation | None:
        """Load an invitation by code, bypassing any stale identity-map copy."""
        try:
            return await self.db.get(Invitation, code, populate_existing=True)
        except SQLAlchemyError as e:
            self._store_failed("read", e)

    @staticmethod
    def _rejection(invitation: Invitation | None, now: int) -> InvitationRejection | None:
        if invitation is None:
            return InvitationRejection.MISSING
        state = invitation.state(now)
        if state is InvitationState.REDEEMED:
            return InvitationRejection.REDEEMED
        if state is InvitationState.EXPIRED:
            return InvitationRejection.EXPIRED
        return None

    @staticmethod
    def _store_failed(operation: str, error: SQLAlchemyError) -> NoReturn:
        record_invitation_operation(operation, "store_error")
        log_json(
            logger,
            logging.ERROR,
            "store_error",
            operation=operation,
            error=str(error),
            exception=error.__class__.__name__,
        )
        raise StoreError(operation, str(error)) from error
