"""Service for password reset logic.

Handles token generation, sending reset emails, and resetting passwords.
Password reset applies to external users only.
"""

import asyncio
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.core.logging import get_logger
from gatekeep.domain.entities.audit_log import AuditAction
from gatekeep.domain.entities.password_reset import PasswordResetToken
from gatekeep.domain.entities.principal import PrincipalKind, PrincipalRef
from gatekeep.domain.errors import (
    EmailDeliveryError,
    PrincipalInactiveError,
    PrincipalNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
)
from gatekeep.domain.services.audit_service import AuditService
from gatekeep.domain.services.token_service import TokenService
from gatekeep.infrastructure.auth.opaque_token import hash_token
from gatekeep.infrastructure.auth.password_hasher import PasswordHasher
from gatekeep.infrastructure.persistence.database import unit_of_work
from gatekeep.infrastructure.persistence.repositories.external_user_repository import (
    ExternalUserRepository,
)
from gatekeep.infrastructure.persistence.repositories.password_reset_repository import (
    PasswordResetRepository,
)
from gatekeep.infrastructure.persistence.repositories.session_repository import (
    SessionRepository,
)
from gatekeep.infrastructure.services.email_service import EmailService

logger = get_logger(__name__)

RESET_REQUESTED_MESSAGE = "If an account exists, password reset instructions were sent."
RESET_COMPLETED_MESSAGE = "Password has been reset successfully."


class PasswordResetService:
    """Service for handling password reset business logic."""

    def __init__(
        self,
        session: AsyncSession,
        user_repo: ExternalUserRepository,
        reset_repo: PasswordResetRepository,
        session_repo: SessionRepository,
        token_service: TokenService,
        password_hasher: PasswordHasher,
        audit_service: AuditService,
        email_service: EmailService,
        reset_lifetime: timedelta = timedelta(minutes=30),
        store_timeout: float = 10.0,
    ) -> None:
        """Initialize the password reset service.

        Args:
            session: SQLAlchemy async session; this service commits it.
            user_repo: Repository for external user operations.
            reset_repo: Repository for password reset token operations.
            session_repo: Session store, for revoking sessions after a reset.
            token_service: Used to revoke refresh tokens after a reset.
            password_hasher: Argon2 hasher.
            audit_service: Audit sink.
            email_service: Service for sending emails.
            reset_lifetime: Lifetime of reset tokens.
            store_timeout: Upper bound in seconds for one operation.
        """
        self.session = session
        self.user_repo = user_repo
        self.reset_repo = reset_repo
        self.session_repo = session_repo
        self.token_service = token_service
        self.password_hasher = password_hasher
        self.audit_service = audit_service
        self.email_service = email_service
        self.reset_lifetime = reset_lifetime
        self.store_timeout = store_timeout

    async def request_reset(
        self,
        email: str,
        *,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> str:
        """Create a reset token and email the reset link.

        The token and its audit entry are staged in one transaction that is
        committed only once the provider accepted the email. The send is
        bounded by the email service's own timeout, not ``store_timeout``.
        If the final commit fails after a successful send, the emailed link
        refers to a token that was never stored and is rejected as invalid.
        Unknown emails get the same response as known ones.

        Raises:
            PrincipalInactiveError: If the account has not been verified.
            EmailDeliveryError: If the reset email could not be sent.
        """
        staged = await self._stage_reset(email, ip=ip, user_agent=user_agent)
        if staged is None:
            return RESET_REQUESTED_MESSAGE

        user_id, to, name, raw_token = staged
        try:
            await self.email_service.send_password_reset_email(
                to, raw_token, name=name, expires_in=self.reset_lifetime
            )
        except (EmailDeliveryError, asyncio.CancelledError):
            await asyncio.shield(self.session.rollback())
            raise
        await self._commit()

        logger.info("Password reset email sent", user_id=user_id)
        return RESET_REQUESTED_MESSAGE

    @unit_of_work
    async def _stage_reset(
        self,
        email: str,
        *,
        ip: str | None,
        user_agent: str | None,
    ) -> tuple[str, str, str | None, str] | None:
        user = await self.user_repo.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None
        if not user.is_active:
            logger.info("Password reset rejected: account inactive", user_id=user.id)
            raise PrincipalInactiveError()

        entity, raw_token = PasswordResetToken.generate(user.id, lifetime=self.reset_lifetime)
        await self.reset_repo.create(entity)
        await self.audit_service.record(
            AuditAction.PASSWORD_RESET_REQUEST,
            PrincipalRef(kind=PrincipalKind.EXTERNAL, id=user.id),
            ip=ip,
            user_agent=user_agent,
        )
        return user.id, user.email, user.name, raw_token

    @unit_of_work
    async def _commit(self) -> None:
        await self.session.commit()

    @unit_of_work
    async def reset_password(
        self,
        token: str,
        new_password: str,
        *,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> str:
        """Reset a user's password using a valid token.

        Consumes the token, stores the new hash and revokes every session of
        the user together with their refresh tokens, all in one transaction.

        Raises:
            TokenInvalidError: If the token is unknown or already used.
            TokenExpiredError: If the token has expired.
            PrincipalNotFoundError: If the user no longer exists.
        """
        # Hashed before the first query, which opens the write transaction on SQLite
        password_hash = await self.password_hasher.hash_async(new_password)
        record = await self.reset_repo.get_by_hash(hash_token(token), for_update=True)
        if record is None or record.is_used():
            logger.info("Password reset failed: token unknown or used")
            raise TokenInvalidError()
        if record.is_expired():
            logger.info("Password reset failed: token expired", token_id=record.id)
            raise TokenExpiredError()

        user = await self.user_repo.get_by_id(record.external_user_id)
        if user is None:
            logger.error("Password reset failed: user not found", user_id=record.external_user_id)
            raise PrincipalNotFoundError()

        if not await self.reset_repo.mark_as_used(record.id):
            logger.warning("Reset token consumed concurrently", token_id=record.id)
            raise TokenInvalidError()

        principal = PrincipalRef(kind=PrincipalKind.EXTERNAL, id=user.id)
        await self.user_repo.update_password(user.id, password_hash)
        sessions_revoked = await self.session_repo.revoke_all_for_principal(principal)
        tokens_revoked = await self.token_service.revoke_principal_tokens(principal)

        await self.audit_service.record(
            AuditAction.PASSWORD_RESET,
            principal,
            ip=ip,
            user_agent=user_agent,
            details={
                "sessions_revoked": sessions_revoked,
                "refresh_tokens_revoked": tokens_revoked,
            },
        )
        await self.session.commit()

        logger.info(
            "Password reset successfully",
            user_id=user.id,
            sessions_revoked=sessions_revoked,
            refresh_tokens_revoked=tokens_revoked,
        )
        return RESET_COMPLETED_MESSAGE

    @unit_of_work
    async def verify_reset_token(self, token: str) -> tuple[bool, datetime | None]:
        """Check whether a reset token is usable without consuming it.

        Returns:
            A tuple of (is_valid, expires_at). If invalid, expires_at is None.
        """
        record = await self.reset_repo.get_by_hash(hash_token(token))
        if record is None or not record.is_valid():
            logger.info("Reset token check: invalid")
            return False, None
        return True, record.expires_at
