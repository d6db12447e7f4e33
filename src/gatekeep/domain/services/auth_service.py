"""Authentication service.

Coordinates registration, login, logout, refresh and email verification.
Every public operation is one unit of work: its writes and its audit entry
commit together, and any failure rolls all of them back.

Principals come from two disjoint populations. Login looks at internal staff
first and falls back to live external users.
"""

import uuid
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.core.logging import get_logger
from gatekeep.domain.entities.audit_log import AuditAction
from gatekeep.domain.entities.email_verification import EmailVerificationToken
from gatekeep.domain.entities.principal import (
    PrincipalKind,
    PrincipalRef,
    PrincipalSummary,
)
from gatekeep.domain.entities.token import AccessTokenClaims, TokenPair
from gatekeep.domain.errors import (
    AlreadyVerifiedError,
    EmailDeliveryError,
    InvalidCredentialsError,
    PrincipalExistsError,
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
from gatekeep.infrastructure.persistence.models import ExternalUserModel, InternalUserModel
from gatekeep.infrastructure.persistence.repositories.email_verification_repository import (
    EmailVerificationRepository,
)
from gatekeep.infrastructure.persistence.repositories.external_user_repository import (
    ExternalUserRepository,
)
from gatekeep.infrastructure.persistence.repositories.internal_user_repository import (
    InternalUserRepository,
)
from gatekeep.infrastructure.persistence.repositories.session_repository import (
    SessionRepository,
)
from gatekeep.infrastructure.persistence.timestamps import utcnow
from gatekeep.infrastructure.services.email_service import EmailService

logger = get_logger(__name__)


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login."""

    kind: PrincipalKind
    access_token: str
    refresh_token: str
    expires_in: int
    principal: PrincipalSummary
    session_id: str


@dataclass(frozen=True)
class LogoutResult:
    success: bool = True
    message: str = "Logged out"
    session_id: str | None = None
    revoked_tokens: int = 0


@dataclass(frozen=True)
class VerificationResult:
    principal_id: str
    email: str


class AuthService:
    """Service for the credential and session lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        external_user_repo: ExternalUserRepository,
        internal_user_repo: InternalUserRepository,
        session_repo: SessionRepository,
        verification_repo: EmailVerificationRepository,
        token_service: TokenService,
        password_hasher: PasswordHasher,
        audit_service: AuditService,
        email_service: EmailService,
        verification_lifetime: timedelta = timedelta(hours=24),
        store_timeout: float = 10.0,
    ) -> None:
        """Initialize the auth service.

        Args:
            session: SQLAlchemy async session; this service commits it.
            external_user_repo: External principal store.
            internal_user_repo: Internal principal store.
            session_repo: Session store.
            verification_repo: Email verification token store.
            token_service: Token issuance and rotation.
            password_hasher: Argon2 hasher.
            audit_service: Audit sink.
            email_service: Outbound email.
            verification_lifetime: Lifetime of email verification tokens.
            store_timeout: Upper bound in seconds for one operation.
        """
        self.session = session
        self.external_user_repo = external_user_repo
        self.internal_user_repo = internal_user_repo
        self.session_repo = session_repo
        self.verification_repo = verification_repo
        self.token_service = token_service
        self.password_hasher = password_hasher
        self.audit_service = audit_service
        self.email_service = email_service
        self.verification_lifetime = verification_lifetime
        self.store_timeout = store_timeout

    async def register(
        self,
        email: str,
        password: str,
        name: str | None = None,
        *,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> PrincipalSummary:
        """Register an external principal and send the verification email.

        The principal starts inactive. A failed verification email is logged
        and does not undo the registration.

        Raises:
            PrincipalExistsError: If a live external principal holds the email.
        """
        summary, raw_token = await self._create_registration(
            email, password, name, ip=ip, user_agent=user_agent
        )
        await self._send_verification_quietly(email, raw_token, name)
        return summary

    @unit_of_work
    async def _create_registration(
        self,
        email: str,
        password: str,
        name: str | None,
        *,
        ip: str | None,
        user_agent: str | None,
    ) -> tuple[PrincipalSummary, str]:
        # Hashed before the first query, which opens the write transaction on SQLite
        password_hash = await self.password_hasher.hash_async(password)
        if await self.external_user_repo.email_exists(email):
            logger.info("Registration rejected: email taken")
            raise PrincipalExistsError()

        now = utcnow()
        user = ExternalUserModel(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=password_hash,
            name=name,
            is_active=False,
            created_at=now,
            updated_at=now,
        )
        try:
            await self.external_user_repo.create(user)
        except IntegrityError as e:
            logger.info("Registration rejected: concurrent insert for same email")
            raise PrincipalExistsError() from e

        principal = PrincipalRef(kind=PrincipalKind.EXTERNAL, id=user.id)
        token, raw_token = EmailVerificationToken.generate(
            user.id, email, lifetime=self.verification_lifetime
        )
        await self.verification_repo.create(token)
        await self.audit_service.record(
            AuditAction.REGISTER, principal, ip=ip, user_agent=user_agent
        )
        await self.session.commit()

        logger.info("External principal registered", principal=principal.subject)
        return PrincipalSummary.from_model(user, PrincipalKind.EXTERNAL), raw_token

    @unit_of_work
    async def login(
        self,
        email: str,
        password: str,
        *,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> LoginResult:
        """Authenticate a principal by email and password and open a session.

        Raises:
            InvalidCredentialsError: If the email is unknown, the principal has
                no password, or the password is wrong.
            PrincipalInactiveError: If the principal is inactive or unverified.
        """
        kind, user = await self._find_login_principal(email)
        password_hash = user.password_hash if user is not None else None
        user_id = user.id if user is not None else None
        # End the lookup transaction so Argon2 never runs under the SQLite write lock
        await self.session.commit()

        # A missing principal still pays for one Argon2 verification
        if not await self.password_hasher.verify_async(password, password_hash):
            logger.info("Login failed: invalid credentials")
            raise InvalidCredentialsError()

        repo = self._repo_for(kind)
        self.session.expire(user)
        user = await repo.get_by_id(user_id)
        if user is None:
            logger.info("Login failed: principal removed during login")
            raise InvalidCredentialsError()
        if not user.is_active:
            logger.info("Login rejected: principal inactive", kind=kind.value, principal_id=user.id)
            raise PrincipalInactiveError()

        principal = PrincipalRef(kind=kind, id=user.id)

        session_row = await self.session_repo.create(principal, user_agent=user_agent, ip_address=ip)
        await repo.update_last_login(user.id)
        if self.password_hasher.needs_rehash(user.password_hash):
            await repo.update_password(user.id, await self.password_hasher.hash_async(password))
            logger.info("Password rehashed with current parameters", principal=principal.subject)

        access_token = self.token_service.issue_access_token(
            AccessTokenClaims(principal=principal, email=user.email)
        )
        refresh_token = await self.token_service.issue_refresh_token(principal, session_row.id)
        await self.audit_service.record(
            AuditAction.LOGIN,
            principal,
            ip=ip,
            user_agent=user_agent,
            details={"session_id": session_row.id},
        )
        await self.session.commit()

        logger.info("Login succeeded", principal=principal.subject, session_id=session_row.id)
        return LoginResult(
            kind=kind,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.token_service.access_token_expires_in,
            principal=PrincipalSummary.from_model(user, kind),
            session_id=session_row.id,
        )

    @unit_of_work
    async def logout(
        self,
        access_token: str,
        *,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> LogoutResult:
        """Revoke the caller's most recent active session and its refresh tokens.

        Raises:
            TokenInvalidError: If the access token does not verify.
        """
        claims = self.token_service.verify_access_token(access_token)
        principal = claims.principal

        session_row = await self.session_repo.get_latest_active(principal)
        if session_row is None:
            logger.info("Logout with no active session", principal=principal.subject)
            return LogoutResult(success=True, message="No active session")

        await self.session_repo.revoke(session_row.id)
        revoked = await self.token_service.revoke_session_tokens(session_row.id)
        await self.audit_service.record(
            AuditAction.LOGOUT,
            principal,
            ip=ip,
            user_agent=user_agent,
            details={"session_id": session_row.id, "revoked_tokens": revoked},
        )
        await self.session.commit()

        logger.info(
            "Logged out",
            principal=principal.subject,
            session_id=session_row.id,
            revoked_tokens=revoked,
        )
        return LogoutResult(session_id=session_row.id, revoked_tokens=revoked)

    @unit_of_work
    async def refresh(
        self,
        presented: str,
        *,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> TokenPair:
        """Rotate a refresh token.

        Raises:
            TokenInvalidError: If the token is unknown, revoked or already used.
            TokenExpiredError: If the token has expired.
        """
        pair = await self.token_service.rotate_refresh_token(presented)
        await self.audit_service.record(
            AuditAction.TOKEN_REFRESH,
            pair.principal,
            ip=ip,
            user_agent=user_agent,
            details={"session_id": pair.session_id},
        )
        await self.session.commit()
        return pair

    @unit_of_work
    async def verify_email(
        self,
        token: str,
        *,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> VerificationResult:
        """Consume a verification token and activate its principal.

        A second click on an already consumed link reports AlreadyVerified
        while the principal is active.

        Raises:
            TokenInvalidError: If the token is unknown, or used without
                activating its principal.
            TokenExpiredError: If the token has expired.
            PrincipalNotFoundError: If the principal is gone or soft-deleted.
            AlreadyVerifiedError: If the principal is already active.
        """
        record = await self.verification_repo.get_by_hash(hash_token(token), for_update=True)
        if record is None:
            logger.info("Email verification rejected: unknown token")
            raise TokenInvalidError()
        if record.is_used():
            owner = await self.external_user_repo.get_by_id(record.external_user_id)
            if owner is not None and owner.is_active:
                logger.info("Email verification repeated", token_id=record.id)
                raise AlreadyVerifiedError()
            logger.info("Email verification rejected: token used", token_id=record.id)
            raise TokenInvalidError()
        if record.is_expired():
            logger.info("Email verification rejected: token expired", token_id=record.id)
            raise TokenExpiredError()

        user = await self.external_user_repo.get_by_id(record.external_user_id)
        if user is None:
            raise PrincipalNotFoundError()
        if user.is_active:
            raise AlreadyVerifiedError()

        if not await self.verification_repo.mark_as_used(record.id):
            logger.warning("Verification token consumed concurrently", token_id=record.id)
            raise TokenInvalidError()
        await self.external_user_repo.activate(user.id)

        principal = PrincipalRef(kind=PrincipalKind.EXTERNAL, id=user.id)
        await self.audit_service.record(
            AuditAction.EMAIL_VERIFY, principal, ip=ip, user_agent=user_agent
        )
        await self.session.commit()

        logger.info("Email verified", principal=principal.subject)
        return VerificationResult(principal_id=user.id, email=user.email)

    async def resend_verification(
        self,
        email: str,
        *,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Send a fresh verification link to an unverified external principal.

        Returns silently for unknown, deleted or already active principals, so
        the response never reveals whether an account exists.
        """
        issued = await self._issue_fresh_verification(email, ip=ip, user_agent=user_agent)
        if issued is not None:
            name, raw_token = issued
            await self._send_verification_quietly(email, raw_token, name)

    @unit_of_work
    async def _issue_fresh_verification(
        self,
        email: str,
        *,
        ip: str | None,
        user_agent: str | None,
    ) -> tuple[str | None, str] | None:
        user = await self.external_user_repo.get_by_email(email)
        if user is None or user.is_active:
            return None

        await self.verification_repo.invalidate_for_user(user.id)
        token, raw_token = EmailVerificationToken.generate(
            user.id, user.email, lifetime=self.verification_lifetime
        )
        await self.verification_repo.create(token)
        await self.audit_service.record(
            AuditAction.VERIFICATION_RESENT,
            PrincipalRef(kind=PrincipalKind.EXTERNAL, id=user.id),
            ip=ip,
            user_agent=user_agent,
        )
        await self.session.commit()
        return user.name, raw_token

    async def _find_login_principal(
        self, email: str
    ) -> tuple[PrincipalKind, InternalUserModel | ExternalUserModel | None]:
        internal = await self.internal_user_repo.get_by_email(email)
        if internal is not None:
            return PrincipalKind.INTERNAL, internal
        return PrincipalKind.EXTERNAL, await self.external_user_repo.get_by_email(email)

    def _repo_for(
        self, kind: PrincipalKind
    ) -> InternalUserRepository | ExternalUserRepository:
        if kind is PrincipalKind.INTERNAL:
            return self.internal_user_repo
        return self.external_user_repo

    async def _send_verification_quietly(
        self, email: str, raw_token: str, name: str | None
    ) -> None:
        try:
            await self.email_service.send_verification_email(
                email, raw_token, name=name, expires_in=self.verification_lifetime
            )
        except EmailDeliveryError:
            logger.warning("Verification email could not be sent", to=email)
