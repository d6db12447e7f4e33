"""FastAPI dependencies for the authentication endpoints.

Services are assembled per request from one database session plus the
process-wide collaborators created at startup and kept on ``app.state``.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.core.config import Settings
from gatekeep.core.logging import get_logger
from gatekeep.domain.errors import TokenInvalidError
from gatekeep.domain.services import (
    AuditService,
    AuthService,
    PasswordResetService,
    TokenService,
)
from gatekeep.infrastructure.persistence.database import get_db_session
from gatekeep.infrastructure.persistence.repositories import (
    AuditLogRepository,
    EmailVerificationRepository,
    ExternalUserRepository,
    InternalUserRepository,
    PasswordResetRepository,
    RefreshTokenRepository,
    SessionRepository,
)

logger = get_logger(__name__)


@dataclass
class RequestContext:
    """Client details recorded on sessions and audit entries."""

    ip: str | None
    user_agent: str | None


def get_request_context(request: Request) -> RequestContext:
    """Extract the caller's IP address and user agent."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return RequestContext(ip=ip, user_agent=request.headers.get("User-Agent"))


def _build_token_service(request: Request, session: AsyncSession) -> TokenService:
    settings: Settings = request.app.state.settings
    return TokenService(
        jwt_service=request.app.state.jwt_service,
        refresh_token_repo=RefreshTokenRepository(session),
        session_repo=SessionRepository(session),
        external_user_repo=ExternalUserRepository(session),
        internal_user_repo=InternalUserRepository(session),
        refresh_token_lifetime=settings.refresh_token_lifetime,
    )


async def get_auth_service(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> AuthService:
    """Build the auth service for this request."""
    settings: Settings = request.app.state.settings
    return AuthService(
        session=session,
        external_user_repo=ExternalUserRepository(session),
        internal_user_repo=InternalUserRepository(session),
        session_repo=SessionRepository(session),
        verification_repo=EmailVerificationRepository(session),
        token_service=_build_token_service(request, session),
        password_hasher=request.app.state.password_hasher,
        audit_service=AuditService(AuditLogRepository(session)),
        email_service=request.app.state.email_service,
        verification_lifetime=settings.email_verification_lifetime,
        store_timeout=settings.store_timeout_seconds,
    )


async def get_password_reset_service(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PasswordResetService:
    """Build the password reset service for this request."""
    settings: Settings = request.app.state.settings
    return PasswordResetService(
        session=session,
        user_repo=ExternalUserRepository(session),
        reset_repo=PasswordResetRepository(session),
        session_repo=SessionRepository(session),
        token_service=_build_token_service(request, session),
        password_hasher=request.app.state.password_hasher,
        audit_service=AuditService(AuditLogRepository(session)),
        email_service=request.app.state.email_service,
        reset_lifetime=settings.password_reset_lifetime,
        store_timeout=settings.store_timeout_seconds,
    )


def get_bearer_token(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Extract the raw token from a ``Bearer`` Authorization header.

    Raises:
        TokenInvalidError: If the header is missing or malformed.
    """
    if authorization is None:
        logger.info("Authentication failed: missing Authorization header")
        raise TokenInvalidError("Missing Authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.info("Authentication failed: invalid Authorization header format")
        raise TokenInvalidError()
    return parts[1]


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
PasswordResetServiceDep = Annotated[PasswordResetService, Depends(get_password_reset_service)]
RequestContextDep = Annotated[RequestContext, Depends(get_request_context)]
BearerToken = Annotated[str, Depends(get_bearer_token)]
