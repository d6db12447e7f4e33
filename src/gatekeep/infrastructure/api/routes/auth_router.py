"""Authentication API routes.

Provides endpoints for registration, login, logout, token refresh, email
verification and password reset. Domain errors raised by the services are
turned into responses by the handlers registered in ``app.py``.
"""

from fastapi import APIRouter, Query, status

from gatekeep.core.logging import get_logger
from gatekeep.infrastructure.api.dependencies import (
    AuthServiceDep,
    BearerToken,
    PasswordResetServiceDep,
    RequestContextDep,
)
from gatekeep.infrastructure.api.schemas import (
    AuthResponse,
    EmailRequest,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    PrincipalResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    ResetTokenStatusResponse,
    TokenRefreshResponse,
    VerifyEmailResponse,
)

logger = get_logger(__name__)

router = APIRouter()

RESEND_VERIFICATION_MESSAGE = (
    "If the account exists and is not verified, a new verification email was sent."
)


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
    },
)
async def register(
    body: RegisterRequest,
    auth_service: AuthServiceDep,
    context: RequestContextDep,
) -> RegisterResponse:
    """Register a new external user.

    The account stays inactive until the emailed verification link is used.
    """
    summary = await auth_service.register(
        body.email,
        body.password,
        body.name,
        ip=context.ip,
        user_agent=context.user_agent,
    )
    return RegisterResponse(
        message="Registration successful. Check your email to verify your account.",
        user=PrincipalResponse.from_summary(summary),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Account not active"},
    },
)
async def login(
    body: LoginRequest,
    auth_service: AuthServiceDep,
    context: RequestContextDep,
) -> AuthResponse:
    """Authenticate with email and password.

    Staff accounts are matched first, then external users. Returns an access
    token and a refresh token bound to a new session.
    """
    result = await auth_service.login(
        body.email,
        body.password,
        user_agent=context.user_agent,
        ip=context.ip,
    )
    return AuthResponse(
        kind=result.kind,
        token=result.access_token,
        refresh_token=result.refresh_token,
        expires_in=result.expires_in,
        user=PrincipalResponse.from_summary(result.principal),
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid access token"}},
)
async def logout(
    token: BearerToken,
    auth_service: AuthServiceDep,
    context: RequestContextDep,
) -> MessageResponse:
    """Revoke the caller's current session and its refresh tokens."""
    result = await auth_service.logout(token, ip=context.ip, user_agent=context.user_agent)
    return MessageResponse(success=result.success, message=result.message)


@router.post(
    "/refresh",
    response_model=TokenRefreshResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired refresh token"}},
)
async def refresh(
    body: RefreshRequest,
    auth_service: AuthServiceDep,
    context: RequestContextDep,
) -> TokenRefreshResponse:
    """Exchange a refresh token for a new token pair.

    The presented refresh token is spent; presenting it again fails.
    """
    pair = await auth_service.refresh(
        body.refresh_token, ip=context.ip, user_agent=context.user_agent
    )
    return TokenRefreshResponse(
        token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.expires_in,
    )


@router.get(
    "/verify-email",
    response_model=VerifyEmailResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid or expired token"},
        404: {"model": ErrorResponse, "description": "Account not found"},
        409: {"model": ErrorResponse, "description": "Already verified"},
    },
)
async def verify_email(
    auth_service: AuthServiceDep,
    context: RequestContextDep,
    token: str = Query(..., min_length=1, description="Verification token from the email link"),
) -> VerifyEmailResponse:
    """Verify an email address and activate the account."""
    result = await auth_service.verify_email(
        token, ip=context.ip, user_agent=context.user_agent
    )
    return VerifyEmailResponse(
        message="Email verified successfully",
        user_id=result.principal_id,
        email=result.email,
    )


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    body: EmailRequest,
    auth_service: AuthServiceDep,
    context: RequestContextDep,
) -> MessageResponse:
    """Send a new verification link. The response never reveals account existence."""
    await auth_service.resend_verification(
        body.email, ip=context.ip, user_agent=context.user_agent
    )
    return MessageResponse(message=RESEND_VERIFICATION_MESSAGE)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Account not active"},
        502: {"model": ErrorResponse, "description": "Reset email could not be sent"},
    },
)
async def forgot_password(
    body: EmailRequest,
    reset_service: PasswordResetServiceDep,
    context: RequestContextDep,
) -> MessageResponse:
    """Request a password reset link."""
    message = await reset_service.request_reset(
        body.email, ip=context.ip, user_agent=context.user_agent
    )
    return MessageResponse(message=message)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired token"}},
)
async def reset_password(
    body: ResetPasswordRequest,
    reset_service: PasswordResetServiceDep,
    context: RequestContextDep,
) -> MessageResponse:
    """Set a new password using a reset token and sign out every session."""
    message = await reset_service.reset_password(
        body.token,
        body.new_password,
        ip=context.ip,
        user_agent=context.user_agent,
    )
    return MessageResponse(message=message)


@router.get("/reset-password/verify", response_model=ResetTokenStatusResponse)
async def verify_reset_token(
    reset_service: PasswordResetServiceDep,
    token: str = Query(..., min_length=1, description="Reset token from the email link"),
) -> ResetTokenStatusResponse:
    """Check whether a reset token can still be used."""
    valid, expires_at = await reset_service.verify_reset_token(token)
    return ResetTokenStatusResponse(valid=valid, expires_at=expires_at)
