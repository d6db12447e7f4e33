"""API Schemas for request/response validation."""

from gatekeep.infrastructure.api.schemas.auth_schemas import (
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

__all__ = [
    "AuthResponse",
    "EmailRequest",
    "ErrorResponse",
    "LoginRequest",
    "MessageResponse",
    "PrincipalResponse",
    "RefreshRequest",
    "RegisterRequest",
    "RegisterResponse",
    "ResetPasswordRequest",
    "ResetTokenStatusResponse",
    "TokenRefreshResponse",
    "VerifyEmailResponse",
]
