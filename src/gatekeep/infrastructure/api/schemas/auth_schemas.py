"""Pydantic schemas for the authentication endpoints."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from gatekeep.domain.entities.principal import PrincipalKind, PrincipalSummary


class RegisterRequest(BaseModel):
    """Request body for external user registration."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=8, max_length=1024, description="User's password")
    name: str | None = Field(None, max_length=255, description="Display name")


class LoginRequest(BaseModel):
    """Request body for login, for both external and internal principals."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, max_length=1024, description="Password")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token from login or refresh")


class EmailRequest(BaseModel):
    """Request body carrying only an email address."""

    email: EmailStr = Field(..., description="Email address")


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=10, description="Reset token from the email link")
    new_password: str = Field(..., min_length=8, max_length=1024, description="New password")


class PrincipalResponse(BaseModel):
    """Sanitized principal details. Never includes the password hash."""

    id: str = Field(..., description="Principal ID")
    email: str = Field(..., description="Email address")
    name: str | None = Field(None, description="Display name")
    kind: PrincipalKind = Field(..., description="external or internal")
    is_active: bool = Field(..., description="Whether the principal is active")
    created_at: datetime | None = Field(None, description="When the principal was created")

    @classmethod
    def from_summary(cls, summary: PrincipalSummary) -> "PrincipalResponse":
        return cls(
            id=summary.id,
            email=summary.email,
            name=summary.name,
            kind=summary.kind,
            is_active=summary.is_active,
            created_at=summary.created_at,
        )


class RegisterResponse(BaseModel):
    message: str = Field(..., description="Next step for the user")
    user: PrincipalResponse


class AuthResponse(BaseModel):
    """Response body for a successful login."""

    kind: PrincipalKind = Field(..., description="Kind of principal that logged in")
    token: str = Field(..., description="Signed access token")
    refresh_token: str = Field(..., description="Opaque refresh token")
    expires_in: int = Field(..., description="Access token lifetime in seconds")
    user: PrincipalResponse


class TokenRefreshResponse(BaseModel):
    token: str = Field(..., description="New signed access token")
    refresh_token: str = Field(..., description="New refresh token; the old one is spent")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class VerifyEmailResponse(BaseModel):
    message: str
    user_id: str
    email: str


class ResetTokenStatusResponse(BaseModel):
    valid: bool
    expires_at: datetime | None = None


class ErrorResponse(BaseModel):
    """Error body returned for every handled failure."""

    error: str = Field(..., description="Stable error code")
    message: str = Field(..., description="Human-readable error message")
