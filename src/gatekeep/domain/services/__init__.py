"""Domain services for Gatekeep.

Services orchestrate repositories, token handling and auditing. Each public
operation runs as a single unit of work against one database session.
"""

from gatekeep.domain.services.audit_service import AuditService
from gatekeep.domain.services.auth_service import (
    AuthService,
    LoginResult,
    LogoutResult,
    VerificationResult,
)
from gatekeep.domain.services.password_reset_service import (
    RESET_COMPLETED_MESSAGE,
    RESET_REQUESTED_MESSAGE,
    PasswordResetService,
)
from gatekeep.domain.services.token_service import TokenService

__all__ = [
    "AuditService",
    "AuthService",
    "LoginResult",
    "LogoutResult",
    "PasswordResetService",
    "RESET_COMPLETED_MESSAGE",
    "RESET_REQUESTED_MESSAGE",
    "TokenService",
    "VerificationResult",
]
