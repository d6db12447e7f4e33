"""Repositories for Gatekeep persistence.

Each repository wraps an AsyncSession and never commits; the calling service
owns the transaction.
"""

from gatekeep.infrastructure.persistence.repositories.audit_log_repository import (
    AuditLogRepository,
)
from gatekeep.infrastructure.persistence.repositories.email_verification_repository import (
    EmailVerificationRepository,
)
from gatekeep.infrastructure.persistence.repositories.external_user_repository import (
    ExternalUserRepository,
)
from gatekeep.infrastructure.persistence.repositories.internal_user_repository import (
    InternalUserRepository,
)
from gatekeep.infrastructure.persistence.repositories.password_reset_repository import (
    PasswordResetRepository,
)
from gatekeep.infrastructure.persistence.repositories.refresh_token_repository import (
    RefreshTokenRepository,
)
from gatekeep.infrastructure.persistence.repositories.session_repository import (
    SessionRepository,
)

__all__ = [
    "AuditLogRepository",
    "EmailVerificationRepository",
    "ExternalUserRepository",
    "InternalUserRepository",
    "PasswordResetRepository",
    "RefreshTokenRepository",
    "SessionRepository",
]
