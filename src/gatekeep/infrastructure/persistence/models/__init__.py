"""SQLAlchemy models for Gatekeep tables.

All models inherit from the Base class defined in database.py and are
automatically created on application startup in development mode.
"""

from gatekeep.infrastructure.persistence.models.audit_log import AuditLogModel
from gatekeep.infrastructure.persistence.models.email_verification import (
    EmailVerificationTokenModel,
)
from gatekeep.infrastructure.persistence.models.external_user import ExternalUserModel
from gatekeep.infrastructure.persistence.models.internal_user import InternalUserModel
from gatekeep.infrastructure.persistence.models.password_reset import PasswordResetTokenModel
from gatekeep.infrastructure.persistence.models.refresh_token import RefreshTokenModel
from gatekeep.infrastructure.persistence.models.session import SessionModel

__all__ = [
    "AuditLogModel",
    "EmailVerificationTokenModel",
    "ExternalUserModel",
    "InternalUserModel",
    "PasswordResetTokenModel",
    "RefreshTokenModel",
    "SessionModel",
]
