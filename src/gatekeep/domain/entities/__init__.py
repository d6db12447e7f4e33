"""Domain entities for Gatekeep.

Entities are plain Python dataclasses that represent core business concepts.
"""

from gatekeep.domain.entities.audit_log import AuditAction, AuditLog
from gatekeep.domain.entities.email_verification import EmailVerificationToken
from gatekeep.domain.entities.password_reset import PasswordResetToken
from gatekeep.domain.entities.principal import (
    PrincipalKind,
    PrincipalRef,
    PrincipalSummary,
)
from gatekeep.domain.entities.token import AccessTokenClaims, TokenPair

__all__ = [
    "AccessTokenClaims",
    "AuditAction",
    "AuditLog",
    "EmailVerificationToken",
    "PasswordResetToken",
    "PrincipalKind",
    "PrincipalRef",
    "PrincipalSummary",
    "TokenPair",
]
