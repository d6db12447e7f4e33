"""Audit log entity.

Each entry records one completed, security-relevant state transition.
Entries are immutable and linked into a checksum chain by the repository.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from gatekeep.domain.entities.principal import PrincipalRef


class AuditAction(str, Enum):
    """Every state transition the engine records."""

    REGISTER = "REGISTER"
    EMAIL_VERIFY = "EMAIL_VERIFY"
    VERIFICATION_RESENT = "VERIFICATION_RESENT"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    TOKEN_REFRESH = "TOKEN_REFRESH"
    PASSWORD_RESET_REQUEST = "PASSWORD_RESET_REQUEST"
    PASSWORD_RESET = "PASSWORD_RESET"


@dataclass
class AuditLog:
    """Audit log entry.

    Attributes:
        action: What happened.
        external_user_id: Acting external principal, if any.
        internal_user_id: Acting internal principal, if any.
        organization_id: Optional organization scope.
        ip_address: Client IP address.
        user_agent: Client user agent.
        request_id: Correlation ID of the triggering request.
        details: Extra JSON-serializable context.
        occurred_at: When the transition happened (UTC).
        id: Sequence number, assigned by the store.
        checksum: SHA-256 over this entry, assigned by the store.
        previous_hash: Checksum of the previous entry, assigned by the store.
    """

    action: AuditAction
    external_user_id: str | None = None
    internal_user_id: str | None = None
    organization_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    details: dict[str, Any] | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: int | None = None
    checksum: str | None = None
    previous_hash: str | None = None

    def __post_init__(self) -> None:
        """Validate audit log data after initialization."""
        if not isinstance(self.action, AuditAction):
            self.action = AuditAction(self.action)
        if self.external_user_id is not None and self.internal_user_id is not None:
            raise ValueError("An audit entry has at most one actor")

    @classmethod
    def for_actor(
        cls, action: AuditAction, actor: PrincipalRef | None, **kwargs: Any
    ) -> "AuditLog":
        """Build an entry whose actor is given as a principal reference."""
        return cls(
            action=action,
            external_user_id=actor.external_id if actor else None,
            internal_user_id=actor.internal_id if actor else None,
            **kwargs,
        )

    @property
    def actor(self) -> PrincipalRef | None:
        if self.external_user_id is None and self.internal_user_id is None:
            return None
        return PrincipalRef.from_columns(self.external_user_id, self.internal_user_id)
