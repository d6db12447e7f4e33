"""Audit sink for lifecycle transitions.

Each successful lifecycle operation records exactly one entry, inside the
same transaction as the state change it describes.
"""

from typing import Any

from gatekeep.core.logging import get_correlation_id, get_logger
from gatekeep.domain.entities.audit_log import AuditAction, AuditLog
from gatekeep.domain.entities.principal import PrincipalRef
from gatekeep.infrastructure.persistence.repositories.audit_log_repository import (
    AuditLogRepository,
)

logger = get_logger(__name__)


class AuditService:
    """Append-only recorder of lifecycle audit entries."""

    def __init__(self, repository: AuditLogRepository) -> None:
        """Initialize the audit service.

        Args:
            repository: Audit log repository bound to the unit of work's session.
        """
        self.repository = repository

    async def record(
        self,
        action: AuditAction,
        actor: PrincipalRef | None = None,
        *,
        organization_id: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Append one entry to the audit log.

        The request's correlation ID, when bound, is stored as ``request_id``.
        Nothing is committed here.

        Args:
            action: Transition being recorded.
            actor: Principal that performed it, if known.
            organization_id: Optional organization scope.
            ip: Client IP address.
            user_agent: Client user agent.
            details: Extra JSON-serializable context. Never put secrets here.

        Returns:
            The stored entry.
        """
        entry = AuditLog.for_actor(
            action,
            actor,
            organization_id=organization_id,
            ip_address=ip,
            user_agent=user_agent,
            request_id=get_correlation_id(),
            details=details,
        )
        stored = await self.repository.create(entry)
        logger.debug(
            "Audit entry recorded",
            audit_id=stored.id,
            action=stored.action.value,
            actor=actor.subject if actor else None,
        )
        return stored
