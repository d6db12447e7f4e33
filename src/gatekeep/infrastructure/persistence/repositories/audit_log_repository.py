"""Audit log repository for append-only audit trail operations.

This repository provides methods to create audit log entries with automatic
integrity chain management (checksums and previous_hash linking).
"""

import hashlib
import json
from datetime import datetime, timezone

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.domain.entities.audit_log import AuditLog
from gatekeep.infrastructure.persistence.models.audit_log import AuditLogModel
from gatekeep.infrastructure.persistence.timestamps import as_utc

# Serializes appends across PostgreSQL transactions so the chain cannot fork
_CHAIN_LOCK_KEY = 0x6761746B


def _normalize_dt(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat()


class AuditLogRepository:
    """Repository for audit log database operations.

    This repository is append-only. UPDATE and DELETE operations are not
    provided, and database triggers reject them.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, entry: AuditLog) -> AuditLog:
        """Append an audit log entry to the integrity chain.

        This method:
        - Retrieves the previous audit log entry's checksum
        - Sets the previous_hash to link to the previous entry
        - Calculates the SHA-256 checksum for this entry

        Args:
            entry: Audit log entity to store (without checksum/previous_hash).

        Returns:
            The stored entry with id, checksum and previous_hash set.
        """
        if self.session.get_bind().dialect.name == "postgresql":
            await self.session.execute(
                text("SELECT pg_advisory_xact_lock(:key)"), {"key": _CHAIN_LOCK_KEY}
            )

        model = AuditLogModel(
            action=entry.action.value,
            external_user_id=entry.external_user_id,
            internal_user_id=entry.internal_user_id,
            organization_id=entry.organization_id,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            request_id=entry.request_id,
            details=entry.details,
            occurred_at=entry.occurred_at,
        )
        model.previous_hash = await self._get_latest_checksum()
        model.checksum = self._calculate_checksum(model)

        self.session.add(model)
        await self.session.flush()

        return self._to_entity(model)

    def _to_entity(self, model: AuditLogModel) -> AuditLog:
        return AuditLog(
            id=model.id,
            action=model.action,
            external_user_id=model.external_user_id,
            internal_user_id=model.internal_user_id,
            organization_id=model.organization_id,
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            request_id=model.request_id,
            details=model.details,
            occurred_at=as_utc(model.occurred_at),
            checksum=model.checksum,
            previous_hash=model.previous_hash,
        )

    async def _get_latest_checksum(self) -> str | None:
        """Get the checksum of the most recent audit log entry.

        Returns:
            Checksum of the latest entry, or None if no entries exist.
        """
        result = await self.session.execute(
            select(AuditLogModel.checksum).order_by(AuditLogModel.id.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _calculate_checksum(model: AuditLogModel) -> str:
        """Calculate SHA-256 checksum for an audit log entry.

        Datetimes are normalized to naive UTC since SQLite stores them
        without timezone.

        Args:
            model: Audit log model to calculate checksum for.

        Returns:
            SHA-256 checksum as a hexadecimal string.
        """
        data = {
            "action": model.action,
            "external_user_id": model.external_user_id,
            "internal_user_id": model.internal_user_id,
            "organization_id": model.organization_id,
            "ip_address": model.ip_address,
            "user_agent": model.user_agent,
            "request_id": model.request_id,
            "details": model.details,
            "occurred_at": _normalize_dt(model.occurred_at),
            "previous_hash": model.previous_hash,
        }
        json_str = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode("utf-8")).hexdigest()

    async def count_all(self) -> int:
        """Count total number of audit log entries."""
        result = await self.session.execute(select(func.count(AuditLogModel.id)))
        return result.scalar_one() or 0

    async def list_entries(
        self, action: str | None = None, limit: int | None = None
    ) -> list[AuditLog]:
        """List entries in sequence order, optionally filtered by action."""
        stmt = select(AuditLogModel).order_by(AuditLogModel.id.asc())
        if action is not None:
            stmt = stmt.where(AuditLogModel.action == action)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def verify_integrity_chain(self) -> tuple[bool, list[str]]:
        """Verify the integrity of the audit log chain.

        Checks that:
        1. Each entry's checksum is valid
        2. Each entry's previous_hash matches the previous entry's checksum

        Returns:
            Tuple of (is_valid, list_of_errors).
        """
        errors = []

        result = await self.session.execute(
            select(AuditLogModel).order_by(AuditLogModel.id.asc())
        )
        previous_checksum = None

        for entry in result.scalars().all():
            calculated_checksum = self._calculate_checksum(entry)
            if entry.checksum != calculated_checksum:
                errors.append(
                    f"Entry {entry.id}: "
                    f"Checksum mismatch. Expected {calculated_checksum}, "
                    f"got {entry.checksum}"
                )

            if entry.previous_hash != previous_checksum:
                errors.append(
                    f"Entry {entry.id}: "
                    f"Previous hash mismatch. Expected {previous_checksum}, "
                    f"got {entry.previous_hash}"
                )

            previous_checksum = entry.checksum

        return len(errors) == 0, errors
