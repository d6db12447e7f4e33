"""SQLAlchemy model for the audit_log table.

One row per completed lifecycle transition. Entries are write-once and
linked into an integrity chain through ``checksum`` and ``previous_hash``.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, event, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from gatekeep.infrastructure.persistence.database import Base


class AuditLogModel(Base):
    """SQLAlchemy model for the audit_log table.

    The table is immutable: UPDATE and DELETE are rejected by database
    triggers.

    Attributes:
        id: Primary key (auto-incrementing, serves as sequence number).
        action: AuditAction value.
        external_user_id: Acting external user, if any.
        internal_user_id: Acting internal user, if any.
        organization_id: Optional organization scope.
        ip_address: IP address of the client.
        user_agent: User agent string from the request.
        request_id: Correlation ID for the request.
        details: Additional context as JSON.
        occurred_at: Timestamp when the transition occurred (UTC).
        checksum: SHA-256 hash of this audit entry.
        previous_hash: Checksum of the previous audit entry.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Sequence number",
    )
    action: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        index=True,
        comment="Lifecycle action",
    )

    # Actor (at most one)
    external_user_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="Acting external user",
    )
    internal_user_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="Acting internal user",
    )
    organization_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        comment="Organization scope",
    )

    # Request metadata
    ip_address: Mapped[str | None] = mapped_column(
        String(45),
        nullable=True,
        comment="Client IP address (IPv4 or IPv6)",
    )
    user_agent: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="User agent string from request",
    )
    request_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Correlation ID for the request",
    )
    details: Mapped[dict | None] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
        comment="Additional context as JSON",
    )

    # Timing and integrity
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Timestamp when the transition occurred (UTC)",
    )
    checksum: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="SHA-256 hash of this audit entry",
    )
    previous_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Checksum of the previous audit entry",
    )

    __table_args__ = (
        Index("ix_audit_log_occurred_at_desc", occurred_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action})>"


SQLITE_IMMUTABILITY_TRIGGERS = (
    """
    CREATE TRIGGER IF NOT EXISTS prevent_audit_log_update
    BEFORE UPDATE ON audit_log
    BEGIN
        SELECT RAISE(ABORT, 'Audit log entries are immutable and cannot be updated');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS prevent_audit_log_delete
    BEFORE DELETE ON audit_log
    BEGIN
        SELECT RAISE(ABORT, 'Audit log entries are immutable and cannot be deleted');
    END;
    """,
)

POSTGRESQL_IMMUTABILITY_TRIGGERS = (
    """
    CREATE OR REPLACE FUNCTION prevent_audit_log_change() RETURNS trigger AS $$
    BEGIN
        RAISE EXCEPTION 'Audit log entries are immutable';
    END;
    $$ LANGUAGE plpgsql;
    """,
    """
    CREATE TRIGGER prevent_audit_log_change
    BEFORE UPDATE OR DELETE ON audit_log
    FOR EACH ROW EXECUTE FUNCTION prevent_audit_log_change();
    """,
)


@event.listens_for(AuditLogModel.__table__, "after_create")
def create_immutability_triggers(target, connection, **kw):
    """Create triggers that reject UPDATE and DELETE on audit_log."""
    if connection.dialect.name == "sqlite":
        statements = SQLITE_IMMUTABILITY_TRIGGERS
    elif connection.dialect.name == "postgresql":
        statements = POSTGRESQL_IMMUTABILITY_TRIGGERS
    else:
        return
    for statement in statements:
        connection.execute(text(statement))
