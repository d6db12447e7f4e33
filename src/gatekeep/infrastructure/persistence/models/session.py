"""SQLAlchemy model for login sessions.

A session is opened at login and closed by revocation. Exactly one of the two
principal columns is set.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from gatekeep.infrastructure.persistence.database import Base


class SessionModel(Base):
    """SQLAlchemy model for the sessions table.

    Attributes:
        id: Primary key (UUID string).
        external_user_id: Owning external user, if any.
        internal_user_id: Owning internal user, if any.
        user_agent: User agent of the login request.
        ip_address: Client IP of the login request.
        created_at: Timestamp when the session was opened.
        revoked_at: Timestamp when the session was revoked (NULL = active).
    """

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Session ID (UUID)",
    )
    external_user_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("external_users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    internal_user_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("internal_users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    user_agent: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="User agent string from login request",
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(45),
        nullable=True,
        comment="Client IP address (IPv4 or IPv6)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp when the session was revoked",
    )

    __table_args__ = (
        CheckConstraint(
            "(external_user_id IS NULL) <> (internal_user_id IS NULL)",
            name="ck_sessions_single_owner",
        ),
        Index("ix_sessions_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        owner = self.external_user_id or self.internal_user_id
        return f"<Session(id={self.id}, owner={owner}, revoked_at={self.revoked_at})>"
