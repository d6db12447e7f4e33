"""SQLAlchemy model for refresh tokens.

Only the SHA-256 hash of each refresh token is stored. Rows are revoked,
never deleted, so a rotation chain can be followed through ``rotated_from_id``.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from gatekeep.infrastructure.persistence.database import Base


class RefreshTokenModel(Base):
    """Refresh token bound to one session.

    Attributes:
        id: Primary key (UUID string).
        session_id: Session the token belongs to.
        external_user_id: Owning external user, if any.
        internal_user_id: Owning internal user, if any.
        token_hash: SHA-256 hex digest of the raw token.
        expires_at: Timestamp when the token expires.
        revoked_at: Timestamp when the token was revoked or rotated.
        rotated_from_id: Token this one replaced.
        created_at: Timestamp when the token was issued.
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    external_user_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("external_users.id", ondelete="CASCADE"),
        nullable=True,
    )
    internal_user_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("internal_users.id", ondelete="CASCADE"),
        nullable=True,
    )

    # Token hash (SHA-256) - indexed for fast lookup
    token_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    rotated_from_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("refresh_tokens.id"),
        nullable=True,
        comment="Refresh token this one replaced",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "(external_user_id IS NULL) <> (internal_user_id IS NULL)",
            name="ck_refresh_tokens_single_owner",
        ),
        Index("ix_refresh_tokens_external_user", "external_user_id"),
        Index("ix_refresh_tokens_internal_user", "internal_user_id"),
    )

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, session_id={self.session_id})>"
