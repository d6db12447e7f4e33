"""SQLAlchemy model for password reset tokens.

Stores hashes of password reset tokens sent to external users.
"""

from datetime import datetime
import uuid

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from gatekeep.infrastructure.persistence.database import Base


class PasswordResetTokenModel(Base):
    """SQLAlchemy model for the password_reset_tokens table.

    Attributes:
        id: Primary key (UUID string).
        external_user_id: Foreign key to external_users table.
        token_hash: SHA-256 hash of the reset token.
        expires_at: Timestamp when the token expires.
        used_at: Timestamp when the token was used (nullable).
        created_at: Timestamp when the token was created.
    """

    __tablename__ = "password_reset_tokens"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Token ID (UUID)",
    )
    external_user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("external_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to external_users table",
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        comment="SHA-256 hash of the reset token",
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Timestamp when the token expires",
    )
    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp when the token was used",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Timestamp when the token was created",
    )

    def __repr__(self) -> str:
        return (
            f"<PasswordResetToken(id={self.id}, "
            f"external_user_id={self.external_user_id})>"
        )
