"""SQLAlchemy model for the external_users table.

External users are organization members who sign up themselves. An email is
unique only among rows that have not been soft-deleted.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from gatekeep.infrastructure.persistence.database import Base


class ExternalUserModel(Base):
    """SQLAlchemy model for the external_users table.

    Attributes:
        id: Primary key (UUID string).
        email: User's email address, stored as given.
        password_hash: Argon2 hash, or NULL when password login is disabled.
        name: Optional display name.
        is_active: False until the email address is verified.
        deleted_at: Soft-delete marker.
        created_at: Timestamp when the user was created.
        updated_at: Timestamp when the user was last updated.
        last_login_at: Timestamp of last successful login.
    """

    __tablename__ = "external_users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="User ID (UUID)",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="User email address",
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Argon2 password hash (NULL disables password login)",
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Display name",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether the user has verified their email",
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Soft-delete timestamp",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp of last successful login",
    )

    __table_args__ = (
        Index(
            "uq_external_users_email_live",
            "email",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<ExternalUser(id={self.id}, email={self.email}, active={self.is_active})>"
