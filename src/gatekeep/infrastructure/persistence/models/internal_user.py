"""SQLAlchemy model for the internal_users table.

Internal users are platform staff. They are created by operators through the
CLI, never through self-registration.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from gatekeep.infrastructure.persistence.database import Base


class InternalUserModel(Base):
    """SQLAlchemy model for the internal_users table.

    Attributes:
        id: Primary key (UUID string).
        email: Staff email address (globally unique).
        password_hash: Argon2 hash, or NULL when password login is disabled.
        name: Optional display name.
        role: Free-text staff label. No policy is attached to it.
        is_active: Whether the staff user can log in.
        created_at: Timestamp when the user was created.
        updated_at: Timestamp when the user was last updated.
        last_login_at: Timestamp of last successful login.
    """

    __tablename__ = "internal_users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Staff user ID (UUID)",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Staff email address",
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
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="support",
        comment="Staff role label",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether the staff user can log in",
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

    def __repr__(self) -> str:
        return f"<InternalUser(id={self.id}, email={self.email}, role={self.role})>"
