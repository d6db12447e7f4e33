"""Password reset token entity.

Stores information about password reset tokens sent to external users.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import uuid

from gatekeep.infrastructure.auth.opaque_token import generate_token, hash_token


@dataclass
class PasswordResetToken:
    """Password reset token entity.

    Attributes:
        id: Unique identifier (UUID string).
        external_user_id: ID of the external user this token is for.
        token_hash: SHA-256 hash of the reset token.
        expires_at: When the token expires.
        created_at: When the token was created.
        used_at: When the token was used (null if not used).
    """

    external_user_id: str
    token_hash: str
    expires_at: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    used_at: datetime | None = None

    @classmethod
    def generate(
        cls, external_user_id: str, lifetime: timedelta = timedelta(minutes=30)
    ) -> tuple["PasswordResetToken", str]:
        """Generate a new password reset token and its entity.

        Args:
            external_user_id: The ID of the user.
            lifetime: Token lifetime (default 30 minutes).

        Returns:
            A tuple of (PasswordResetToken entity, raw_token_string).
        """
        raw_token = generate_token()
        entity = cls(
            external_user_id=external_user_id,
            token_hash=hash_token(raw_token),
            expires_at=datetime.now(timezone.utc) + lifetime,
        )
        return entity, raw_token

    def is_used(self) -> bool:
        return self.used_at is not None

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now

    def is_valid(self) -> bool:
        """Check if the token is valid (not expired and not used)."""
        return not self.is_used() and not self.is_expired()
