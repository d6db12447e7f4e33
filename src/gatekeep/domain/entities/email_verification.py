"""Email verification token entity.

Verification links carry a single-use opaque token whose hash is stored,
the same way password reset links do.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import uuid

from gatekeep.infrastructure.auth.opaque_token import generate_token, hash_token


@dataclass
class EmailVerificationToken:
    """Email verification token entity.

    Attributes:
        id: Unique identifier (UUID string).
        external_user_id: ID of the external user this token is for.
        email: Email address being verified.
        token_hash: SHA-256 hash of the verification token.
        expires_at: When the token expires.
        created_at: When the token was created.
        used_at: When the token was used (null if not used).
    """

    external_user_id: str
    email: str
    token_hash: str
    expires_at: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    used_at: datetime | None = None

    @classmethod
    def generate(
        cls, external_user_id: str, email: str, lifetime: timedelta = timedelta(hours=24)
    ) -> tuple["EmailVerificationToken", str]:
        """Generate a new verification token and its entity.

        Returns:
            A tuple of (EmailVerificationToken entity, raw_token_string).
        """
        raw_token = generate_token()
        entity = cls(
            external_user_id=external_user_id,
            email=email,
            token_hash=hash_token(raw_token),
            expires_at=datetime.now(timezone.utc) + lifetime,
        )
        return entity, raw_token

    def is_used(self) -> bool:
        return self.used_at is not None

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now
