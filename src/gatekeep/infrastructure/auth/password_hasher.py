"""Password hashing utility using Argon2.

Provides secure password hashing and verification using the Argon2id algorithm,
which is the winner of the Password Hashing Competition and recommended by OWASP.
"""

import asyncio

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError


class PasswordHasher:
    """Argon2id hasher with an operator-configured cost.

    Hashing is CPU-bound, so the async variants run in a worker thread to
    keep the event loop responsive.
    """

    def __init__(self, time_cost: int = 3) -> None:
        """Initialize the hasher.

        Args:
            time_cost: Argon2 iteration count.
        """
        self._hasher = Argon2Hasher(time_cost=time_cost)
        # Verified against when no principal matches, so that a miss costs
        # the same as a wrong password.
        self.dummy_hash = self._hasher.hash("gatekeep-dummy-password")

    @classmethod
    def from_settings(cls, settings) -> "PasswordHasher":
        return cls(time_cost=settings.password_hash_time_cost)

    def hash(self, password: str) -> str:
        """Hash a password using Argon2id.

        Example:
            >>> hasher = PasswordHasher()
            >>> hasher.hash("SecureP@ss123!").startswith("$argon2id$")
            True
        """
        return self._hasher.hash(password)

    def verify(self, password: str, hashed: str | None) -> bool:
        """Verify a password against a hash.

        Uses constant-time comparison to prevent timing attacks. A null hash
        (no password login for this principal) is checked against the dummy
        hash and always fails.

        Returns:
            True if the password matches, False otherwise.
        """
        if hashed is None:
            self._verify_quietly(self.dummy_hash, password)
            return False
        return self._verify_quietly(hashed, password)

    def _verify_quietly(self, hashed: str, password: str) -> bool:
        try:
            return self._hasher.verify(hashed, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, hashed: str) -> bool:
        """Check if a password hash was made with outdated parameters.

        This should be called after successful password verification.
        """
        return self._hasher.check_needs_rehash(hashed)

    async def hash_async(self, password: str) -> str:
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, password: str, hashed: str | None) -> bool:
        return await asyncio.to_thread(self.verify, password, hashed)
