"""Opaque token generation and hashing.

Refresh, password reset and email verification tokens are random strings
handed to the client once. Only their SHA-256 digest is persisted, so a
leaked database row cannot be replayed.
"""

import hashlib
import secrets

DEFAULT_TOKEN_BYTES = 64
MIN_TOKEN_BYTES = 32


def generate_token(nbytes: int = DEFAULT_TOKEN_BYTES) -> str:
    """Generate a URL-safe random token.

    Args:
        nbytes: Bytes of randomness. At least 32 (256 bits).

    Returns:
        The raw token string.

    Raises:
        ValueError: If ``nbytes`` is below the minimum.
    """
    if nbytes < MIN_TOKEN_BYTES:
        raise ValueError(f"Tokens need at least {MIN_TOKEN_BYTES} bytes of entropy")
    return secrets.token_urlsafe(nbytes)


def hash_token(token: str) -> str:
    """Hash a token using SHA-256.

    The digest is deterministic so it can be used as a lookup key.

    Args:
        token: The raw token string.

    Returns:
        SHA-256 hex digest of the token.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
