"""Authentication infrastructure components.

This module provides signing key material, JWT access tokens, password
hashing and opaque token utilities.
"""

from gatekeep.infrastructure.auth.jwt_service import JWTService
from gatekeep.infrastructure.auth.key_material import KeyMaterial, KeyMaterialError
from gatekeep.infrastructure.auth.opaque_token import generate_token, hash_token
from gatekeep.infrastructure.auth.password_hasher import PasswordHasher

__all__ = [
    "JWTService",
    "KeyMaterial",
    "KeyMaterialError",
    "PasswordHasher",
    "generate_token",
    "hash_token",
]
