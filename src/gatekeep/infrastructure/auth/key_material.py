"""Signing key material.

Loads the RSA keypair used to sign and verify access tokens. The keypair is
loaded once at startup and only read afterwards, so one instance can be
shared by every request without locking.
"""

from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from gatekeep.core.logging import get_logger

logger = get_logger(__name__)

MIN_KEY_SIZE = 2048


class KeyMaterialError(Exception):
    """Raised when the signing keypair is missing or unusable."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def _normalize_pem(pem: str | bytes) -> bytes:
    """Accept PEM text with literal ``\\n`` escapes, as env files often carry."""
    if isinstance(pem, bytes):
        return pem
    return pem.replace("\\n", "\n").strip().encode("utf-8")


class KeyMaterial:
    """An RSA private/public keypair with sign and verify primitives."""

    def __init__(
        self, private_key: rsa.RSAPrivateKey, public_key: rsa.RSAPublicKey
    ) -> None:
        """Initialize with already-loaded keys.

        Args:
            private_key: Key used to sign.
            public_key: Key used to verify. Must belong to ``private_key``.

        Raises:
            KeyMaterialError: If the keys are not RSA, too small, or mismatched.
        """
        if not isinstance(private_key, rsa.RSAPrivateKey) or not isinstance(
            public_key, rsa.RSAPublicKey
        ):
            raise KeyMaterialError("Signing keys must be an RSA keypair")
        if private_key.key_size < MIN_KEY_SIZE:
            raise KeyMaterialError(f"RSA keys must be at least {MIN_KEY_SIZE} bits")
        if private_key.public_key().public_numbers() != public_key.public_numbers():
            raise KeyMaterialError("Public key does not match private key")
        self._private_key = private_key
        self._public_key = public_key

    @property
    def private_key(self) -> rsa.RSAPrivateKey:
        return self._private_key

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self._public_key

    @classmethod
    def from_pem(cls, private_pem: str | bytes, public_pem: str | bytes) -> "KeyMaterial":
        """Load a keypair from PEM-encoded strings.

        Raises:
            KeyMaterialError: If either PEM cannot be parsed.
        """
        try:
            private_key = serialization.load_pem_private_key(
                _normalize_pem(private_pem), password=None
            )
            public_key = serialization.load_pem_public_key(_normalize_pem(public_pem))
        except (ValueError, TypeError) as e:
            raise KeyMaterialError(f"Could not parse PEM key: {e}") from e
        return cls(private_key, public_key)

    @classmethod
    def from_settings(cls, settings) -> "KeyMaterial":
        """Load the keypair named by settings.

        Inline PEM values take precedence over file paths.

        Raises:
            KeyMaterialError: If no keypair is configured or it cannot be read.
        """
        private_pem = settings.jwt_private_key_pem
        public_pem = settings.jwt_public_key_pem

        try:
            if private_pem is None and settings.jwt_private_key_path:
                private_pem = Path(settings.jwt_private_key_path).read_bytes()
            if public_pem is None and settings.jwt_public_key_path:
                public_pem = Path(settings.jwt_public_key_path).read_bytes()
        except OSError as e:
            raise KeyMaterialError(f"Could not read key file: {e}") from e

        if not private_pem or not public_pem:
            raise KeyMaterialError(
                "No signing keypair configured. Set GATEKEEP_JWT_PRIVATE_KEY_PEM and "
                "GATEKEEP_JWT_PUBLIC_KEY_PEM, or the matching *_PATH settings."
            )

        material = cls.from_pem(private_pem, public_pem)
        logger.info("Signing keypair loaded", key_size=material.private_key.key_size)
        return material

    @classmethod
    def generate(cls, key_size: int = 2048) -> "KeyMaterial":
        """Generate a fresh keypair (CLI and tests)."""
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        return cls(private_key, private_key.public_key())

    def private_pem(self) -> str:
        """Serialize the private key as unencrypted PKCS#8 PEM."""
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")

    def public_pem(self) -> str:
        """Serialize the public key as SubjectPublicKeyInfo PEM."""
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    def sign(self, data: bytes) -> bytes:
        """Sign data with RSASSA-PKCS1-v1_5 over SHA-256."""
        return self._private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())

    def verify(self, data: bytes, signature: bytes) -> bool:
        """Verify a signature produced by :meth:`sign`."""
        try:
            self._public_key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())
            return True
        except InvalidSignature:
            return False
