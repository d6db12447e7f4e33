"""Error taxonomy for the credential and session lifecycle.

Every error carries a client-safe ``message`` and a stable ``code``. Messages
never reveal which credential was wrong or whether an account exists.
"""


class GatekeepError(Exception):
    """Base exception for all Gatekeep errors."""

    code = "error"
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(GatekeepError):
    """Business-rule failure in an authentication flow."""

    code = "auth_error"


class InvalidCredentialsError(AuthError):
    """Raised when email or password do not match a principal."""

    code = "invalid_credentials"
    default_message = "Invalid email or password"


class PrincipalExistsError(AuthError):
    """Raised when registering an email that is already taken."""

    code = "principal_exists"
    default_message = "An account with this email already exists"


class PrincipalInactiveError(AuthError):
    """Raised when an inactive or unverified principal tries to proceed."""

    code = "principal_inactive"
    default_message = "Account is not active"


class PrincipalNotFoundError(AuthError):
    """Raised when a token refers to a principal that no longer exists."""

    code = "principal_not_found"
    default_message = "Account not found"


class AlreadyVerifiedError(AuthError):
    """Raised when verifying an email that is already verified."""

    code = "already_verified"
    default_message = "Email is already verified"


class TokenInvalidError(AuthError):
    """Raised for a missing, malformed, badly signed or spent token."""

    code = "token_invalid"
    default_message = "Invalid or expired token"


class TokenRevokedError(TokenInvalidError):
    """Raised when a stored token has been revoked or already rotated.

    Subclasses TokenInvalidError so callers that only care about validity
    treat both the same way.
    """

    code = "token_revoked"
    default_message = "Invalid or expired token"


class TokenExpiredError(AuthError):
    """Raised when a stored token is past its expiry."""

    code = "token_expired"
    default_message = "Token has expired"


class EmailDeliveryError(GatekeepError):
    """Raised when an email that must be delivered could not be sent."""

    code = "email_delivery_failed"
    default_message = "Could not send email"


class InfrastructureError(GatekeepError):
    """Raised when the store fails; the operation did not take effect."""

    code = "infrastructure_error"
    default_message = "Service temporarily unavailable"


class InfrastructureTimeoutError(InfrastructureError):
    """Raised when a unit of work exceeds the configured store timeout."""

    code = "infrastructure_timeout"
    default_message = "Service temporarily unavailable"
