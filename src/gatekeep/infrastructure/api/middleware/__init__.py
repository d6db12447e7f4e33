"""HTTP middleware for the auth API."""

from gatekeep.infrastructure.api.middleware.rate_limit_middleware import RateLimitMiddleware
from gatekeep.infrastructure.api.middleware.rate_limit_storage import RateLimitStorage
from gatekeep.infrastructure.api.middleware.security_headers_middleware import (
    SecurityHeadersMiddleware,
)

__all__ = ["RateLimitMiddleware", "RateLimitStorage", "SecurityHeadersMiddleware"]
