"""Rate limiting for the auth endpoints.

Login, registration and password reset are open to anyone, so requests under
the auth prefix are limited per client address.
"""

import math

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from gatekeep.core.config import Settings
from gatekeep.core.logging import get_logger
from gatekeep.infrastructure.api.middleware.rate_limit_storage import RateLimitStorage

logger = get_logger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Answer 429 once a client exceeds its budget under ``path_prefix``."""

    def __init__(
        self,
        app: ASGIApp,
        settings: Settings,
        path_prefix: str,
        storage: RateLimitStorage | None = None,
    ) -> None:
        super().__init__(app)
        self.settings = settings
        self.path_prefix = path_prefix.rstrip("/")
        self.storage = storage or RateLimitStorage()

    def applies_to(self, path: str) -> bool:
        return path == self.path_prefix or path.startswith(self.path_prefix + "/")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        settings = self.settings
        if not settings.rate_limit_enabled or not self.applies_to(request.url.path):
            return await call_next(request)

        key = f"ip:{request.client.host}" if request.client else "ip:unknown"
        limit = settings.rate_limit_per_minute
        decision = self.storage.consume(key, limit, burst=settings.rate_limit_burst)

        if not decision.allowed:
            retry_after = max(1, math.ceil(decision.retry_after))
            logger.warning(
                "Rate limit exceeded",
                key=key,
                path=request.url.path,
                limit=limit,
                retry_after=retry_after,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limited",
                    "message": f"Too many requests. Try again in {retry_after} seconds.",
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
