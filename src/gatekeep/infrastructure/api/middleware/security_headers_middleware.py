"""Security headers on every response.

Covers MIME sniffing, framing, referrer leakage and browser features. HSTS is
only sent in production, where the service is expected behind HTTPS.
"""

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from gatekeep.core.config import Settings


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    def __init__(
        self,
        app: ASGIApp,
        settings: Settings,
        csp_exempt_paths: frozenset[str] = frozenset(),
    ) -> None:
        super().__init__(app)
        self.settings = settings
        # Interactive API docs load scripts and styles from a CDN
        self.csp_exempt_paths = csp_exempt_paths

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        settings = self.settings
        if not settings.security_headers_enabled:
            return response

        headers = response.headers
        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "no-referrer"
        headers["Cross-Origin-Opener-Policy"] = "same-origin"
        headers["Permissions-Policy"] = settings.permissions_policy
        if request.url.path not in self.csp_exempt_paths:
            headers["Content-Security-Policy"] = settings.csp_policy
        if settings.is_production:
            headers["Strict-Transport-Security"] = (
                f"max-age={settings.hsts_max_age}; includeSubDomains"
            )
        return response
