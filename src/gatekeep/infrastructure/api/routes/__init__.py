"""API Routes for Gatekeep."""

from gatekeep.infrastructure.api.routes.auth_router import router as auth_router

__all__ = [
    "auth_router",
]
