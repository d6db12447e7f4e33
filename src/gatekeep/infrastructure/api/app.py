"""FastAPI application factory and configuration.

This module provides the application factory function for creating
and configuring the FastAPI application with all middleware, routes,
and lifecycle handlers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gatekeep.core.config import Settings, get_settings
from gatekeep.core.logging import configure_logging, correlation_scope, get_logger
from gatekeep.domain.errors import (
    AlreadyVerifiedError,
    EmailDeliveryError,
    GatekeepError,
    InfrastructureError,
    InvalidCredentialsError,
    PrincipalExistsError,
    PrincipalInactiveError,
    PrincipalNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
)
from gatekeep.infrastructure.api.middleware import RateLimitMiddleware, SecurityHeadersMiddleware
from gatekeep.infrastructure.auth import JWTService, KeyMaterial, PasswordHasher
from gatekeep.infrastructure.persistence.database import DatabaseManager, init_database
from gatekeep.infrastructure.services.email_service import EmailService

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# Checked in order; the first matching class wins.
ERROR_STATUS_CODES: list[tuple[type[GatekeepError], int]] = [
    (InvalidCredentialsError, 401),
    (TokenInvalidError, 401),
    (TokenExpiredError, 401),
    (PrincipalInactiveError, 403),
    (PrincipalNotFoundError, 404),
    (PrincipalExistsError, 409),
    (AlreadyVerifiedError, 409),
    (EmailDeliveryError, 502),
    (InfrastructureError, 503),
]


def status_code_for(exc: GatekeepError) -> int:
    """Return the HTTP status code for a domain error."""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def init_app_state(app: FastAPI, settings: Settings) -> None:
    """Create the process-wide collaborators that are not set yet.

    Anything already present on ``app.state`` is kept, which lets tests
    supply their own database, keys or email service.

    Raises:
        KeyMaterialError: If the signing keypair is missing or invalid.
    """
    state = app.state
    if getattr(state, "db", None) is None:
        state.db = DatabaseManager(settings)
    if getattr(state, "jwt_service", None) is None:
        state.jwt_service = JWTService.from_settings(settings, KeyMaterial.from_settings(settings))
    if getattr(state, "password_hasher", None) is None:
        state.password_hasher = PasswordHasher.from_settings(settings)
    if getattr(state, "email_service", None) is None:
        state.email_service = EmailService.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the application.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control is yielded to the application during its lifetime.
    """
    settings: Settings = app.state.settings

    # Startup
    configure_logging(settings)
    logger.info(
        "Starting Gatekeep",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    init_app_state(app, settings)

    try:
        await init_database(app.state.db)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("Shutting down Gatekeep")
    await app.state.db.disconnect()
    logger.info("Database connection closed")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    This function creates the FastAPI application with all middleware,
    routes, and configuration.

    Args:
        settings: Optional settings; loaded from the environment if omitted.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Credential and session lifecycle service",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Added innermost first, so 429 responses still carry security and CORS headers
    app.add_middleware(
        RateLimitMiddleware,
        settings=settings,
        path_prefix=f"{settings.api_prefix}/auth",
    )
    app.add_middleware(
        SecurityHeadersMiddleware,
        settings=settings,
        csp_exempt_paths=frozenset({"/docs", "/docs/oauth2-redirect", "/redoc"}),
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    register_health_check(app)
    register_routes(app)
    register_exception_handlers(app)
    register_middleware(app)

    return app


def register_health_check(app: FastAPI) -> None:
    """Register health check endpoints.

    Args:
        app: FastAPI application instance.
    """
    settings: Settings = app.state.settings

    @app.get("/health", tags=["health"])
    async def health_check():
        """Basic health check endpoint.

        Returns 200 if the service is running. Does not check
        database connectivity or other dependencies.
        """
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
        }

    @app.get("/ready", tags=["health"])
    async def readiness_check(request: Request):
        """Readiness check endpoint.

        Returns 200 if the service is ready to accept requests,
        including database connectivity check.
        """
        db: DatabaseManager | None = getattr(request.app.state, "db", None)
        db_healthy = db is not None and await db.check_connection()

        if db_healthy:
            return {
                "status": "ready",
                "service": settings.app_name,
                "version": settings.app_version,
                "database": "connected",
            }
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "service": settings.app_name,
                "database": "disconnected",
            },
        )

    @app.get("/live", tags=["health"])
    async def liveness_check():
        """Liveness check endpoint."""
        return {
            "status": "alive",
            "service": settings.app_name,
            "version": settings.app_version,
        }


def register_routes(app: FastAPI) -> None:
    """Register API routes.

    Args:
        app: FastAPI application instance.
    """
    from gatekeep.infrastructure.api.routes import auth_router

    settings: Settings = app.state.settings

    app.include_router(auth_router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])

    @app.get(settings.api_prefix, tags=["root"])
    async def api_root():
        """API root endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "api_version": "v1",
        }


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers.

    Args:
        app: FastAPI application instance.
    """
    settings: Settings = app.state.settings

    @app.exception_handler(GatekeepError)
    async def gatekeep_error_handler(request: Request, exc: GatekeepError):
        """Turn a domain error into its status code and a safe message."""
        status_code = status_code_for(exc)
        log = logger.warning if status_code >= 500 else logger.info
        log(
            "Request failed",
            path=str(request.url.path),
            method=request.method,
            status_code=status_code,
            error_code=exc.code,
        )
        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.code, "message": exc.message},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            path=str(request.url),
            method=request.method,
            error=str(exc),
            exc_type=type(exc).__name__,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": str(exc) if settings.debug else "An unexpected error occurred",
            },
        )


def register_middleware(app: FastAPI) -> None:
    """Register custom middleware.

    Args:
        app: FastAPI application instance.
    """

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Log each request under its correlation ID and echo the ID back."""
        with correlation_scope(request.headers.get(CORRELATION_HEADER)) as correlation_id:
            logger.info("Request started", method=request.method, path=request.url.path)
            response = await call_next(request)
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response


# Create the application instance
app = create_app()
