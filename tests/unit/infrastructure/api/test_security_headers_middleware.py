"""Unit tests for the security headers middleware."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from gatekeep.core.config import Settings
from gatekeep.infrastructure.api.middleware import SecurityHeadersMiddleware


def create_test_app(**overrides) -> FastAPI:
    values = {"environment": "testing"}
    values.update(overrides)
    settings = Settings(_env_file=None, **values)

    app = FastAPI()
    app.add_middleware(
        SecurityHeadersMiddleware, settings=settings, csp_exempt_paths=frozenset({"/docs"})
    )

    @app.get("/test")
    async def test_endpoint():
        return {"message": "test"}

    @app.get("/docs")
    async def docs():
        return {"message": "docs"}

    return app


def test_headers_present():
    response = TestClient(create_test_app()).get("/test")

    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "no-referrer"
    csp = response.headers["Content-Security-Policy"]
    assert csp == "default-src 'none'; frame-ancestors 'none'"
    assert "geolocation=()" in response.headers["Permissions-Policy"]


def test_no_hsts_outside_production():
    response = TestClient(create_test_app()).get("/test")

    assert "Strict-Transport-Security" not in response.headers


def test_hsts_in_production():
    app = create_test_app(environment="production", hsts_max_age=600)

    response = TestClient(app).get("/test")

    assert response.headers["Strict-Transport-Security"] == "max-age=600; includeSubDomains"


def test_docs_are_exempt_from_csp():
    response = TestClient(create_test_app()).get("/docs")

    assert "Content-Security-Policy" not in response.headers
    assert response.headers["X-Frame-Options"] == "DENY"


def test_disabled():
    response = TestClient(create_test_app(security_headers_enabled=False)).get("/test")

    assert "X-Frame-Options" not in response.headers
