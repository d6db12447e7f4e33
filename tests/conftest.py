"""Pytest configuration for all tests."""

import re
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.core.config import Settings
from gatekeep.domain.services import (
    AuditService,
    AuthService,
    PasswordResetService,
    TokenService,
)
from gatekeep.infrastructure.auth import JWTService, KeyMaterial, PasswordHasher
from gatekeep.infrastructure.persistence.database import DatabaseManager
from gatekeep.infrastructure.persistence.models import ExternalUserModel, InternalUserModel
from gatekeep.infrastructure.persistence.repositories import (
    AuditLogRepository,
    EmailVerificationRepository,
    ExternalUserRepository,
    InternalUserRepository,
    PasswordResetRepository,
    RefreshTokenRepository,
    SessionRepository,
)
from gatekeep.infrastructure.persistence.timestamps import utcnow
from gatekeep.infrastructure.services.email.email_provider import EmailProvider
from gatekeep.infrastructure.services.email_service import EmailService

TOKEN_IN_LINK = re.compile(r"token=([A-Za-z0-9_-]+)")

TEST_PASSWORD = "Password123!"


@dataclass
class SentEmail:
    to: str
    subject: str
    html_body: str
    text_body: str

    @property
    def token(self) -> str:
        match = TOKEN_IN_LINK.search(self.text_body)
        assert match is not None, "no token link in email"
        return match.group(1)


class RecordingProvider(EmailProvider):
    """Email provider that keeps messages in memory."""

    name = "recording"

    def __init__(self) -> None:
        self.sent: list[SentEmail] = []
        self.fail = False

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        from_email: str,
        from_name: str | None = None,
        reply_to: str | None = None,
    ) -> None:
        if self.fail:
            raise ConnectionError("mail server unreachable")
        self.sent.append(SentEmail(to, subject, html_body, text_body))

    async def test_connection(self) -> tuple[bool, str | None]:
        return True, None

    def last_to(self, to: str) -> SentEmail:
        for message in reversed(self.sent):
            if message.to == to:
                return message
        raise AssertionError(f"no email sent to {to}")


@pytest.fixture(scope="session")
def key_material() -> KeyMaterial:
    """One RSA keypair for the whole run; generating keys is slow."""
    return KeyMaterial.generate()


@pytest.fixture(scope="session")
def password_hasher() -> PasswordHasher:
    return PasswordHasher(time_cost=1)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="testing",
        database_url="sqlite+aiosqlite:///:memory:",
        password_hash_time_cost=1,
        email_provider="console",
        app_url="http://app.test",
        rate_limit_enabled=False,
    )


@pytest.fixture
def jwt_service(key_material: KeyMaterial, settings: Settings) -> JWTService:
    return JWTService.from_settings(settings, key_material)


@pytest.fixture
def outbox() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture
def email_service(outbox: RecordingProvider, settings: Settings) -> EmailService:
    return EmailService(
        provider=outbox,
        from_email="no-reply@app.test",
        app_name="Gatekeep",
        app_url=settings.app_url,
    )


@pytest_asyncio.fixture
async def db(settings: Settings) -> AsyncGenerator[DatabaseManager, None]:
    """In-memory SQLite database with all tables created."""
    manager = DatabaseManager(settings)
    await manager.create_tables()
    yield manager
    await manager.disconnect()


@pytest_asyncio.fixture
async def db_session(db: DatabaseManager) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with db.session() as session:
        yield session
        await session.rollback()


def build_token_service(
    session: AsyncSession, jwt_service: JWTService, settings: Settings
) -> TokenService:
    return TokenService(
        jwt_service=jwt_service,
        refresh_token_repo=RefreshTokenRepository(session),
        session_repo=SessionRepository(session),
        external_user_repo=ExternalUserRepository(session),
        internal_user_repo=InternalUserRepository(session),
        refresh_token_lifetime=settings.refresh_token_lifetime,
    )


def build_auth_service(
    session: AsyncSession,
    jwt_service: JWTService,
    password_hasher: PasswordHasher,
    email_service: EmailService,
    settings: Settings,
) -> AuthService:
    return AuthService(
        session=session,
        external_user_repo=ExternalUserRepository(session),
        internal_user_repo=InternalUserRepository(session),
        session_repo=SessionRepository(session),
        verification_repo=EmailVerificationRepository(session),
        token_service=build_token_service(session, jwt_service, settings),
        password_hasher=password_hasher,
        audit_service=AuditService(AuditLogRepository(session)),
        email_service=email_service,
        verification_lifetime=settings.email_verification_lifetime,
        store_timeout=settings.store_timeout_seconds,
    )


def build_reset_service(
    session: AsyncSession,
    jwt_service: JWTService,
    password_hasher: PasswordHasher,
    email_service: EmailService,
    settings: Settings,
) -> PasswordResetService:
    return PasswordResetService(
        session=session,
        user_repo=ExternalUserRepository(session),
        reset_repo=PasswordResetRepository(session),
        session_repo=SessionRepository(session),
        token_service=build_token_service(session, jwt_service, settings),
        password_hasher=password_hasher,
        audit_service=AuditService(AuditLogRepository(session)),
        email_service=email_service,
        reset_lifetime=settings.password_reset_lifetime,
        store_timeout=settings.store_timeout_seconds,
    )


@pytest.fixture
def user_password() -> str:
    return TEST_PASSWORD


@pytest.fixture
def token_service(db_session, jwt_service, settings) -> TokenService:
    return build_token_service(db_session, jwt_service, settings)


@pytest.fixture
def make_auth_service(jwt_service, password_hasher, email_service, settings):
    """Build an AuthService bound to any session."""

    def factory(session: AsyncSession) -> AuthService:
        return build_auth_service(session, jwt_service, password_hasher, email_service, settings)

    return factory


@pytest.fixture
def make_reset_service(jwt_service, password_hasher, email_service, settings):
    """Build a PasswordResetService bound to any session."""

    def factory(session: AsyncSession) -> PasswordResetService:
        return build_reset_service(session, jwt_service, password_hasher, email_service, settings)

    return factory


@pytest.fixture
def auth_service(db_session, jwt_service, password_hasher, email_service, settings) -> AuthService:
    return build_auth_service(db_session, jwt_service, password_hasher, email_service, settings)


@pytest.fixture
def reset_service(
    db_session, jwt_service, password_hasher, email_service, settings
) -> PasswordResetService:
    return build_reset_service(db_session, jwt_service, password_hasher, email_service, settings)


@pytest_asyncio.fixture
async def active_user(db_session: AsyncSession, password_hasher: PasswordHasher) -> ExternalUserModel:
    """A verified external user whose password is TEST_PASSWORD."""
    now = utcnow()
    user = ExternalUserModel(
        id=str(uuid.uuid4()),
        email="alice@example.com",
        password_hash=password_hasher.hash(TEST_PASSWORD),
        name="Alice",
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def staff_user(db_session: AsyncSession, password_hasher: PasswordHasher) -> InternalUserModel:
    """An active internal user whose password is TEST_PASSWORD."""
    now = utcnow()
    user = InternalUserModel(
        id=str(uuid.uuid4()),
        email="ops@example.org",
        password_hash=password_hasher.hash(TEST_PASSWORD),
        name="Ops",
        role="support",
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def client(
    db: DatabaseManager,
    settings: Settings,
    jwt_service: JWTService,
    password_hasher: PasswordHasher,
    email_service: EmailService,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for an app wired to the test database and outbox."""
    from gatekeep.infrastructure.api.app import create_app

    app = create_app(settings)
    app.state.db = db
    app.state.jwt_service = jwt_service
    app.state.password_hasher = password_hasher
    app.state.email_service = email_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
