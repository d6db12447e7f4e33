"""Unit tests for AuditService."""

from unittest.mock import AsyncMock

import pytest

from gatekeep.core.logging import bind_correlation_id, clear_context
from gatekeep.domain.entities.audit_log import AuditAction, AuditLog
from gatekeep.domain.entities.principal import PrincipalKind, PrincipalRef
from gatekeep.domain.services import AuditService
from gatekeep.infrastructure.persistence.repositories import AuditLogRepository


@pytest.fixture
def actor() -> PrincipalRef:
    return PrincipalRef(kind=PrincipalKind.INTERNAL, id="staff-1")


@pytest.mark.asyncio
async def test_record_builds_entry(actor):
    repository = AsyncMock()
    repository.create.side_effect = lambda entry: entry
    service = AuditService(repository)

    stored = await service.record(
        AuditAction.LOGIN,
        actor,
        organization_id="org-1",
        ip="10.0.0.1",
        user_agent="pytest",
        details={"session_id": "s-1"},
    )

    entry: AuditLog = repository.create.call_args.args[0]
    assert stored is entry
    assert entry.internal_user_id == "staff-1"
    assert entry.external_user_id is None
    assert entry.organization_id == "org-1"
    assert entry.details == {"session_id": "s-1"}


@pytest.mark.asyncio
async def test_record_without_actor():
    repository = AsyncMock()
    repository.create.side_effect = lambda entry: entry

    stored = await AuditService(repository).record(AuditAction.PASSWORD_RESET_REQUEST)

    assert stored.actor is None


@pytest.mark.asyncio
async def test_record_carries_correlation_id(db_session, actor):
    service = AuditService(AuditLogRepository(db_session))
    bind_correlation_id("req-123")
    try:
        stored = await service.record(AuditAction.LOGOUT, actor)
    finally:
        clear_context()

    assert stored.request_id == "req-123"
    assert stored.checksum is not None
