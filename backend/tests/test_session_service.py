from __future__ import annotations

from types import SimpleNamespace

import pytest

from fitcomp.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from fitcomp.core.security import hash_password
from fitcomp.models import AuditAction, UserRole
from fitcomp.repositories.user_repository import user_repository
from fitcomp.services.audit_service import audit_service
from fitcomp.services.session_service import session_service


def _user(user_id: int, email: str, role: UserRole, *, is_active: bool = True, hashed_password=None):
    return SimpleNamespace(
        id=user_id,
        email=email,
        role=role,
        is_active=is_active,
        hashed_password=hashed_password,
    )


@pytest.fixture
def audit_calls(monkeypatch):
    calls: list[dict] = []

    async def _log_action(db, **kwargs):
        calls.append(kwargs)

    monkeypatch.setattr(audit_service, "log_action", _log_action)
    return calls


@pytest.fixture
def users(monkeypatch):
    registry = [
        _user(1, "admin@example.com", UserRole.administrator, hashed_password=hash_password("s3cret-pass")),
        _user(2, "coach@example.com", UserRole.staff),
        _user(3, "gone@example.com", UserRole.member, is_active=False),
        _user(4, "off-admin@example.com", UserRole.administrator, is_active=False),
    ]

    async def _get_by_id(db, user_id):
        return next((u for u in registry if u.id == user_id), None)

    async def _get_by_email(db, email):
        return next((u for u in registry if u.email == email.strip().lower()), None)

    monkeypatch.setattr(user_repository, "get_by_id", _get_by_id)
    monkeypatch.setattr(user_repository, "get_by_email", _get_by_email)
    return registry


@pytest.mark.asyncio
async def test_unknown_email_returns_none_without_audit(users, audit_calls) -> None:
    assert await session_service.authenticate(None, "nobody@example.com", "x") is None
    assert audit_calls == []


@pytest.mark.asyncio
async def test_inactive_login_is_audited(users, audit_calls) -> None:
    result = await session_service.authenticate(None, "gone@example.com", "x", ip_address="10.0.0.1")

    assert result is None
    assert len(audit_calls) == 1
    assert audit_calls[0]["action"] is AuditAction.login
    assert audit_calls[0]["resource_id"] == 3
    assert audit_calls[0]["details"] == "Login attempt failed: account is inactive"
    assert audit_calls[0]["ip_address"] == "10.0.0.1"


@pytest.mark.asyncio
async def test_wrong_password_is_rejected_and_audited(users, audit_calls) -> None:
    assert await session_service.authenticate(None, "admin@example.com", "wrong") is None
    assert audit_calls[0]["details"] == "Login attempt failed: invalid credentials"


@pytest.mark.asyncio
async def test_successful_logins(users, audit_calls) -> None:
    admin = await session_service.authenticate(None, "Admin@Example.com", "s3cret-pass")
    assert admin.user_id == 1
    assert admin.role is UserRole.administrator
    assert admin.impersonator_id is None

    # no local hash: accepted on the external provider's word
    staff = await session_service.authenticate(None, "coach@example.com", "anything")
    assert staff.role is UserRole.staff

    assert [call["details"] for call in audit_calls] == ["Successful login", "Successful login"]


@pytest.mark.asyncio
async def test_impersonation_returns_target_context(users, audit_calls) -> None:
    context = await session_service.impersonate(None, 2, 1)

    assert context.user_id == 2
    assert context.role is UserRole.staff
    assert context.impersonator_id == 1
    assert len(audit_calls) == 1
    call = audit_calls[0]
    assert call["action"] is AuditAction.impersonate
    assert call["actor_id"] == 1
    assert call["resource_id"] == 2
    assert "admin@example.com" in call["details"]
    assert "coach@example.com" in call["details"]


@pytest.mark.asyncio
async def test_impersonation_failures(users, audit_calls) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await session_service.impersonate(None, 2, 99)
    assert exc_info.value.detail["message"] == "Administrator user not found"

    with pytest.raises(ForbiddenError):
        await session_service.impersonate(None, 1, 2)

    with pytest.raises(InvalidStateError) as exc_info:
        await session_service.impersonate(None, 2, 4)
    assert exc_info.value.detail["message"] == "Administrator account is not active"

    with pytest.raises(NotFoundError) as exc_info:
        await session_service.impersonate(None, 99, 1)
    assert exc_info.value.detail["message"] == "Target user not found"

    with pytest.raises(InvalidStateError) as exc_info:
        await session_service.impersonate(None, 3, 1)
    assert exc_info.value.detail["message"] == "Target user account is not active"

    assert audit_calls == []
