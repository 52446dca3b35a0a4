from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

import pytest

from fitcomp.core.exceptions import (
    ForbiddenError,
    InvalidDateRangeError,
    InvalidReferenceError,
    NotFoundError,
)
from fitcomp.models import AuditAction, CompetitionStatus, DataEntryMethod, UserRole
from fitcomp.repositories.competition_repository import competition_repository
from fitcomp.repositories.user_repository import user_repository
from fitcomp.schemas.competitions import CompetitionCreateRequest, CompetitionUpdateRequest
from fitcomp.services.audit_service import audit_service
from fitcomp.services.competition_service import competition_service


class _DbStub:
    def __init__(self):
        self.flushes = 0

    async def flush(self):
        self.flushes += 1


def _user(user_id: int, role: UserRole, *, is_active: bool = True):
    return SimpleNamespace(id=user_id, role=role, is_active=is_active, email=f"u{user_id}@example.com")


def _competition(**overrides):
    data = {
        "id": 10,
        "name": "Squat Test",
        "description": None,
        "type": "squats",
        "data_entry_method": DataEntryMethod.staff_only,
        "status": CompetitionStatus.active,
        "start_date": datetime(2024, 1, 1),
        "end_date": datetime(2024, 1, 31),
        "created_by": 2,
        "assigned_to": 2,
        "updated_at": None,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


@pytest.fixture
def audit_calls(monkeypatch):
    calls: list[dict] = []

    async def _log_action(db, **kwargs):
        calls.append(kwargs)
        return SimpleNamespace(**kwargs)

    monkeypatch.setattr(audit_service, "log_action", _log_action)
    return calls


@pytest.fixture
def users(monkeypatch):
    registry = {
        1: _user(1, UserRole.administrator),
        2: _user(2, UserRole.staff),
        3: _user(3, UserRole.staff),
        5: _user(5, UserRole.member),
        7: _user(7, UserRole.staff, is_active=False),
    }

    async def _get_by_id(db, user_id):
        return registry.get(user_id)

    async def _get_active(db, user_id):
        user = registry.get(user_id)
        return user if user and user.is_active else None

    monkeypatch.setattr(user_repository, "get_by_id", _get_by_id)
    monkeypatch.setattr(user_repository, "get_active", _get_active)
    return registry


def _patch_competition(monkeypatch, competition):
    async def _get_by_id(db, competition_id, *, for_update=False):
        return competition if competition and competition.id == competition_id else None

    monkeypatch.setattr(competition_repository, "get_by_id", _get_by_id)


@pytest.mark.asyncio
@pytest.mark.parametrize("end_day", [1, 0])
async def test_create_rejects_non_increasing_dates(users, audit_calls, end_day) -> None:
    payload = CompetitionCreateRequest(
        name="Bad",
        type="squats",
        data_entry_method="staff_only",
        start_date=datetime(2024, 1, 2),
        end_date=datetime(2024, 1, 1 + end_day),
    )

    with pytest.raises(InvalidDateRangeError) as exc_info:
        await competition_service.create(_DbStub(), payload, 2)

    assert exc_info.value.status_code == 422
    assert exc_info.value.detail["code"] == "invalid_date_range"
    assert audit_calls == []


@pytest.mark.asyncio
async def test_create_auto_assigns_creator_and_audits(monkeypatch, users, audit_calls) -> None:
    created: dict = {}

    async def _create_competition(db, **kwargs):
        created.update(kwargs)
        return _competition(id=42, status=CompetitionStatus.active, **kwargs)

    monkeypatch.setattr(competition_repository, "create_competition", _create_competition)
    payload = CompetitionCreateRequest(
        name="  Squat Test ",
        type="squats",
        data_entry_method="staff_only",
        start_date=datetime(2024, 1, 1),
        end_date=datetime(2024, 1, 31),
    )

    competition = await competition_service.create(_DbStub(), payload, 2)

    assert competition.assigned_to == 2
    assert competition.created_by == 2
    assert competition.status is CompetitionStatus.active
    assert created["name"] == "Squat Test"
    assert len(audit_calls) == 1
    assert audit_calls[0]["action"] is AuditAction.create
    assert audit_calls[0]["resource_type"] == "competition"
    assert audit_calls[0]["resource_id"] == 42
    assert audit_calls[0]["actor_id"] == 2


@pytest.mark.asyncio
async def test_create_rejects_inactive_assignee(users, audit_calls) -> None:
    payload = CompetitionCreateRequest(
        name="Plank",
        type="plank_hold",
        data_entry_method="user_entry",
        start_date=datetime(2024, 1, 1),
        end_date=datetime(2024, 1, 31),
        assigned_to=7,
    )

    with pytest.raises(InvalidReferenceError):
        await competition_service.create(_DbStub(), payload, 1)
    assert audit_calls == []


@pytest.mark.asyncio
async def test_member_cannot_create(users, audit_calls) -> None:
    payload = CompetitionCreateRequest(
        name="Plank",
        type="plank_hold",
        data_entry_method="user_entry",
        start_date=datetime(2024, 1, 1),
        end_date=datetime(2024, 1, 31),
    )

    with pytest.raises(ForbiddenError):
        await competition_service.create(_DbStub(), payload, 5)


@pytest.mark.asyncio
async def test_staff_update_of_foreign_competition_is_forbidden(monkeypatch, users, audit_calls) -> None:
    competition = _competition(created_by=1, assigned_to=3)
    _patch_competition(monkeypatch, competition)

    with pytest.raises(ForbiddenError) as exc_info:
        await competition_service.update(
            _DbStub(), CompetitionUpdateRequest(id=10, name="Renamed"), 2, UserRole.staff
        )

    assert "created or are assigned to" in exc_info.value.detail["message"]
    assert competition.name == "Squat Test"
    assert audit_calls == []


@pytest.mark.asyncio
async def test_staff_update_of_own_competition_succeeds(monkeypatch, users, audit_calls) -> None:
    competition = _competition(created_by=2, assigned_to=3)
    _patch_competition(monkeypatch, competition)
    db = _DbStub()

    updated = await competition_service.update(
        db, CompetitionUpdateRequest(id=10, name="Renamed", status="inactive"), 2, UserRole.staff
    )

    assert updated.name == "Renamed"
    assert updated.status is CompetitionStatus.inactive
    assert updated.updated_at is not None
    assert db.flushes == 1
    assert [call["action"] for call in audit_calls] == [AuditAction.update]


@pytest.mark.asyncio
async def test_completing_requires_administrator(monkeypatch, users, audit_calls) -> None:
    competition = _competition(created_by=2)
    _patch_competition(monkeypatch, competition)
    request = CompetitionUpdateRequest(id=10, status="completed")

    with pytest.raises(ForbiddenError):
        await competition_service.update(_DbStub(), request, 2, "staff")
    assert competition.status is CompetitionStatus.active

    await competition_service.update(_DbStub(), request, 1, "administrator")
    assert competition.status is CompetitionStatus.completed
    assert len(audit_calls) == 1


@pytest.mark.asyncio
async def test_update_rejects_dates_that_invert_the_range(monkeypatch, users, audit_calls) -> None:
    _patch_competition(monkeypatch, _competition())

    with pytest.raises(InvalidDateRangeError):
        await competition_service.update(
            _DbStub(),
            CompetitionUpdateRequest(id=10, end_date=datetime(2023, 12, 1)),
            1,
            UserRole.administrator,
        )


@pytest.mark.asyncio
async def test_update_missing_competition(monkeypatch, users, audit_calls) -> None:
    _patch_competition(monkeypatch, None)

    with pytest.raises(NotFoundError) as exc_info:
        await competition_service.update(_DbStub(), CompetitionUpdateRequest(id=99), 1, UserRole.administrator)
    assert exc_info.value.detail["message"] == "Competition not found"


@pytest.mark.asyncio
async def test_delete_requires_administrator(monkeypatch, users, audit_calls) -> None:
    _patch_competition(monkeypatch, _competition())

    with pytest.raises(ForbiddenError):
        await competition_service.delete(_DbStub(), 10, 2)

    with pytest.raises(NotFoundError) as exc_info:
        await competition_service.delete(_DbStub(), 10, 404)
    assert exc_info.value.detail["message"] == "User not found"
    assert audit_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("assignee", [7, 9999])
async def test_update_rejects_inactive_or_unknown_assignee(monkeypatch, users, audit_calls, assignee) -> None:
    competition = _competition(created_by=2, assigned_to=2)
    _patch_competition(monkeypatch, competition)
    db = _DbStub()

    with pytest.raises(InvalidReferenceError) as exc_info:
        await competition_service.update(
            db, CompetitionUpdateRequest(id=10, assigned_to=assignee), 2, UserRole.staff
        )

    assert exc_info.value.detail["code"] == "invalid_reference"
    assert exc_info.value.detail["assigned_to"] == assignee
    assert competition.assigned_to == 2
    assert db.flushes == 0
    assert audit_calls == []


@pytest.mark.asyncio
async def test_get_hides_competitions_outside_the_actor_scope(monkeypatch) -> None:
    competition = _competition(created_by=1, assigned_to=3, status=CompetitionStatus.inactive)
    _patch_competition(monkeypatch, competition)

    assert await competition_service.get(_DbStub(), 10, 1, UserRole.administrator) is competition
    assert await competition_service.get(_DbStub(), 10, 3, "staff") is competition

    for actor_id, role in ((2, UserRole.staff), (5, UserRole.member), (None, None)):
        with pytest.raises(NotFoundError) as exc_info:
            await competition_service.get(_DbStub(), 10, actor_id, role)
        assert exc_info.value.detail["message"] == "Competition not found"
