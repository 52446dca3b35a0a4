from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import func, select

from fitcomp.core.exceptions import ForbiddenError, InvalidStateError
from fitcomp.models import (
    AuditAction,
    AuditLog,
    CompetitionEntry,
    CompetitionStatus,
    DataEntryMethod,
    UserRole,
)
from fitcomp.schemas.competitions import (
    CompetitionCreateRequest,
    CompetitionEntryOut,
    CompetitionUpdateRequest,
    EntryCreateRequest,
    EntryUpdateRequest,
)
from fitcomp.services.audit_service import audit_service
from fitcomp.services.competition_service import competition_service
from fitcomp.services.entry_service import entry_service
from fitcomp.services.session_service import session_service


async def _audit_rows(db) -> list[AuditLog]:
    rows = await db.execute(select(AuditLog).order_by(AuditLog.id))
    return list(rows.scalars().all())


@pytest.mark.asyncio
async def test_squat_scenario_staff_records_member_cannot(db, make_user) -> None:
    await make_user("admin@example.com", UserRole.administrator)
    staff = await make_user("coach@example.com", UserRole.staff)
    member = await make_user("member@example.com", UserRole.member)

    competition = await competition_service.create(
        db,
        CompetitionCreateRequest(
            name="Squat Test",
            type="squats",
            data_entry_method="staff_only",
            start_date=datetime(2024, 1, 1),
            end_date=datetime(2024, 1, 31),
        ),
        staff.id,
    )
    assert competition.assigned_to == staff.id
    assert competition.created_by == staff.id
    assert competition.status is CompetitionStatus.active

    entry = await entry_service.create(
        db,
        EntryCreateRequest(competition_id=competition.id, user_id=member.id, value=50, unit="reps"),
        staff.id,
    )
    out = CompetitionEntryOut.model_validate(entry)
    assert out.value == 50
    assert isinstance(out.value, float)
    assert out.entered_by == staff.id

    with pytest.raises(ForbiddenError) as exc_info:
        await entry_service.create(
            db,
            EntryCreateRequest(competition_id=competition.id, user_id=member.id, value=50, unit="reps"),
            member.id,
        )
    assert "only staff can enter data" in exc_info.value.detail["message"]

    rows = await _audit_rows(db)
    assert [(r.action, r.resource_type, r.user_id) for r in rows] == [
        (AuditAction.create, "competition", staff.id),
        (AuditAction.create, "competition_entry", staff.id),
    ]
    assert rows[1].resource_id == entry.id


@pytest.mark.asyncio
async def test_admin_delete_removes_all_entries(db, make_user, make_competition) -> None:
    admin = await make_user("admin@example.com", UserRole.administrator)
    member = await make_user("member@example.com", UserRole.member)
    competition = await make_competition(admin.id, data_entry_method=DataEntryMethod.staff_only)
    for value in (10, 20, 30):
        await entry_service.create(
            db,
            EntryCreateRequest(competition_id=competition.id, user_id=member.id, value=value),
            admin.id,
        )
    competition_id = competition.id

    result = await competition_service.delete(db, competition_id, admin.id)

    assert result == {"success": True}
    assert await entry_service.list_entries(db, competition_id) == []
    remaining = await db.execute(
        select(func.count(CompetitionEntry.id)).where(CompetitionEntry.competition_id == competition_id)
    )
    assert remaining.scalar_one() == 0

    deletes = [r for r in await _audit_rows(db) if r.action is AuditAction.delete]
    assert len(deletes) == 1
    assert deletes[0].resource_id == competition_id
    assert deletes[0].user_id == admin.id
    assert "Plank Week" in deletes[0].details


@pytest.mark.asyncio
async def test_each_mutation_appends_exactly_one_audit_row(db, make_user, make_competition) -> None:
    admin = await make_user("admin@example.com", UserRole.administrator, password="admin-password")
    staff = await make_user("coach@example.com", UserRole.staff)
    member = await make_user("member@example.com", UserRole.member)
    inactive = await make_user("gone@example.com", UserRole.member, password="whatever-pw", is_active=False)
    competition = await make_competition(staff.id)
    entry = await entry_service.create(
        db,
        EntryCreateRequest(competition_id=competition.id, user_id=member.id, value=5),
        member.id,
    )

    operations = [
        (
            lambda: competition_service.update(
                db, CompetitionUpdateRequest(id=competition.id, name="Renamed"), staff.id, UserRole.staff
            ),
            (AuditAction.update, "competition", staff.id, competition.id),
        ),
        (
            lambda: entry_service.update(db, EntryUpdateRequest(id=entry.id, value=6), member.id, "member"),
            (AuditAction.update, "competition_entry", member.id, entry.id),
        ),
        (
            lambda: session_service.authenticate(db, "admin@example.com", "admin-password"),
            (AuditAction.login, "user", admin.id, admin.id),
        ),
        (
            lambda: session_service.authenticate(db, "gone@example.com", "whatever-pw"),
            (AuditAction.login, "user", inactive.id, inactive.id),
        ),
        (
            lambda: session_service.impersonate(db, member.id, admin.id),
            (AuditAction.impersonate, "user", admin.id, member.id),
        ),
    ]

    for run, (action, resource_type, actor_id, resource_id) in operations:
        before = len(await _audit_rows(db))
        await run()
        rows = await _audit_rows(db)
        assert len(rows) == before + 1
        newest = rows[-1]
        assert (newest.action, newest.resource_type, newest.user_id, newest.resource_id) == (
            action,
            resource_type,
            actor_id,
            resource_id,
        )


@pytest.mark.asyncio
async def test_entry_update_on_completed_competition_fails_even_for_admin(
    db, make_user, make_competition
) -> None:
    admin = await make_user("admin@example.com", UserRole.administrator)
    member = await make_user("member@example.com", UserRole.member)
    competition = await make_competition(admin.id)
    entry = await entry_service.create(
        db,
        EntryCreateRequest(competition_id=competition.id, user_id=member.id, value=5),
        member.id,
    )
    await competition_service.update(
        db, CompetitionUpdateRequest(id=competition.id, status="completed"), admin.id, UserRole.administrator
    )

    with pytest.raises(InvalidStateError):
        await entry_service.update(db, EntryUpdateRequest(id=entry.id, value=9), admin.id, UserRole.administrator)


@pytest.mark.asyncio
async def test_visibility_and_stats_scoping(db, make_user, make_competition) -> None:
    admin = await make_user("admin@example.com", UserRole.administrator)
    staff = await make_user("coach@example.com", UserRole.staff)
    other_staff = await make_user("other@example.com", UserRole.staff)
    member = await make_user("member@example.com", UserRole.member)

    mine = await make_competition(staff.id, name="Mine")
    await make_competition(admin.id, name="Closed", status=CompetitionStatus.inactive)
    theirs = await make_competition(other_staff.id, name="Theirs")
    await entry_service.create(
        db, EntryCreateRequest(competition_id=theirs.id, user_id=member.id, value=1), member.id
    )

    assert {c.name for c in await competition_service.list_for_actor(db, admin.id, "administrator")} == {
        "Mine",
        "Closed",
        "Theirs",
    }
    assert [c.id for c in await competition_service.list_for_actor(db, staff.id, "staff")] == [mine.id]
    assert {c.name for c in await competition_service.list_for_actor(db, member.id, "member")} == {"Mine", "Theirs"}
    assert {c.name for c in await competition_service.list_for_actor(db)} == {"Mine", "Theirs"}
    assert await competition_service.list_for_actor(db, staff.id, "coach") == []

    with pytest.raises(ForbiddenError):
        await entry_service.user_stats(db, member.id, staff.id, UserRole.staff)
    assert len(await entry_service.user_stats(db, member.id, other_staff.id, UserRole.staff)) == 1
    assert len(await entry_service.user_stats(db, member.id, member.id, UserRole.member)) == 1


@pytest.mark.asyncio
async def test_audit_logs_newest_first_with_clamped_limit(db, make_user) -> None:
    admin = await make_user("admin@example.com", UserRole.administrator)
    for index in range(3):
        await audit_service.log_action(
            db,
            actor_id=admin.id,
            action=AuditAction.update,
            resource_type="user",
            resource_id=index,
        )

    logs = await audit_service.list_logs(db, limit=2)
    assert [log.resource_id for log in logs] == [2, 1]

    assert len(await audit_service.list_logs(db, limit=0)) == 1
    assert [log.resource_id for log in await audit_service.list_logs(db, offset=2)] == [0]


@pytest.mark.asyncio
async def test_two_decimal_value_survives_commit_and_reload(
    db, session_factory, make_user, make_competition
) -> None:
    member = await make_user("member@example.com", UserRole.member)
    competition = await make_competition(member.id)
    await entry_service.create(
        db,
        EntryCreateRequest(competition_id=competition.id, user_id=member.id, value=12.34, unit="kg"),
        member.id,
    )
    await db.commit()

    async with session_factory() as fresh:
        entries = await entry_service.list_entries(fresh, competition.id)

    assert [CompetitionEntryOut.model_validate(e).value for e in entries] == [12.34]
