from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.core.exceptions import (
    InvalidDateRangeError,
    InvalidReferenceError,
    NotFoundError,
    raise_for_denial,
)
from fitcomp.core.logging import get_logger
from fitcomp.domain.access.policy import (
    can_create_competition,
    can_delete_competition,
    can_update_competition,
    competition_visibility,
    is_visible,
)
from fitcomp.models import AuditAction, Competition, UserRole
from fitcomp.repositories.competition_repository import competition_repository
from fitcomp.repositories.user_repository import user_repository
from fitcomp.schemas.competitions import CompetitionCreateRequest, CompetitionUpdateRequest
from fitcomp.services.audit_service import audit_service
from fitcomp.services.guards import load_active_user, resolve_actor_role

logger = get_logger("services.competitions")

RESOURCE_TYPE = "competition"

_UPDATABLE_FIELDS = (
    "name",
    "description",
    "type",
    "data_entry_method",
    "status",
    "start_date",
    "end_date",
    "assigned_to",
)


def _ensure_date_range(start_date: datetime, end_date: datetime) -> None:
    if end_date <= start_date:
        raise InvalidDateRangeError(
            "End date must be after start date",
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
        )


def _describe(value: Any) -> str:
    if hasattr(value, "value"):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    return repr(value) if isinstance(value, str) else str(value)


class CompetitionService:
    async def _ensure_assignable(self, db: AsyncSession, user_id: int) -> None:
        if not await user_repository.get_active(db, user_id):
            raise InvalidReferenceError("Assigned user not found or inactive", assigned_to=user_id)

    async def create(
        self,
        db: AsyncSession,
        payload: CompetitionCreateRequest,
        creator_id: int,
    ) -> Competition:
        _ensure_date_range(payload.start_date, payload.end_date)

        creator = await load_active_user(db, creator_id)
        raise_for_denial(can_create_competition(creator.role))

        # creator is auto-assigned unless someone else is named explicitly
        assigned_to = payload.assigned_to if payload.assigned_to is not None else creator_id
        if assigned_to != creator_id:
            await self._ensure_assignable(db, assigned_to)

        competition = await competition_repository.create_competition(
            db,
            name=payload.name.strip(),
            description=payload.description,
            type=payload.type,
            data_entry_method=payload.data_entry_method,
            start_date=payload.start_date,
            end_date=payload.end_date,
            created_by=creator_id,
            assigned_to=assigned_to,
        )
        await audit_service.log_action(
            db,
            actor_id=creator_id,
            action=AuditAction.create,
            resource_type=RESOURCE_TYPE,
            resource_id=competition.id,
            details=f"Created competition '{competition.name}' assigned to user {assigned_to}",
        )
        logger.info(
            "competition_created",
            competition_id=competition.id,
            created_by=creator_id,
            assigned_to=assigned_to,
        )
        return competition

    async def update(
        self,
        db: AsyncSession,
        payload: CompetitionUpdateRequest,
        actor_id: int,
        actor_role: UserRole | str,
    ) -> Competition:
        role = resolve_actor_role(actor_role)
        competition = await competition_repository.get_by_id(db, payload.id, for_update=True)
        if not competition:
            raise NotFoundError("Competition not found", competition_id=payload.id)

        await load_active_user(db, actor_id)
        changes = payload.model_dump(exclude_unset=True, exclude={"id"})

        decision = can_update_competition(
            role,
            actor_id,
            competition,
            target_status=changes.get("status"),
        )
        if not decision.allowed:
            logger.warning(
                "competition_update_denied",
                competition_id=competition.id,
                actor_id=actor_id,
                rule=decision.rule,
            )
        raise_for_denial(decision)

        if changes.get("assigned_to") is not None:
            await self._ensure_assignable(db, changes["assigned_to"])

        start_date = changes.get("start_date", competition.start_date)
        end_date = changes.get("end_date", competition.end_date)
        if "start_date" in changes or "end_date" in changes:
            _ensure_date_range(start_date, end_date)

        summary: list[str] = []
        for field in _UPDATABLE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if field == "name" and value is not None:
                value = value.strip()
            setattr(competition, field, value)
            summary.append(f"{field}={_describe(value)}")
        competition.updated_at = datetime.utcnow()
        await db.flush()

        await audit_service.log_action(
            db,
            actor_id=actor_id,
            action=AuditAction.update,
            resource_type=RESOURCE_TYPE,
            resource_id=competition.id,
            details=(
                f"Updated competition '{competition.name}': {', '.join(summary)}"
                if summary
                else f"Touched competition '{competition.name}' without field changes"
            ),
        )
        logger.info(
            "competition_updated",
            competition_id=competition.id,
            actor_id=actor_id,
            fields=sorted(changes.keys()),
        )
        return competition

    async def delete(self, db: AsyncSession, competition_id: int, actor_id: int) -> dict[str, bool]:
        actor = await user_repository.get_by_id(db, actor_id)
        if not actor:
            raise NotFoundError("User not found", user_id=actor_id)
        raise_for_denial(can_delete_competition(actor.role))

        competition = await competition_repository.get_by_id(db, competition_id, for_update=True)
        if not competition:
            raise NotFoundError("Competition not found", competition_id=competition_id)

        name = competition.name
        removed = await competition_repository.delete_with_entries(db, competition)
        await audit_service.log_action(
            db,
            actor_id=actor_id,
            action=AuditAction.delete,
            resource_type=RESOURCE_TYPE,
            resource_id=competition_id,
            details=f"Deleted competition '{name}' and {removed} entries",
        )
        logger.info(
            "competition_deleted",
            competition_id=competition_id,
            actor_id=actor_id,
            entries_removed=removed,
        )
        return {"success": True}

    async def list_for_actor(
        self,
        db: AsyncSession,
        actor_id: int | None = None,
        actor_role: UserRole | str | None = None,
    ) -> list[Competition]:
        scope = competition_visibility(actor_role, actor_id)
        return await competition_repository.list_by_scope(db, scope=scope, actor_id=actor_id)

    async def get(
        self,
        db: AsyncSession,
        competition_id: int,
        actor_id: int | None = None,
        actor_role: UserRole | str | None = None,
    ) -> Competition:
        competition = await competition_repository.get_by_id(db, competition_id)
        # out-of-scope rows are reported exactly like missing ones
        scope = competition_visibility(actor_role, actor_id)
        if not competition or not is_visible(scope, actor_id, competition):
            raise NotFoundError("Competition not found", competition_id=competition_id)
        return competition


competition_service = CompetitionService()
