from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.core.exceptions import (
    InvalidStateError,
    InvalidValueError,
    NotFoundError,
    raise_for_denial,
)
from fitcomp.core.logging import get_logger
from fitcomp.domain.access.policy import (
    StatsScope,
    can_create_entry,
    can_update_entry,
    can_view_scoped_stats,
    user_stats_scope,
)
from fitcomp.models import AuditAction, CompetitionEntry, CompetitionStatus, UserRole
from fitcomp.repositories.competition_repository import competition_repository
from fitcomp.repositories.entry_repository import entry_repository
from fitcomp.schemas.competitions import EntryCreateRequest, EntryUpdateRequest
from fitcomp.services.audit_service import audit_service
from fitcomp.services.guards import load_active_user, resolve_actor_role

logger = get_logger("services.entries")

RESOURCE_TYPE = "competition_entry"

_CENT = Decimal("0.01")
# NUMERIC(10, 2)
_MAX_VALUE = Decimal("99999999.99")


def to_stored_value(value: float | int | Decimal | str) -> Decimal:
    """Convert an incoming measurement to the fixed-point form kept in the store."""
    try:
        raw = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidValueError("Value must be a number", value=str(value)) from exc
    if not raw.is_finite():
        raise InvalidValueError("Value must be a finite number", value=str(value))
    if raw < 0:
        raise InvalidValueError("Value cannot be negative", value=str(value))
    # checked before quantize, which cannot represent huge exponents
    if raw > _MAX_VALUE:
        raise InvalidValueError("Value is too large", value=str(value))
    amount = raw.quantize(_CENT, rounding=ROUND_HALF_UP)
    if amount > _MAX_VALUE:
        raise InvalidValueError("Value is too large", value=str(value))
    return amount


class EntryService:
    async def create(
        self,
        db: AsyncSession,
        payload: EntryCreateRequest,
        entered_by_id: int,
    ) -> CompetitionEntry:
        competition = await competition_repository.get_by_id(db, payload.competition_id, for_update=True)
        if not competition:
            raise NotFoundError("Competition not found", competition_id=payload.competition_id)
        if competition.status is not CompetitionStatus.active:
            raise InvalidStateError("Competition is not active", competition_id=competition.id)

        await load_active_user(db, payload.user_id)
        actor = await load_active_user(
            db,
            entered_by_id,
            not_found="Entered by user not found",
            inactive="Entered by user is not active",
        )

        decision = can_create_entry(actor.role, entered_by_id, competition, payload.user_id)
        if not decision.allowed:
            logger.warning(
                "entry_create_denied",
                competition_id=competition.id,
                actor_id=entered_by_id,
                subject_id=payload.user_id,
                rule=decision.rule,
            )
        raise_for_denial(decision)

        value = to_stored_value(payload.value)
        entry = await entry_repository.create_entry(
            db,
            competition_id=competition.id,
            user_id=payload.user_id,
            value=value,
            unit=payload.unit,
            notes=payload.notes,
            entered_by=entered_by_id,
        )
        await audit_service.log_action(
            db,
            actor_id=entered_by_id,
            action=AuditAction.create,
            resource_type=RESOURCE_TYPE,
            resource_id=entry.id,
            details=(
                f"Created entry for user {payload.user_id} in competition "
                f"{competition.id} with value {value.normalize():f}"
            ),
        )
        logger.info(
            "entry_created",
            entry_id=entry.id,
            competition_id=competition.id,
            subject_id=payload.user_id,
            entered_by=entered_by_id,
        )
        return entry

    async def update(
        self,
        db: AsyncSession,
        payload: EntryUpdateRequest,
        actor_id: int,
        actor_role: UserRole | str,
    ) -> CompetitionEntry:
        role = resolve_actor_role(actor_role)
        entry = await entry_repository.get_with_competition(db, payload.id, for_update=True)
        if not entry:
            raise NotFoundError("Competition entry not found", entry_id=payload.id)
        await load_active_user(db, actor_id)
        competition = entry.competition

        decision = can_update_entry(role, actor_id, entry, competition)
        if not decision.allowed:
            logger.warning(
                "entry_update_denied",
                entry_id=entry.id,
                actor_id=actor_id,
                rule=decision.rule,
            )
        raise_for_denial(decision)

        changes = payload.model_dump(exclude_unset=True, exclude={"id"})
        if "value" in changes:
            entry.value = to_stored_value(changes["value"])
        if "unit" in changes:
            entry.unit = changes["unit"]
        if "notes" in changes:
            entry.notes = changes["notes"]
        entry.updated_at = datetime.utcnow()
        await db.flush()

        await audit_service.log_action(
            db,
            actor_id=actor_id,
            action=AuditAction.update,
            resource_type=RESOURCE_TYPE,
            resource_id=entry.id,
            details=(
                f"Updated entry in competition '{competition.name}' ({competition.id}): "
                f"{', '.join(sorted(changes)) or 'no field changes'}"
            ),
        )
        logger.info("entry_updated", entry_id=entry.id, actor_id=actor_id, fields=sorted(changes))
        return entry

    async def list_entries(
        self,
        db: AsyncSession,
        competition_id: int,
        user_id: int | None = None,
    ) -> list[CompetitionEntry]:
        return await entry_repository.list_for_competition(db, competition_id, user_id=user_id)

    async def user_stats(
        self,
        db: AsyncSession,
        subject_id: int,
        requesting_user_id: int,
        role: UserRole | str,
    ) -> list[CompetitionEntry]:
        resolved = resolve_actor_role(role)
        scope = user_stats_scope(resolved, requesting_user_id, subject_id)
        if not isinstance(scope, StatsScope):
            raise_for_denial(scope)

        if scope is StatsScope.all:
            return await entry_repository.list_for_user(db, subject_id)

        entries = await entry_repository.list_for_user(db, subject_id, managed_by=requesting_user_id)
        raise_for_denial(can_view_scoped_stats(len(entries)))
        return entries


entry_service = EntryService()
