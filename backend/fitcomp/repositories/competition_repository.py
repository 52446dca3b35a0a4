from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.domain.access.policy import CompetitionScope
from fitcomp.models import (
    Competition,
    CompetitionEntry,
    CompetitionStatus,
    CompetitionType,
    DataEntryMethod,
)


class CompetitionRepository:
    async def create_competition(
        self,
        db: AsyncSession,
        *,
        name: str,
        description: str | None,
        type: CompetitionType,
        data_entry_method: DataEntryMethod,
        start_date: datetime,
        end_date: datetime,
        created_by: int,
        assigned_to: int | None,
    ) -> Competition:
        competition = Competition(
            name=name,
            description=description,
            type=type,
            data_entry_method=data_entry_method,
            status=CompetitionStatus.active,
            start_date=start_date,
            end_date=end_date,
            created_by=created_by,
            assigned_to=assigned_to,
        )
        db.add(competition)
        await db.flush()
        await db.refresh(competition)
        return competition

    async def get_by_id(
        self,
        db: AsyncSession,
        competition_id: int,
        *,
        for_update: bool = False,
    ) -> Competition | None:
        stmt = (
            select(Competition)
            .where(Competition.id == competition_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = await db.execute(stmt)
        return row.scalar_one_or_none()

    async def list_by_scope(
        self,
        db: AsyncSession,
        *,
        scope: CompetitionScope,
        actor_id: int | None = None,
    ) -> list[Competition]:
        if scope is CompetitionScope.none:
            return []
        stmt = select(Competition)
        if scope is CompetitionScope.owned:
            stmt = stmt.where(
                or_(Competition.created_by == actor_id, Competition.assigned_to == actor_id)
            )
        elif scope is CompetitionScope.active:
            stmt = stmt.where(Competition.status == CompetitionStatus.active)
        rows = await db.execute(stmt.order_by(Competition.start_date.desc(), Competition.id.desc()))
        return list(rows.scalars().all())

    async def delete_with_entries(self, db: AsyncSession, competition: Competition) -> int:
        """Delete the competition and every entry that references it.

        Returns the number of entries removed.
        """
        result = await db.execute(
            delete(CompetitionEntry).where(CompetitionEntry.competition_id == competition.id)
        )
        await db.delete(competition)
        await db.flush()
        return int(result.rowcount or 0)


competition_repository = CompetitionRepository()
