from __future__ import annotations

from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.models import Competition, CompetitionEntry


class EntryRepository:
    async def create_entry(
        self,
        db: AsyncSession,
        *,
        competition_id: int,
        user_id: int,
        value: Decimal,
        unit: str | None,
        notes: str | None,
        entered_by: int,
    ) -> CompetitionEntry:
        entry = CompetitionEntry(
            competition_id=competition_id,
            user_id=user_id,
            value=value,
            unit=unit,
            notes=notes,
            entered_by=entered_by,
        )
        db.add(entry)
        await db.flush()
        await db.refresh(entry)
        return entry

    async def get_with_competition(
        self,
        db: AsyncSession,
        entry_id: int,
        *,
        for_update: bool = False,
    ) -> CompetitionEntry | None:
        stmt = (
            select(CompetitionEntry)
            .where(CompetitionEntry.id == entry_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=CompetitionEntry)
        row = await db.execute(stmt)
        return row.unique().scalar_one_or_none()

    async def list_for_competition(
        self,
        db: AsyncSession,
        competition_id: int,
        *,
        user_id: int | None = None,
    ) -> list[CompetitionEntry]:
        stmt = select(CompetitionEntry).where(CompetitionEntry.competition_id == competition_id)
        if user_id is not None:
            stmt = stmt.where(CompetitionEntry.user_id == user_id)
        rows = await db.execute(stmt.order_by(CompetitionEntry.created_at, CompetitionEntry.id))
        return list(rows.unique().scalars().all())

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        *,
        managed_by: int | None = None,
    ) -> list[CompetitionEntry]:
        """Entries of one subject, optionally only in competitions ``managed_by`` created or is assigned to."""
        stmt = (
            select(CompetitionEntry)
            .join(Competition, CompetitionEntry.competition_id == Competition.id)
            .where(CompetitionEntry.user_id == user_id)
        )
        if managed_by is not None:
            stmt = stmt.where(
                or_(Competition.created_by == managed_by, Competition.assigned_to == managed_by)
            )
        rows = await db.execute(stmt.order_by(CompetitionEntry.created_at, CompetitionEntry.id))
        return list(rows.unique().scalars().all())


entry_repository = EntryRepository()
