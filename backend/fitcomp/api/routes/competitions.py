"""
FitComp - Competition Routes
============================
Competition lifecycle plus the entries recorded against a competition.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.api.deps.rbac import get_current_context
from fitcomp.api.envelope import success_envelope
from fitcomp.core.database import get_db
from fitcomp.schemas.auth import AuthContext
from fitcomp.schemas.competitions import (
    CompetitionCreateRequest,
    CompetitionEntryOut,
    CompetitionOut,
    CompetitionUpdateBody,
    CompetitionUpdateRequest,
    DeleteResult,
    EntryCreateBody,
    EntryCreateRequest,
)
from fitcomp.services.competition_service import competition_service
from fitcomp.services.entry_service import entry_service

router = APIRouter(prefix="/competitions", tags=["Competitions"])


@router.post("", status_code=201)
async def create_competition(
    payload: CompetitionCreateRequest,
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    competition = await competition_service.create(db, payload, context.user_id)
    await db.commit()
    return success_envelope(CompetitionOut.model_validate(competition), status_code=201)


@router.get("")
async def list_competitions(
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    competitions = await competition_service.list_for_actor(db, context.user_id, context.role)
    return success_envelope(
        [CompetitionOut.model_validate(c) for c in competitions],
        meta={"count": len(competitions)},
    )


@router.get("/{competition_id}")
async def get_competition(
    competition_id: int,
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    competition = await competition_service.get(db, competition_id, context.user_id, context.role)
    return success_envelope(CompetitionOut.model_validate(competition))


@router.put("/{competition_id}")
async def update_competition(
    competition_id: int,
    payload: CompetitionUpdateBody,
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    request = CompetitionUpdateRequest(
        id=competition_id,
        **payload.model_dump(exclude_unset=True),
    )
    competition = await competition_service.update(db, request, context.user_id, context.role)
    await db.commit()
    return success_envelope(CompetitionOut.model_validate(competition))


@router.delete("/{competition_id}")
async def delete_competition(
    competition_id: int,
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    result = await competition_service.delete(db, competition_id, context.user_id)
    await db.commit()
    return success_envelope(DeleteResult(**result))


@router.post("/{competition_id}/entries", status_code=201)
async def create_entry(
    competition_id: int,
    payload: EntryCreateBody,
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    request = EntryCreateRequest(competition_id=competition_id, **payload.model_dump())
    entry = await entry_service.create(db, request, context.user_id)
    await db.commit()
    return success_envelope(CompetitionEntryOut.model_validate(entry), status_code=201)


@router.get("/{competition_id}/entries")
async def list_entries(
    competition_id: int,
    user_id: Optional[int] = Query(default=None),
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    entries = await entry_service.list_entries(db, competition_id, user_id=user_id)
    return success_envelope(
        [CompetitionEntryOut.model_validate(e) for e in entries],
        meta={"count": len(entries)},
    )
