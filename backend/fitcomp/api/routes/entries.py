from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.api.deps.rbac import get_current_context
from fitcomp.api.envelope import success_envelope
from fitcomp.core.database import get_db
from fitcomp.schemas.auth import AuthContext
from fitcomp.schemas.competitions import CompetitionEntryOut, EntryUpdateBody, EntryUpdateRequest
from fitcomp.services.entry_service import entry_service

router = APIRouter(prefix="/entries", tags=["Entries"])


@router.put("/{entry_id}")
async def update_entry(
    entry_id: int,
    payload: EntryUpdateBody,
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    request = EntryUpdateRequest(id=entry_id, **payload.model_dump(exclude_unset=True))
    entry = await entry_service.update(db, request, context.user_id, context.role)
    await db.commit()
    return success_envelope(CompetitionEntryOut.model_validate(entry))
