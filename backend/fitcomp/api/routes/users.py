"""
FitComp - User Routes
=====================
Account management and per-user statistics.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.api.deps.rbac import get_current_context, require_roles
from fitcomp.api.envelope import success_envelope
from fitcomp.core.database import get_db
from fitcomp.models.user import UserRole
from fitcomp.schemas.auth import AuthContext, UserCreateRequest, UserOut, UserUpdateBody, UserUpdateRequest
from fitcomp.schemas.competitions import CompetitionEntryOut
from fitcomp.services.entry_service import entry_service
from fitcomp.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", status_code=201)
async def create_user(
    payload: UserCreateRequest,
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.create_user(db, payload, context.user_id)
    await db.commit()
    return success_envelope(UserOut.model_validate(user), status_code=201)


@router.get("")
async def list_users(
    context: AuthContext = Depends(require_roles(UserRole.administrator)),
    db: AsyncSession = Depends(get_db),
):
    users = await user_service.list_users(db)
    return success_envelope([UserOut.model_validate(u) for u in users], meta={"count": len(users)})


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    payload: UserUpdateBody,
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    request = UserUpdateRequest(id=user_id, **payload.model_dump(exclude_unset=True))
    user = await user_service.update_user(db, request, context.user_id, context.role)
    await db.commit()
    return success_envelope(UserOut.model_validate(user))


@router.get("/{user_id}/stats")
async def get_user_stats(
    user_id: int,
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    entries = await entry_service.user_stats(db, user_id, context.user_id, context.role)
    return success_envelope(
        [CompetitionEntryOut.model_validate(e) for e in entries],
        meta={"count": len(entries)},
    )
