"""
FitComp - Authentication Routes
===============================
Login, current session, and administrator impersonation.
"""

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.api.envelope import success_envelope
from fitcomp.api.deps.rbac import get_current_context
from fitcomp.core.config import get_settings
from fitcomp.core.database import get_db
from fitcomp.core.exceptions import NotFoundError
from fitcomp.core.logging import get_logger
from fitcomp.core.security import create_access_token
from fitcomp.repositories.user_repository import user_repository
from fitcomp.schemas.auth import AuthContext, LoginRequest, SessionOut, TokenResponse, UserOut
from fitcomp.services.session_service import session_service

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger("auth")
settings = get_settings()


def _issue_token(context: AuthContext, expires_delta: timedelta | None = None) -> str:
    claims = {"sub": str(context.user_id), "role": context.role.value}
    if context.impersonator_id is not None:
        claims["impersonator_id"] = context.impersonator_id
    return create_access_token(data=claims, expires_delta=expires_delta)


@router.post("/login")
async def login(payload: LoginRequest, request: Request, db: AsyncSession = Depends(get_db)):
    context = await session_service.authenticate(
        db,
        payload.email,
        payload.password,
        ip_address=request.client.host if request.client else None,
    )
    # failed attempts are audited too
    await db.commit()
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthorized", "message": "Invalid email or password"},
        )

    user = await user_repository.get_by_id(db, context.user_id)
    return success_envelope(
        TokenResponse(
            access_token=_issue_token(context),
            context=context,
            user=UserOut.model_validate(user),
        )
    )


@router.get("/me")
async def get_me(
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    user = await user_repository.get_by_id(db, context.user_id)
    if not user:
        raise NotFoundError("User not found", user_id=context.user_id)
    return success_envelope(SessionOut(context=context, user=UserOut.model_validate(user)))


@router.post("/impersonate/{user_id}")
async def impersonate(
    user_id: int,
    context: AuthContext = Depends(get_current_context),
    db: AsyncSession = Depends(get_db),
):
    # nested impersonation always acts as the original administrator
    admin_id = context.impersonator_id or context.user_id
    target_context = await session_service.impersonate(db, user_id, admin_id)
    await db.commit()

    target = await user_repository.get_by_id(db, target_context.user_id)
    logger.info("impersonation_token_issued", admin_id=admin_id, target_id=target_context.user_id)
    token = _issue_token(
        target_context,
        expires_delta=timedelta(minutes=settings.impersonation_token_expiry_minutes),
    )
    return success_envelope(
        TokenResponse(
            access_token=token,
            context=target_context,
            user=UserOut.model_validate(target),
        )
    )
