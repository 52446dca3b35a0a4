from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.api.deps.rbac import require_roles
from fitcomp.api.envelope import success_envelope
from fitcomp.core.database import get_db
from fitcomp.models.user import UserRole
from fitcomp.schemas.auth import AuditLogOut, AuthContext
from fitcomp.services.audit_service import audit_service

router = APIRouter(prefix="/audit-logs", tags=["Audit"])


@router.get("")
async def list_audit_logs(
    limit: Optional[int] = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    context: AuthContext = Depends(require_roles(UserRole.administrator)),
    db: AsyncSession = Depends(get_db),
):
    logs = await audit_service.list_logs(db, limit=limit, offset=offset)
    return success_envelope(
        [AuditLogOut.model_validate(row) for row in logs],
        meta={"offset": offset, "count": len(logs)},
    )
