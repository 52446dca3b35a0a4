from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.core.config import get_settings
from fitcomp.core.correlation import get_client_ip
from fitcomp.core.logging import get_logger
from fitcomp.models import AuditAction, AuditLog

logger = get_logger("services.audit")


class AuditService:
    """Appends audit rows inside the caller's transaction.

    A failed write propagates so the mutation it describes is rolled back
    with it; there is no best-effort mode.
    """

    async def log_action(
        self,
        db: AsyncSession,
        *,
        actor_id: int,
        action: AuditAction,
        resource_type: str,
        resource_id: int | None = None,
        details: str | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
            ip_address=ip_address or get_client_ip() or None,
        )
        try:
            db.add(entry)
            await db.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "audit_log_failed",
                action=action.value,
                resource_type=resource_type,
                resource_id=resource_id,
                error=str(exc.__class__.__name__),
            )
            raise
        logger.info(
            "audit_logged",
            actor_id=actor_id,
            action=action.value,
            resource_type=resource_type,
            resource_id=resource_id,
        )
        return entry

    async def list_logs(
        self,
        db: AsyncSession,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[AuditLog]:
        settings = get_settings()
        size = settings.audit_default_limit if limit is None else limit
        rows = await db.execute(
            select(AuditLog)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(max(1, min(size, settings.audit_max_limit)))
            .offset(max(0, offset))
        )
        return list(rows.scalars().all())


audit_service = AuditService()
