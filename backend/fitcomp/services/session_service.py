from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.core.exceptions import NotFoundError, raise_for_denial
from fitcomp.core.logging import get_logger
from fitcomp.core.security import verify_password
from fitcomp.domain.access.policy import can_impersonate
from fitcomp.models import AuditAction
from fitcomp.repositories.user_repository import user_repository
from fitcomp.schemas.auth import AuthContext
from fitcomp.services.audit_service import audit_service

logger = get_logger("services.session")

RESOURCE_TYPE = "user"


class SessionService:
    async def authenticate(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        *,
        ip_address: str | None = None,
    ) -> AuthContext | None:
        """Resolve a login to an auth context; never raises for bad credentials.

        Accounts without a local password hash are vouched for by the external
        identity provider in front of this service and are accepted as-is.
        """
        user = await user_repository.get_by_email(db, email)
        if not user:
            # nobody to attribute an audit row to
            logger.warning("login_failed", reason="unknown_email")
            return None

        if not user.is_active:
            await audit_service.log_action(
                db,
                actor_id=user.id,
                action=AuditAction.login,
                resource_type=RESOURCE_TYPE,
                resource_id=user.id,
                details="Login attempt failed: account is inactive",
                ip_address=ip_address,
            )
            logger.warning("login_failed", reason="inactive", user_id=user.id)
            return None

        if user.hashed_password and not verify_password(password, user.hashed_password):
            await audit_service.log_action(
                db,
                actor_id=user.id,
                action=AuditAction.login,
                resource_type=RESOURCE_TYPE,
                resource_id=user.id,
                details="Login attempt failed: invalid credentials",
                ip_address=ip_address,
            )
            logger.warning("login_failed", reason="invalid_credentials", user_id=user.id)
            return None

        await audit_service.log_action(
            db,
            actor_id=user.id,
            action=AuditAction.login,
            resource_type=RESOURCE_TYPE,
            resource_id=user.id,
            details="Successful login",
            ip_address=ip_address,
        )
        logger.info("login_success", user_id=user.id, role=user.role.value)
        return AuthContext(user_id=user.id, role=user.role)

    async def impersonate(
        self,
        db: AsyncSession,
        target_user_id: int,
        admin_user_id: int,
    ) -> AuthContext:
        admin = await user_repository.get_by_id(db, admin_user_id)
        if not admin:
            raise NotFoundError("Administrator user not found", user_id=admin_user_id)
        raise_for_denial(can_impersonate(admin.role, actor_active=admin.is_active, target_active=True))

        target = await user_repository.get_by_id(db, target_user_id)
        if not target:
            raise NotFoundError("Target user not found", user_id=target_user_id)
        raise_for_denial(
            can_impersonate(admin.role, actor_active=admin.is_active, target_active=target.is_active)
        )

        await audit_service.log_action(
            db,
            actor_id=admin.id,
            action=AuditAction.impersonate,
            resource_type=RESOURCE_TYPE,
            resource_id=target.id,
            details=f"Administrator {admin.email} ({admin.id}) impersonated {target.email} ({target.id})",
        )
        logger.warning("user_impersonated", admin_id=admin.id, target_id=target.id)
        return AuthContext(user_id=target.id, role=target.role, impersonator_id=admin.id)


session_service = SessionService()
