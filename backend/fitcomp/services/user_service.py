from __future__ import annotations

from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.core.exceptions import DuplicateEmailError, NotFoundError, raise_for_denial
from fitcomp.core.logging import get_logger
from fitcomp.core.security import hash_password
from fitcomp.domain.access.policy import can_create_user, can_update_user
from fitcomp.models import AuditAction, User, UserRole
from fitcomp.repositories.user_repository import user_repository
from fitcomp.schemas.auth import UserCreateRequest, UserUpdateRequest
from fitcomp.services.audit_service import audit_service
from fitcomp.services.guards import load_active_user, resolve_actor_role

logger = get_logger("services.users")

RESOURCE_TYPE = "user"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    async def create_user(
        self,
        db: AsyncSession,
        payload: UserCreateRequest,
        actor_id: int,
    ) -> User:
        actor = await load_active_user(db, actor_id)
        raise_for_denial(can_create_user(actor.role))

        email = _normalize_email(payload.email)
        if await user_repository.email_taken(db, email):
            raise DuplicateEmailError("A user with this email already exists", email=email)

        try:
            user = await user_repository.create_user(
                db,
                email=email,
                first_name=payload.first_name.strip(),
                last_name=payload.last_name.strip(),
                role=payload.role,
                hashed_password=hash_password(payload.password) if payload.password else None,
                is_active=payload.is_active,
            )
        except IntegrityError as exc:
            # concurrent insert of the same email; the request session is rolled back by get_db
            raise DuplicateEmailError("A user with this email already exists", email=email) from exc

        await audit_service.log_action(
            db,
            actor_id=actor.id,
            action=AuditAction.create,
            resource_type=RESOURCE_TYPE,
            resource_id=user.id,
            details=f"Created {user.role.value} account {user.email}",
        )
        logger.info("user_created", user_id=user.id, role=user.role.value, actor_id=actor.id)
        return user

    async def update_user(
        self,
        db: AsyncSession,
        payload: UserUpdateRequest,
        actor_id: int,
        actor_role: UserRole | str,
    ) -> User:
        role = resolve_actor_role(actor_role)
        await load_active_user(db, actor_id)

        target = await user_repository.get_by_id(db, payload.id)
        if not target:
            raise NotFoundError("User not found", user_id=payload.id)

        data = payload.model_dump(exclude_unset=True, exclude={"id"})
        raise_for_denial(can_update_user(role, actor_id, target.id, set(data)))

        changes: dict[str, object] = {}
        if data.get("email") is not None:
            email = _normalize_email(data["email"])
            if email != target.email:
                if await user_repository.email_taken(db, email, exclude_id=target.id):
                    raise DuplicateEmailError("A user with this email already exists", email=email)
                target.email = email
                changes["email"] = email
        for field in ("first_name", "last_name"):
            if data.get(field) is not None:
                value = data[field].strip()
                if value != getattr(target, field):
                    setattr(target, field, value)
                    changes[field] = value
        if data.get("password"):
            target.hashed_password = hash_password(data["password"])
            changes["password_reset"] = True
        if data.get("role") is not None and data["role"] is not target.role:
            target.role = data["role"]
            changes["role"] = data["role"].value
        if data.get("is_active") is not None and data["is_active"] != target.is_active:
            target.is_active = data["is_active"]
            changes["is_active"] = data["is_active"]

        if not changes:
            return target

        target.updated_at = datetime.utcnow()
        await db.flush()

        deactivated = changes.get("is_active") is False
        summary = ", ".join(f"{key}={value}" for key, value in changes.items() if key != "password_reset")
        if "password_reset" in changes:
            summary = f"{summary}, password reset" if summary else "password reset"
        await audit_service.log_action(
            db,
            actor_id=actor_id,
            action=AuditAction.deactivate if deactivated else AuditAction.update,
            resource_type=RESOURCE_TYPE,
            resource_id=target.id,
            details=f"{'Deactivated' if deactivated else 'Updated'} user {target.email}: {summary}",
        )
        logger.info("user_updated", user_id=target.id, actor_id=actor_id, fields=sorted(changes))
        return target

    async def list_users(self, db: AsyncSession) -> list[User]:
        return await user_repository.list_users(db)


user_service = UserService()
