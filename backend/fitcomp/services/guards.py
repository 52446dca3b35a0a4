"""Shared lookups every lifecycle operation starts with."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from fitcomp.domain.access.policy import coerce_role
from fitcomp.models import User, UserRole
from fitcomp.repositories.user_repository import user_repository


def resolve_actor_role(actor_role: UserRole | str | None) -> UserRole:
    role = coerce_role(actor_role)
    if role is None:
        raise ForbiddenError("Unknown role", role=str(actor_role))
    return role


async def load_active_user(
    db: AsyncSession,
    user_id: int,
    *,
    not_found: str = "User not found",
    inactive: str = "User is not active",
) -> User:
    user = await user_repository.get_by_id(db, user_id)
    if not user:
        raise NotFoundError(not_found, user_id=user_id)
    if not user.is_active:
        raise InvalidStateError(inactive, user_id=user_id)
    return user
