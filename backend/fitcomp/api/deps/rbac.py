from __future__ import annotations

from collections.abc import Iterable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.core.database import get_db
from fitcomp.core.exceptions import ForbiddenError
from fitcomp.core.security import decode_access_token
from fitcomp.models.user import UserRole
from fitcomp.repositories.user_repository import user_repository
from fitcomp.schemas.auth import AuthContext

security = HTTPBearer()


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "unauthorized", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Resolve the bearer token to the effective user's auth context.

    The role is re-read from the store so a role change or deactivation takes
    effect on the next request, not when the token expires.
    """
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = int(payload.get("sub", ""))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token subject")

    user = await user_repository.get_by_id(db, user_id)
    if not user or not user.is_active:
        raise _unauthorized("Account not found or inactive")

    impersonator_id = payload.get("impersonator_id")
    if impersonator_id is not None:
        impersonator = await user_repository.get_by_id(db, int(impersonator_id))
        if (
            not impersonator
            or not impersonator.is_active
            or impersonator.role is not UserRole.administrator
        ):
            raise _unauthorized("Impersonation session is no longer valid")

    return AuthContext(user_id=user.id, role=user.role, impersonator_id=impersonator_id)


def enforce_roles(
    context: AuthContext,
    allowed: Iterable[UserRole],
    *,
    message: str = "Not authorized for this action",
) -> None:
    if context.role not in set(allowed):
        raise ForbiddenError(message, role=context.role.value)


def require_roles(*allowed: UserRole):
    async def _dependency(context: AuthContext = Depends(get_current_context)) -> AuthContext:
        enforce_roles(context, allowed)
        return context

    return _dependency
