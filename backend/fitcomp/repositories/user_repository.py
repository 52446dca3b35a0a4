from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitcomp.models import User, UserRole


class UserRepository:
    async def get_by_id(self, db: AsyncSession, user_id: int) -> User | None:
        row = await db.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return row.scalar_one_or_none()

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        row = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
        return row.scalar_one_or_none()

    async def email_taken(self, db: AsyncSession, email: str, *, exclude_id: int | None = None) -> bool:
        stmt = select(User.id).where(func.lower(User.email) == email.strip().lower())
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        row = await db.execute(stmt.limit(1))
        return row.scalar_one_or_none() is not None

    async def get_active(self, db: AsyncSession, user_id: int) -> User | None:
        row = await db.execute(select(User).where(User.id == user_id, User.is_active.is_(True)))
        return row.scalar_one_or_none()

    async def list_users(self, db: AsyncSession) -> list[User]:
        rows = await db.execute(select(User).order_by(User.role, User.last_name, User.first_name, User.id))
        return list(rows.scalars().all())

    async def create_user(
        self,
        db: AsyncSession,
        *,
        email: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        hashed_password: str | None,
        is_active: bool = True,
    ) -> User:
        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            hashed_password=hashed_password,
            is_active=is_active,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user


user_repository = UserRepository()
