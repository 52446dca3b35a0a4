from __future__ import annotations

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fitcomp.core.database import Base
from fitcomp.core.security import hash_password
from fitcomp.models import Competition, CompetitionStatus, CompetitionType, DataEntryMethod, User, UserRole


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    async def _make_user(
        email: str,
        role: UserRole = UserRole.member,
        *,
        password: str | None = None,
        is_active: bool = True,
    ) -> User:
        user = User(
            email=email,
            first_name=email.split("@")[0].title(),
            last_name="Tester",
            role=role,
            hashed_password=hash_password(password) if password else None,
            is_active=is_active,
        )
        db.add(user)
        await db.flush()
        return user

    return _make_user


@pytest.fixture
def make_competition(db):
    async def _make_competition(
        created_by: int,
        *,
        name: str = "Plank Week",
        data_entry_method: DataEntryMethod = DataEntryMethod.user_entry,
        status: CompetitionStatus = CompetitionStatus.active,
        assigned_to: int | None = None,
    ) -> Competition:
        competition = Competition(
            name=name,
            type=CompetitionType.plank_hold,
            data_entry_method=data_entry_method,
            status=status,
            start_date=datetime(2024, 1, 1),
            end_date=datetime(2024, 1, 31),
            created_by=created_by,
            assigned_to=created_by if assigned_to is None else assigned_to,
        )
        db.add(competition)
        await db.flush()
        return competition

    return _make_competition
