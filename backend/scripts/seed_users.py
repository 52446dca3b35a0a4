"""
FitComp - Seed Users Script
===========================
Creates one bootstrap account per role so a fresh database can be logged into.
Passwords are hashed with bcrypt before storage.

Usage:
    python -m scripts.seed_users

WARNING: the passwords below are for development/staging only.
    Change them on first login.
"""

import asyncio
import os
import sys

# Add parent dir to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fitcomp.core.database import async_session, init_db  # noqa: E402
from fitcomp.core.logging import get_logger, setup_logging  # noqa: E402
from fitcomp.core.security import hash_password  # noqa: E402
from fitcomp.models import UserRole  # noqa: E402
from fitcomp.repositories.user_repository import user_repository  # noqa: E402

logger = get_logger("scripts.seed_users")

ACCOUNTS = [
    {
        "email": "admin@fitcomp.local",
        "first_name": "Ada",
        "last_name": "Admin",
        "password": "ChangeMe-Admin-2026",
        "role": UserRole.administrator,
    },
    {
        "email": "coach@fitcomp.local",
        "first_name": "Sam",
        "last_name": "Coach",
        "password": "ChangeMe-Staff-2026",
        "role": UserRole.staff,
    },
    {
        "email": "member@fitcomp.local",
        "first_name": "Max",
        "last_name": "Member",
        "password": "ChangeMe-Member-2026",
        "role": UserRole.member,
    },
]


async def seed_users() -> tuple[int, int]:
    """Insert missing bootstrap accounts; existing emails are left untouched."""
    await init_db()

    added = 0
    skipped = 0
    async with async_session() as session:
        for account in ACCOUNTS:
            if await user_repository.email_taken(session, account["email"]):
                logger.info("seed_user_exists", email=account["email"])
                skipped += 1
                continue

            await user_repository.create_user(
                session,
                email=account["email"],
                first_name=account["first_name"],
                last_name=account["last_name"],
                role=account["role"],
                hashed_password=hash_password(account["password"]),
            )
            logger.info("seed_user_added", email=account["email"], role=account["role"].value)
            added += 1

        await session.commit()

    logger.info("seed_users_done", added=added, skipped=skipped, total=len(ACCOUNTS))
    return added, skipped


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed_users())
