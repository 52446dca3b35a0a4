"""
FitComp - User Model
====================
Members, staff and administrators with role-based access.
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String

from fitcomp.core.database import Base


class UserRole(str, enum.Enum):
    member = "member"
    staff = "staff"
    administrator = "administrator"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Identity
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    # NULL means the account is authenticated by an external identity provider
    hashed_password = Column(String(255), nullable=True)

    # Role & status
    role = Column(Enum(UserRole, name="user_role"), nullable=False, default=UserRole.member)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else '-'})>"
