"""
FitComp - Competition Models
============================
Staff-defined competitions and the performance entries recorded against them.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from fitcomp.core.database import Base


class CompetitionType(str, enum.Enum):
    plank_hold = "plank_hold"
    squats = "squats"
    attendance = "attendance"
    other = "other"


class DataEntryMethod(str, enum.Enum):
    staff_only = "staff_only"
    user_entry = "user_entry"


class CompetitionStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    completed = "completed"


class Competition(Base):
    __tablename__ = "competitions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(CompetitionType, name="competition_type"), nullable=False)
    data_entry_method = Column(Enum(DataEntryMethod, name="data_entry_method"), nullable=False)
    status = Column(
        Enum(CompetitionStatus, name="competition_status"),
        nullable=False,
        default=CompetitionStatus.active,
        index=True,
    )
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_competitions_date_range"),
    )

    def __repr__(self):
        return f"<Competition {self.id} {self.name!r} ({self.status.value if self.status else '-'})>"


class CompetitionEntry(Base):
    __tablename__ = "competition_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    competition_id = Column(
        Integer,
        ForeignKey("competitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    value = Column(Numeric(10, 2, asdecimal=True), nullable=False)
    unit = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    entered_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    competition = relationship("Competition", lazy="joined")

    __table_args__ = (
        Index("ix_competition_entries_competition_user", "competition_id", "user_id"),
    )
