"""Models package."""
from fitcomp.models.user import User, UserRole
from fitcomp.models.competition import (
    Competition,
    CompetitionEntry,
    CompetitionStatus,
    CompetitionType,
    DataEntryMethod,
)
from fitcomp.models.audit import AuditAction, AuditLog

__all__ = [
    "User",
    "UserRole",
    "Competition",
    "CompetitionEntry",
    "CompetitionStatus",
    "CompetitionType",
    "DataEntryMethod",
    "AuditAction",
    "AuditLog",
]
