"""
FitComp - Audit Log
===================
Append-only trail of every mutating action and login attempt.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text

from fitcomp.core.database import Base


class AuditAction(str, enum.Enum):
    create = "create"
    update = "update"
    delete = "delete"
    assign = "assign"
    deactivate = "deactivate"
    login = "login"
    impersonate = "impersonate"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(Enum(AuditAction, name="audit_action"), nullable=False, index=True)
    resource_type = Column(String(50), nullable=False, index=True)
    # interpreted through resource_type; competitions may be deleted later
    resource_id = Column(Integer, nullable=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("ix_audit_logs_resource", "resource_type", "resource_id"),
    )
