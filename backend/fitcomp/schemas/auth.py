"""
FitComp - Authentication & User Schemas
=======================================
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from fitcomp.models.audit import AuditAction
from fitcomp.models.user import UserRole

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class AuthContext(BaseModel):
    user_id: int
    role: UserRole
    impersonator_id: Optional[int] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    context: AuthContext
    user: "UserOut"


class UserOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SessionOut(BaseModel):
    context: AuthContext
    user: UserOut


class UserCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: UserRole = UserRole.member
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    is_active: bool = True


class UserUpdateBody(BaseModel):
    email: Optional[str] = Field(default=None, min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)


class UserUpdateRequest(UserUpdateBody):
    id: int


class AuditLogOut(BaseModel):
    id: int
    user_id: int
    action: AuditAction
    resource_type: str
    resource_id: Optional[int] = None
    details: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# Rebuild model to resolve forward reference
TokenResponse.model_rebuild()
