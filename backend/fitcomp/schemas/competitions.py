"""
FitComp - Competition & Entry Schemas
=====================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from fitcomp.models.competition import CompetitionStatus, CompetitionType, DataEntryMethod


def _naive_utc(value: Any) -> Any:
    # columns store naive UTC timestamps
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class CompetitionCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: CompetitionType
    data_entry_method: DataEntryMethod
    start_date: datetime
    end_date: datetime
    assigned_to: Optional[int] = None

    normalize_dates = field_validator("start_date", "end_date")(_naive_utc)


class CompetitionUpdateBody(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[CompetitionType] = None
    data_entry_method: Optional[DataEntryMethod] = None
    status: Optional[CompetitionStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    assigned_to: Optional[int] = None

    normalize_dates = field_validator("start_date", "end_date")(_naive_utc)

    @model_validator(mode="after")
    def reject_null_required(self):
        for field in ("name", "type", "data_entry_method", "status", "start_date", "end_date"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class CompetitionUpdateRequest(CompetitionUpdateBody):
    id: int


class CompetitionOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    type: CompetitionType
    data_entry_method: DataEntryMethod
    status: CompetitionStatus
    start_date: datetime
    end_date: datetime
    created_by: int
    assigned_to: Optional[int]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EntryCreateBody(BaseModel):
    user_id: int
    value: float
    unit: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None


class EntryCreateRequest(EntryCreateBody):
    competition_id: int


class EntryUpdateBody(BaseModel):
    value: Optional[float] = None
    unit: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def reject_null_value(self):
        if "value" in self.model_fields_set and self.value is None:
            raise ValueError("value cannot be null")
        return self


class EntryUpdateRequest(EntryUpdateBody):
    id: int


class CompetitionEntryOut(BaseModel):
    id: int
    competition_id: int
    user_id: int
    value: float
    unit: Optional[str]
    notes: Optional[str]
    entered_by: int
    created_at: datetime
    updated_at: datetime

    @field_validator("value", mode="before")
    @classmethod
    def decimal_to_number(cls, value: Any) -> Any:
        if isinstance(value, (Decimal, str)):
            return float(value)
        return value

    class Config:
        from_attributes = True


class DeleteResult(BaseModel):
    success: bool
