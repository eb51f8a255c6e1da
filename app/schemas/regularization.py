"""
Regularization schemas
"""
from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from app.utils.datetime_utils import iso_8601_utc


class RegularizationCreate(BaseModel):
    date: date
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    reason: str = Field(..., min_length=1, max_length=500)

    @model_validator(mode="after")
    def _check_times(self):
        if self.check_in_time is None and self.check_out_time is None:
            raise ValueError("At least one of check_in_time or check_out_time is required")
        return self


class RegularizationDecision(BaseModel):
    status: Literal["APPROVED", "REJECTED"]
    note: Optional[str] = Field(None, max_length=500)
    rejection_reason: Optional[str] = Field(None, max_length=500)


class RegularizationOut(BaseModel):
    id: int
    company_id: int
    employee_id: int
    date: date
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    reason: str
    status: str
    approver_id: Optional[int] = None
    approver_note: Optional[str] = None
    rejection_reason: Optional[str] = None
    decided_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("check_in_time", "check_out_time", "decided_at", "created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)
