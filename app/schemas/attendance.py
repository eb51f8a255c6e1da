"""
Attendance schemas. All datetimes are returned as ISO-8601 UTC ("Z").
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from app.models.attendance import AttendanceStatus, AttendanceType
from app.utils.datetime_utils import iso_8601_utc


class GeoSchema(BaseModel):
    """Geo payload for check-in/out: lat, lng required; optional accuracy and address."""
    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lng: float = Field(..., ge=-180, le=180, description="Longitude")
    accuracy: Optional[float] = Field(None, gt=0)
    address: Optional[str] = None


class CheckInRequest(BaseModel):
    """Schema for check-in request"""
    type: AttendanceType = Field(default=AttendanceType.OFFICE, description="OFFICE, REMOTE or FIELD")
    work_location: Optional[str] = Field(None, max_length=100, description="Defaults to OFFICE for office check-ins, HOME otherwise")
    location: Optional[GeoSchema] = None
    note: Optional[str] = Field(None, max_length=500)
    device_info: Optional[str] = Field(None, max_length=255)


class CheckOutRequest(BaseModel):
    """Schema for check-out request"""
    location: Optional[GeoSchema] = None
    note: Optional[str] = Field(None, max_length=500)
    device_info: Optional[str] = Field(None, max_length=255)


class BreakOut(BaseModel):
    sequence: int
    start_at: datetime
    end_at: Optional[datetime] = None
    duration_minutes: int

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("start_at", "end_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class AttendanceRecordOut(BaseModel):
    """Schema for attendance record output"""
    id: int
    company_id: int
    employee_id: int
    date: datetime
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    check_in_location: Optional[Dict[str, Any]] = None
    check_out_location: Optional[Dict[str, Any]] = None
    check_in_note: Optional[str] = None
    check_out_note: Optional[str] = None
    status: str
    type: str
    work_location: Optional[str] = None
    breaks: List[BreakOut] = []
    is_on_break: bool = False
    total_break_minutes: int
    total_work_minutes: int
    late_minutes: int
    overtime_minutes: int
    early_leave_minutes: int
    is_manual_entry: bool
    manual_entry_reason: Optional[str] = None
    is_approved: bool
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    is_locked: bool
    locked_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("date", "check_in_time", "check_out_time", "approved_at", "locked_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class CheckInResponse(BaseModel):
    record_id: int
    check_in_time: datetime
    status: str
    late_minutes: int

    @field_serializer("check_in_time", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: datetime) -> Optional[str]:
        return iso_8601_utc(dt)


class CheckOutResponse(BaseModel):
    record_id: int
    check_in_time: datetime
    check_out_time: datetime
    total_work_minutes: int
    overtime_minutes: int
    early_leave_minutes: int
    status: str

    @field_serializer("check_in_time", "check_out_time", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: datetime) -> Optional[str]:
        return iso_8601_utc(dt)


class BreakStartResponse(BaseModel):
    ok: bool = True
    sequence: int


class BreakEndResponse(BaseModel):
    duration_minutes: int
    total_break_minutes: int


class ShiftSummary(BaseModel):
    name: str
    start_time: str
    end_time: str


class EmployeeSummary(BaseModel):
    id: int
    name: str
    shift: Optional[ShiftSummary] = None


class HolidaySummary(BaseModel):
    name: str
    type: str


class LeaveSummary(BaseModel):
    id: int
    type: str
    from_date: date
    to_date: date


class TodayStatusResponse(BaseModel):
    date: date
    employee: EmployeeSummary
    attendance: Optional[AttendanceRecordOut] = None
    is_on_break: bool = False
    holiday: Optional[HolidaySummary] = None
    is_weekend: bool
    leave: Optional[LeaveSummary] = None


class ManualEntryRequest(BaseModel):
    """Schema for HR/admin manual attendance entry"""
    employee_id: int
    date: date
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    status: Optional[AttendanceStatus] = None
    type: Optional[AttendanceType] = None
    late_minutes: Optional[int] = Field(None, ge=0)
    overtime_minutes: Optional[int] = Field(None, ge=0)
    reason: str = Field(..., min_length=1, max_length=500)


class BulkLockRequest(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_range(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must be less than or equal to end_date")
        return self


class BulkLockResponse(BaseModel):
    locked_count: int


class HistorySummary(BaseModel):
    present: int
    absent: int
    late: int
    on_leave: int


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AttendanceHistoryResponse(BaseModel):
    items: List[AttendanceRecordOut]
    summary: HistorySummary
    meta: PageMeta


class DashboardToday(BaseModel):
    date: date
    total_employees: int
    present: int
    absent: int
    late: int
    on_leave: int
    attendance_rate: float


class DashboardWeekly(BaseModel):
    start_date: date
    end_date: date
    breakdown: Dict[str, int]


class DashboardMonthly(BaseModel):
    month: str
    total_attendance: int
    attendance_rate: float
    working_days: int


class DashboardStatsResponse(BaseModel):
    today: DashboardToday
    weekly: DashboardWeekly
    monthly: DashboardMonthly
