"""
Database models
"""
from app.models.company import Company
from app.models.department import Department
from app.models.employee import Employee, Role, AccountStatus
from app.models.shift import Shift
from app.models.office_location import OfficeLocation
from app.models.audit_log import AuditLog
from app.models.attendance import (
    AttendanceRecord,
    AttendanceBreak,
    AttendanceStatus,
    AttendanceType,
)
from app.models.regularization import RegularizationRequest, RegularizationStatus
from app.models.notification import Notification
from app.models.holiday import Holiday
from app.models.leave import LeaveRequest, LeaveStatus

__all__ = [
    "Company",
    "Department",
    "Employee",
    "Role",
    "AccountStatus",
    "Shift",
    "OfficeLocation",
    "AuditLog",
    "AttendanceRecord",
    "AttendanceBreak",
    "AttendanceStatus",
    "AttendanceType",
    "RegularizationRequest",
    "RegularizationStatus",
    "Notification",
    "Holiday",
    "LeaveRequest",
    "LeaveStatus",
]
