"""
Read-side attendance rollups: filtered history with summary counts and dashboard figures
"""
import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from fastapi import HTTPException, status as http_status
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.errors import InvalidDateRange
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.employee import Employee, Role
from app.models.leave import LeaveRequest, LeaveStatus
from app.services import directory_service, time_calculator
from app.services.shift_resolver import resolve_shift
from app.utils.datetime_utils import ZonedClock

logger = logging.getLogger(__name__)


def count_business_days(start: date, end: date) -> int:
    """Monday-Friday days in [start, end]"""
    if end < start:
        return 0
    days = (end - start).days + 1
    full_weeks, remainder = divmod(days, 7)
    count = full_weeks * 5
    for offset in range(remainder):
        if (start + timedelta(days=full_weeks * 7 + offset)).isoweekday() <= 5:
            count += 1
    return count


def _is_late(db: Session, record: AttendanceRecord, clock: ZonedClock, shift_cache: Dict[int, Any]) -> bool:
    """Lateness recomputed from the employee's shift rather than read from the record"""
    if record.check_in_time is None:
        return False
    employee = record.employee
    if employee.id not in shift_cache:
        shift_cache[employee.id] = resolve_shift(db, employee)
    shift = shift_cache[employee.id]
    if shift is None:
        return False
    day = clock.local_date_of(record.date)
    window = time_calculator.shift_window(shift, clock, day)
    grace = time_calculator.effective_grace_minutes(
        shift, directory_service.company_grace_minutes(employee.company)
    )
    return time_calculator.calculate_late_minutes(record.check_in_time, window.start, grace) > 0


def get_history(
    db: Session,
    company_id: int,
    requesting_user: Employee,
    *,
    employee_id: Optional[int] = None,
    department_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Paginated attendance history with summary counts

    Employees only see their own records. When both start_date and end_date are
    given and no status filter is set, "absent" also counts expected working
    days that have no record at all.

    Returns:
        {"items": [...], "summary": {present, absent, late, on_leave}, "meta": {page, limit, total, total_pages}}
    """
    if start_date and end_date and start_date > end_date:
        raise InvalidDateRange()

    if requesting_user.role == Role.EMPLOYEE.value:
        if employee_id is not None and employee_id != requesting_user.id:
            raise HTTPException(
                status_code=http_status.HTTP_403_FORBIDDEN,
                detail="You can only view your own attendance"
            )
        employee_id = requesting_user.id

    company = directory_service.get_company(db, company_id)
    clock = ZonedClock(company.timezone, now)

    query = db.query(AttendanceRecord).filter(AttendanceRecord.company_id == company_id)
    if employee_id is not None:
        query = query.filter(AttendanceRecord.employee_id == employee_id)
    if department_id is not None:
        query = query.join(Employee, AttendanceRecord.employee_id == Employee.id).filter(
            Employee.department_id == department_id
        )
    if start_date:
        query = query.filter(AttendanceRecord.date >= clock.day_start_utc(start_date))
    if end_date:
        query = query.filter(AttendanceRecord.date < clock.day_end_utc(end_date))

    summary_query = query
    if status:
        query = query.filter(AttendanceRecord.status == status)
        summary_query = query

    total = query.count()
    items = query.options(
        joinedload(AttendanceRecord.employee),
        selectinload(AttendanceRecord.breaks),
    ).order_by(
        AttendanceRecord.date.desc(), AttendanceRecord.id.desc()
    ).offset((page - 1) * limit).limit(limit).all()

    counts = dict(
        summary_query.with_entities(AttendanceRecord.status, func.count(AttendanceRecord.id))
        .group_by(AttendanceRecord.status)
        .all()
    )
    present = counts.get(AttendanceStatus.PRESENT.value, 0)
    half_day = counts.get(AttendanceStatus.HALF_DAY.value, 0)
    absent = counts.get(AttendanceStatus.ABSENT.value, 0)
    on_leave = counts.get(AttendanceStatus.ON_LEAVE.value, 0)

    shift_cache: Dict[int, Any] = {}
    late = sum(
        1 for record in summary_query.options(joinedload(AttendanceRecord.employee)).all()
        if _is_late(db, record, clock, shift_cache)
    )

    calculated_absent = 0
    if start_date and end_date and not status:
        # Days after today are not absences yet
        end = min(end_date, clock.today())
        holidays = [
            d for d in directory_service.list_holiday_dates(db, company_id, start_date, end)
            if d.isoweekday() <= 5
        ]
        working_days = max(0, count_business_days(start_date, end) - len(holidays))

        employee_query = db.query(func.count(Employee.id)).filter(
            Employee.company_id == company_id,
            Employee.active == True,  # noqa: E712
        )
        if employee_id is not None:
            employee_query = employee_query.filter(Employee.id == employee_id)
        if department_id is not None:
            employee_query = employee_query.filter(Employee.department_id == department_id)
        employees_in_scope = employee_query.scalar() or 0

        expected = employees_in_scope * working_days
        calculated_absent = max(0, expected - (present + half_day + on_leave))

    return {
        "items": items,
        "summary": {
            "present": present + half_day,
            "absent": absent + calculated_absent,
            "late": late,
            "on_leave": on_leave,
        },
        "meta": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
        },
    }


def get_dashboard_stats(db: Session, company_id: int, day: Optional[date] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Today / this week / this month figures for the admin dashboard"""
    company = directory_service.get_company(db, company_id)
    clock = ZonedClock(company.timezone, now)
    day = day or clock.today()
    week_start = day - timedelta(days=day.isoweekday() - 1)
    week_end = week_start + timedelta(days=6)
    month_start = day.replace(day=1)

    total_employees = db.query(func.count(Employee.id)).filter(
        Employee.company_id == company_id,
        Employee.active == True,  # noqa: E712
    ).scalar() or 0

    today_records = db.query(AttendanceRecord).filter(
        AttendanceRecord.company_id == company_id,
        AttendanceRecord.date >= clock.day_start_utc(day),
        AttendanceRecord.date < clock.day_end_utc(day),
    ).all()
    present_statuses = (AttendanceStatus.PRESENT.value, AttendanceStatus.HALF_DAY.value)
    present_today = sum(1 for r in today_records if r.status in present_statuses)
    late_today = sum(1 for r in today_records if (r.late_minutes or 0) > 0)

    on_leave_today = db.query(func.count(LeaveRequest.id)).filter(
        LeaveRequest.company_id == company_id,
        LeaveRequest.status == LeaveStatus.APPROVED.value,
        LeaveRequest.from_date <= day,
        LeaveRequest.to_date >= day,
    ).scalar() or 0

    weekly = dict(
        db.query(AttendanceRecord.status, func.count(AttendanceRecord.id)).filter(
            AttendanceRecord.company_id == company_id,
            AttendanceRecord.date >= clock.day_start_utc(week_start),
            AttendanceRecord.date < clock.day_end_utc(week_end),
        ).group_by(AttendanceRecord.status).all()
    )

    monthly_attendance = db.query(func.count(AttendanceRecord.id)).filter(
        AttendanceRecord.company_id == company_id,
        AttendanceRecord.date >= clock.day_start_utc(month_start),
        AttendanceRecord.date < clock.day_end_utc(day),
        AttendanceRecord.status.in_(present_statuses),
    ).scalar() or 0
    working_days = count_business_days(month_start, day)
    expected = total_employees * working_days

    return {
        "today": {
            "date": day,
            "total_employees": total_employees,
            "present": present_today,
            "absent": max(0, total_employees - present_today - on_leave_today),
            "late": late_today,
            "on_leave": on_leave_today,
            "attendance_rate": round(present_today / total_employees * 100, 1) if total_employees else 0.0,
        },
        "weekly": {
            "start_date": week_start,
            "end_date": week_end,
            "breakdown": weekly,
        },
        "monthly": {
            "month": day.strftime("%B %Y"),
            "total_attendance": monthly_attendance,
            "attendance_rate": round(monthly_attendance / expected * 100, 1) if expected else 0.0,
            "working_days": working_days,
        },
    }
