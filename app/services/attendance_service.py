"""
Attendance service - business logic for check-in, check-out, breaks, manual entry and locking
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.constants import DEFAULT_WORKING_DAYS, WORK_LOCATION_HOME, WORK_LOCATION_OFFICE
from app.core.errors import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    BreakAlreadyOpen,
    InvalidDateRange,
    NoActiveBreak,
    NoCheckIn,
    RecordLocked,
    RecordNotApproved,
    RecordNotFound,
)
from app.models.attendance import AttendanceBreak, AttendanceRecord, AttendanceStatus, AttendanceType
from app.models.employee import Employee
from app.services import attendance_store, directory_service, time_calculator
from app.services.audit_service import log_audit
from app.services.geofence import validate_check_in_location
from app.services.shift_resolver import resolve_shift
from app.utils.datetime_utils import ZonedClock, ensure_utc, now_utc, whole_minutes
from app.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)


def clock_for(employee: Employee, now: Optional[datetime] = None) -> ZonedClock:
    """Clock in the employee's company time zone"""
    return ZonedClock(employee.company.timezone, now)


def _location_json(location: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if location is None:
        return None
    return sanitize_for_json({k: v for k, v in location.items() if v is not None})


def late_minutes_for(db: Session, employee: Employee, check_in: datetime, clock: ZonedClock, day: date) -> int:
    """
    Lateness of a check-in against the employee's effective shift on a local date.

    No effective shift means no lateness tracking (0).
    """
    shift = resolve_shift(db, employee)
    if shift is None:
        return 0
    window = time_calculator.shift_window(shift, clock, day)
    grace = time_calculator.effective_grace_minutes(
        shift, directory_service.company_grace_minutes(employee.company)
    )
    return time_calculator.calculate_late_minutes(check_in, window.start, grace)


def check_in(
    db: Session,
    employee_id: int,
    company_id: int,
    *,
    type: str = AttendanceType.OFFICE.value,
    work_location: Optional[str] = None,
    location: Optional[Dict[str, Any]] = None,
    note: Optional[str] = None,
    ip_address: Optional[str] = None,
    device_info: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AttendanceRecord:
    """
    Record today's check-in

    Args:
        db: Database session
        employee_id: ID of the employee checking in
        company_id: Company of the employee
        type: OFFICE / REMOTE / FIELD
        work_location: Explicit work location; defaults to OFFICE for office check-ins, HOME otherwise
        location: {"lat", "lng", "address"} reported by the device
        note, ip_address, device_info: Stored on the record as-is
        now: Current instant (defaults to the wall clock)

    Returns:
        The day's AttendanceRecord

    Raises:
        EmployeeNotFound: employee unknown, inactive or outside the company
        AlreadyCheckedIn: today's record already has a check-in (record unchanged),
            checked before the location so a repeat always gets this error
        LocationRequired / OutsideGeofence: office geofence rejected the check-in
        RecordLocked: today's record is locked
    """
    employee = directory_service.find_active_employee(db, employee_id, company_id)
    company = employee.company
    clock = clock_for(employee, now)
    date_key = clock.day_start_utc()

    existing = attendance_store.find_record(db, employee_id, date_key)
    if existing is not None and existing.check_in_time is not None:
        raise AlreadyCheckedIn()

    validate_check_in_location(
        type,
        location,
        directory_service.list_active_office_locations(db, company_id),
        bool(company.require_gps_tracking),
    )

    check_in_time = clock.now_utc
    late_minutes = late_minutes_for(db, employee, check_in_time, clock, clock.today())

    if work_location is None:
        work_location = WORK_LOCATION_OFFICE if type == AttendanceType.OFFICE.value else WORK_LOCATION_HOME

    values = {
        "check_in_time": check_in_time,
        "check_in_location": _location_json(location),
        "check_in_ip": ip_address,
        "check_in_device": device_info,
        "check_in_note": note,
        "status": AttendanceStatus.PRESENT.value,
        "type": type,
        "work_location": work_location,
        "late_minutes": late_minutes,
    }
    # Guarded upsert still decides when another request checked in since the read above
    record = attendance_store.upsert_record(
        db,
        company_id=company_id,
        employee_id=employee_id,
        date_key=date_key,
        values=values,
        guard=(AttendanceRecord.check_in_time.is_(None)) & (AttendanceRecord.is_locked == False),  # noqa: E712
    )
    if record is None:
        db.rollback()
        existing = attendance_store.find_record(db, employee_id, date_key)
        if existing is not None and existing.is_locked and existing.check_in_time is None:
            raise RecordLocked()
        raise AlreadyCheckedIn()

    db.commit()
    db.refresh(record)
    logger.info("Employee %s checked in (late_minutes=%s, type=%s)", employee_id, late_minutes, type)
    return record


def check_out(
    db: Session,
    employee_id: int,
    company_id: int,
    *,
    location: Optional[Dict[str, Any]] = None,
    note: Optional[str] = None,
    ip_address: Optional[str] = None,
    device_info: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AttendanceRecord:
    """
    Record today's check-out and derive worked, overtime and early-leave minutes

    Lateness recorded at check-in is kept as-is, even for a full day's work.

    Raises:
        NoCheckIn: no record or no check-in today
        AlreadyCheckedOut: check-out already recorded
        RecordLocked: record is locked
        ConcurrentModification: the record changed while computing the check-out
    """
    employee = directory_service.find_active_employee(db, employee_id, company_id)
    company = employee.company
    clock = clock_for(employee, now)
    check_out_time = clock.now_utc

    record = attendance_store.find_record(db, employee_id, clock.day_start_utc())
    if record is None or record.check_in_time is None:
        raise NoCheckIn()
    if record.check_out_time is not None:
        raise AlreadyCheckedOut()
    if record.is_locked:
        raise RecordLocked()

    # An open break ends with the working day
    open_break = record.open_break
    if open_break is not None:
        _close_break(record, open_break, check_out_time)

    total_work_minutes = time_calculator.calculate_work_minutes(
        ensure_utc(record.check_in_time), check_out_time, record.total_break_minutes
    )
    overtime_minutes = 0
    early_leave_minutes = 0

    shift = resolve_shift(db, employee)
    if shift is not None:
        window = time_calculator.shift_window(shift, clock)
        overtime_minutes = time_calculator.calculate_overtime_minutes(
            total_work_minutes, directory_service.company_overtime_threshold(company)
        )
        early_leave_minutes = time_calculator.calculate_early_leave_minutes(
            check_out_time, window.end, total_work_minutes, window.duration_minutes
        )

    record.check_out_time = check_out_time
    if location is not None:
        record.check_out_location = _location_json(location)
    record.check_out_ip = ip_address
    record.check_out_device = device_info
    record.check_out_note = note
    record.total_work_minutes = total_work_minutes
    record.overtime_minutes = overtime_minutes
    record.early_leave_minutes = early_leave_minutes
    record.status = time_calculator.resolve_checkout_status(
        record.status,
        total_work_minutes,
        record.late_minutes,
        shift.half_day_threshold if shift is not None else None,
    )

    attendance_store.save(db, record)
    logger.info(
        "Employee %s checked out (work=%s, overtime=%s, early_leave=%s)",
        employee_id, total_work_minutes, overtime_minutes, early_leave_minutes,
    )
    return record


def _close_break(record: AttendanceRecord, open_break: AttendanceBreak, end_at: datetime) -> None:
    open_break.end_at = end_at
    open_break.duration_minutes = whole_minutes(open_break.start_at, end_at)
    record.total_break_minutes = sum(b.duration_minutes or 0 for b in record.breaks if b.end_at is not None)


def start_break(db: Session, employee_id: int, company_id: int, now: Optional[datetime] = None) -> AttendanceBreak:
    """
    Open a break on today's record

    Raises:
        NoCheckIn: not checked in today
        AlreadyCheckedOut: already checked out
        BreakAlreadyOpen: the last break is still open
    """
    employee = directory_service.find_active_employee(db, employee_id, company_id)
    clock = clock_for(employee, now)

    record = attendance_store.find_record(db, employee_id, clock.day_start_utc())
    if record is None or record.check_in_time is None:
        raise NoCheckIn()
    if record.check_out_time is not None:
        raise AlreadyCheckedOut("Already checked out")
    if record.is_locked:
        raise RecordLocked()
    if record.open_break is not None:
        raise BreakAlreadyOpen()

    interval = AttendanceBreak(
        sequence=len(record.breaks) + 1,
        start_at=clock.now_utc,
        end_at=None,
        duration_minutes=0,
    )
    record.breaks.append(interval)
    # Bump the record version so concurrent writers on the same day collide
    record.updated_at = clock.now_utc

    attendance_store.save(db, record)
    db.refresh(interval)
    return interval


def end_break(db: Session, employee_id: int, company_id: int, now: Optional[datetime] = None) -> AttendanceBreak:
    """
    Close the open break and recompute total_break_minutes

    Raises:
        NoActiveBreak: no record today or no open break
    """
    employee = directory_service.find_active_employee(db, employee_id, company_id)
    clock = clock_for(employee, now)

    record = attendance_store.find_record(db, employee_id, clock.day_start_utc())
    if record is None or record.open_break is None:
        raise NoActiveBreak()
    if record.is_locked:
        raise RecordLocked()

    interval = record.open_break
    _close_break(record, interval, clock.now_utc)
    record.updated_at = clock.now_utc

    attendance_store.save(db, record)
    db.refresh(interval)
    return interval


def get_today_status(db: Session, employee_id: int, company_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Today's record with holiday, weekend and approved-leave overlays"""
    employee = directory_service.find_active_employee(db, employee_id, company_id)
    clock = clock_for(employee, now)
    today = clock.today()

    record = attendance_store.find_record(db, employee_id, clock.day_start_utc())
    holiday = directory_service.find_holiday(db, company_id, today)
    shift = resolve_shift(db, employee)
    working_days = shift.working_days if shift is not None and shift.working_days else DEFAULT_WORKING_DAYS
    is_weekend = clock.weekday() not in working_days
    leave = directory_service.find_approved_leave(db, employee_id, today)

    return {
        "date": today,
        "employee": {
            "id": employee.id,
            "name": employee.name,
            "shift": {
                "name": shift.name,
                "start_time": shift.start_time,
                "end_time": shift.end_time,
            } if shift is not None else None,
        },
        "attendance": record,
        "is_on_break": record is not None and record.open_break is not None,
        "holiday": {"name": holiday.name, "type": holiday.type} if holiday else None,
        "is_weekend": is_weekend,
        "leave": {
            "id": leave.id,
            "type": leave.leave_type,
            "from_date": leave.from_date,
            "to_date": leave.to_date,
        } if leave else None,
    }


def create_manual_entry(
    db: Session,
    company_id: int,
    *,
    employee_id: int,
    day: date,
    reason: str,
    actor_id: int,
    check_in_time: Optional[datetime] = None,
    check_out_time: Optional[datetime] = None,
    status: Optional[str] = None,
    type: Optional[str] = None,
    late_minutes: Optional[int] = None,
    overtime_minutes: Optional[int] = None,
) -> AttendanceRecord:
    """
    Create or overwrite an employee's record for a local date (admin action)

    Raises:
        EmployeeNotFound: employee unknown, inactive or outside the company
        InvalidDateRange: check-out before check-in
        RecordLocked: the existing record is locked
    """
    employee = directory_service.find_active_employee(db, employee_id, company_id)
    clock = clock_for(employee)

    check_in_time = ensure_utc(check_in_time)
    check_out_time = ensure_utc(check_out_time)
    total_work_minutes = 0
    if check_in_time and check_out_time:
        if check_out_time < check_in_time:
            raise InvalidDateRange("check_out_time must be after check_in_time")
        total_work_minutes = whole_minutes(check_in_time, check_out_time)

    values = {
        "check_in_time": check_in_time,
        "check_out_time": check_out_time,
        "status": status or AttendanceStatus.PRESENT.value,
        "type": type or AttendanceType.OFFICE.value,
        "total_work_minutes": total_work_minutes,
        "late_minutes": late_minutes or 0,
        "overtime_minutes": overtime_minutes or 0,
        "is_manual_entry": True,
        "manual_entry_reason": reason,
    }
    record = attendance_store.upsert_record(
        db,
        company_id=company_id,
        employee_id=employee_id,
        date_key=clock.day_start_utc(day),
        values=values,
        guard=(AttendanceRecord.is_locked == False),  # noqa: E712
    )
    if record is None:
        db.rollback()
        raise RecordLocked()
    db.commit()
    db.refresh(record)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="ATTENDANCE_MANUAL_ENTRY",
        entity_type="attendance_records",
        entity_id=record.id,
        meta={"employee_id": employee_id, "date": day, "reason": reason},
        company_id=company_id,
    )
    logger.info("Manual attendance entry for employee %s on %s by %s", employee_id, day, actor_id)
    return record


def approve_record(db: Session, record_id: int, company_id: int, approver_id: int) -> AttendanceRecord:
    record = attendance_store.get_company_record(db, record_id, company_id)
    if not record:
        raise RecordNotFound()

    record.is_approved = True
    record.approved_by = approver_id
    record.approved_at = now_utc()
    attendance_store.save(db, record)

    log_audit(db, approver_id, "ATTENDANCE_APPROVE", "attendance_records", record.id, company_id=company_id)
    return record


def lock_record(db: Session, record_id: int, company_id: int, actor_id: int) -> AttendanceRecord:
    """
    Lock an approved record

    Raises:
        RecordNotFound: record unknown in this company
        RecordNotApproved: record must be approved before locking
    """
    record = attendance_store.get_company_record(db, record_id, company_id)
    if not record:
        raise RecordNotFound()
    if not record.is_approved:
        raise RecordNotApproved()

    record.is_locked = True
    record.locked_at = now_utc()
    attendance_store.save(db, record)

    log_audit(db, actor_id, "ATTENDANCE_LOCK", "attendance_records", record.id, company_id=company_id)
    return record


def unlock_record(db: Session, record_id: int, company_id: int, actor_id: int) -> AttendanceRecord:
    record = attendance_store.get_company_record(db, record_id, company_id)
    if not record:
        raise RecordNotFound()

    record.is_locked = False
    record.locked_at = None
    attendance_store.save(db, record)

    log_audit(db, actor_id, "ATTENDANCE_UNLOCK", "attendance_records", record.id, company_id=company_id)
    return record


def bulk_lock(db: Session, company_id: int, start_date: date, end_date: date, actor_id: int) -> int:
    """
    Lock every approved, unlocked record of the company between two local dates (inclusive)

    Returns:
        Number of records locked
    """
    if start_date > end_date:
        raise InvalidDateRange()
    company = directory_service.get_company(db, company_id)
    clock = ZonedClock(company.timezone)

    locked_count = attendance_store.lock_approved_between(
        db, company_id, clock.day_start_utc(start_date), clock.day_end_utc(end_date)
    )
    log_audit(
        db,
        actor_id,
        "ATTENDANCE_BULK_LOCK",
        "attendance_records",
        meta={"start_date": start_date, "end_date": end_date, "locked_count": locked_count},
        company_id=company_id,
    )
    logger.info("Bulk-locked %s attendance records for company %s", locked_count, company_id)
    return locked_count
