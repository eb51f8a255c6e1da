"""
Regularization service - attendance correction requests and their reconciliation

Approving a request merges the corrected times into the employee's record for
that local date, deleting duplicate records of the same date, all inside the
transaction that flips the request out of PENDING.
"""
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import (
    NOTIFICATION_REGULARIZATION_APPROVED,
    NOTIFICATION_REGULARIZATION_REJECTED,
)
from app.core.errors import (
    DuplicatePendingRegularization,
    InvalidDateRange,
    RequestAlreadyProcessed,
    RequestNotFound,
)
from app.models.attendance import AttendanceRecord, AttendanceStatus, AttendanceType
from app.models.employee import Employee
from app.models.regularization import RegularizationRequest, RegularizationStatus
from app.services import attendance_store, directory_service
from app.services.attendance_service import clock_for, late_minutes_for
from app.services.audit_service import log_audit
from app.services.notification_service import create_notification
from app.utils.datetime_utils import ZonedClock, ensure_utc, now_utc, whole_minutes

logger = logging.getLogger(__name__)


def create_regularization(
    db: Session,
    company_id: int,
    employee_id: int,
    *,
    day: date,
    reason: str,
    check_in_time: Optional[datetime] = None,
    check_out_time: Optional[datetime] = None,
) -> RegularizationRequest:
    """
    Submit a correction request for one local date

    Raises:
        InvalidDateRange: check-out before check-in
        DuplicatePendingRegularization: a PENDING request for the same date exists
    """
    directory_service.find_active_employee(db, employee_id, company_id)

    check_in_time = ensure_utc(check_in_time)
    check_out_time = ensure_utc(check_out_time)
    if check_in_time and check_out_time and check_out_time < check_in_time:
        raise InvalidDateRange("check_out_time must be after check_in_time")

    existing = db.query(RegularizationRequest.id).filter(
        RegularizationRequest.employee_id == employee_id,
        RegularizationRequest.date == day,
        RegularizationRequest.status == RegularizationStatus.PENDING.value,
    ).first()
    if existing:
        raise DuplicatePendingRegularization()

    request = RegularizationRequest(
        company_id=company_id,
        employee_id=employee_id,
        date=day,
        check_in_time=check_in_time,
        check_out_time=check_out_time,
        reason=reason,
        status=RegularizationStatus.PENDING.value,
    )
    db.add(request)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent submission for the same date
        db.rollback()
        raise DuplicatePendingRegularization()
    db.refresh(request)
    logger.info("Regularization %s submitted by employee %s for %s", request.id, employee_id, day)
    return request


def list_regularizations(
    db: Session,
    company_id: int,
    employee_id: Optional[int] = None,
    status: Optional[str] = None,
) -> List[RegularizationRequest]:
    query = db.query(RegularizationRequest).filter(RegularizationRequest.company_id == company_id)
    if employee_id is not None:
        query = query.filter(RegularizationRequest.employee_id == employee_id)
    if status:
        query = query.filter(RegularizationRequest.status == status)
    return query.order_by(RegularizationRequest.created_at.desc(), RegularizationRequest.id.desc()).all()


def find_matching_records(db: Session, employee_id: int, day: date, clock: ZonedClock) -> List[AttendanceRecord]:
    """
    Records of the employee whose normalized date falls on the given local date.

    Records are searched in a tolerance band of REGULARIZATION_SEARCH_WINDOW_DAYS
    around the date to catch keys written with a drifted day boundary, then
    filtered to the exact local date. Oldest record first.
    """
    window = timedelta(days=settings.REGULARIZATION_SEARCH_WINDOW_DAYS)
    nearby = attendance_store.find_records_between(
        db,
        employee_id,
        clock.day_start_utc(day) - window,
        clock.day_start_utc(day) + window,
    )
    return [record for record in nearby if clock.local_date_of(record.date) == day]


def reconcile(db: Session, request: RegularizationRequest, employee: Employee) -> AttendanceRecord:
    """
    Apply an approved request to the attendance table. Does not commit.

    The first matching record is updated in place with the merged times, any
    other record of the same date is deleted, and a new record is created when
    none exists.
    """
    clock = clock_for(employee)
    matches = find_matching_records(db, request.employee_id, request.date, clock)
    primary = matches[0] if matches else None

    # Request values win; missing ones fall back to the stored records, never to null
    check_in = ensure_utc(request.check_in_time) or next(
        (ensure_utc(r.check_in_time) for r in matches if r.check_in_time), None
    )
    check_out = ensure_utc(request.check_out_time) or next(
        (ensure_utc(r.check_out_time) for r in matches if r.check_out_time), None
    )

    total_work_minutes = 0
    if check_in and check_out:
        break_minutes = primary.total_break_minutes if primary is not None else 0
        total_work_minutes = max(0, whole_minutes(check_in, check_out) - (break_minutes or 0))

    late_minutes = 0
    if check_in:
        late_minutes = late_minutes_for(db, employee, check_in, clock, request.date)

    values = {
        "status": AttendanceStatus.PRESENT.value,
        "is_manual_entry": True,
        "manual_entry_reason": f"Regularization approved: {request.reason}",
        "total_work_minutes": total_work_minutes,
        "late_minutes": late_minutes,
    }
    if check_in:
        values["check_in_time"] = check_in
    if check_out:
        values["check_out_time"] = check_out

    if primary is None:
        primary = AttendanceRecord(
            company_id=request.company_id,
            employee_id=request.employee_id,
            date=clock.day_start_utc(request.date),
            type=AttendanceType.OFFICE.value,
            **values,
        )
        db.add(primary)
    else:
        for key, value in values.items():
            setattr(primary, key, value)
        for duplicate in matches[1:]:
            logger.warning(
                "Deleting duplicate attendance record %s (kept %s) for employee %s on %s",
                duplicate.id, primary.id, request.employee_id, request.date,
            )
            db.delete(duplicate)

    db.flush()
    return primary


def decide_regularization(
    db: Session,
    company_id: int,
    request_id: int,
    *,
    status: str,
    approver_id: int,
    note: Optional[str] = None,
    rejection_reason: Optional[str] = None,
) -> RegularizationRequest:
    """
    Approve or reject a PENDING request

    The PENDING -> decided transition is a conditional UPDATE, so a request can
    only be decided once. Approval and reconciliation share one transaction.

    Raises:
        RequestNotFound: request unknown in this company
        RequestAlreadyProcessed: request is no longer PENDING
    """
    request = db.query(RegularizationRequest).filter(
        RegularizationRequest.id == request_id,
        RegularizationRequest.company_id == company_id,
    ).first()
    if not request:
        raise RequestNotFound()

    result = db.execute(
        update(RegularizationRequest)
        .where(
            RegularizationRequest.id == request_id,
            RegularizationRequest.status == RegularizationStatus.PENDING.value,
        )
        .values(
            status=status,
            approver_id=approver_id,
            approver_note=note,
            rejection_reason=rejection_reason if status == RegularizationStatus.REJECTED.value else None,
            decided_at=now_utc(),
            updated_at=now_utc(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise RequestAlreadyProcessed()

    db.refresh(request)
    try:
        record = None
        if status == RegularizationStatus.APPROVED.value:
            employee = db.get(Employee, request.employee_id)
            record = reconcile(db, request, employee)
        log_audit(
            db,
            approver_id,
            f"REGULARIZATION_{status}",
            "regularization_requests",
            request.id,
            meta={
                "employee_id": request.employee_id,
                "date": request.date,
                "attendance_record_id": record.id if record is not None else None,
            },
            company_id=company_id,
            commit=False,
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Regularization %s failed, rolled back", request_id)
        raise
    db.refresh(request)

    approved = status == RegularizationStatus.APPROVED.value
    create_notification(
        db,
        company_id=company_id,
        user_id=request.employee_id,
        type=NOTIFICATION_REGULARIZATION_APPROVED if approved else NOTIFICATION_REGULARIZATION_REJECTED,
        title="Regularization Approved" if approved else "Regularization Rejected",
        message=(
            f"Your attendance correction for {request.date.isoformat()} was approved."
            if approved
            else f"Your attendance correction for {request.date.isoformat()} was rejected."
            + (f" Reason: {rejection_reason}" if rejection_reason else "")
        ),
        entity_id=request.id,
        entity_type="RegularizationRequest",
    )
    return request
