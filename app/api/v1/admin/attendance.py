"""
Admin attendance endpoints: company history, dashboard, manual entry, approval and locking.
All routes are scoped to the caller's company.
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.core.deps import get_db, require_attendance_admin
from app.models.attendance import AttendanceStatus
from app.models.employee import Employee
from app.schemas.attendance import (
    AttendanceHistoryResponse,
    AttendanceRecordOut,
    BulkLockRequest,
    BulkLockResponse,
    DashboardStatsResponse,
    ManualEntryRequest,
)
from app.services import attendance_service, history_service

router = APIRouter()


@router.get("/history", response_model=AttendanceHistoryResponse)
async def attendance_history(
    employee_id: Optional[int] = Query(None),
    department_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status: Optional[AttendanceStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_attendance_admin),
):
    """Filtered, paginated history with present/absent/late/on-leave summary."""
    return history_service.get_history(
        db,
        current_user.company_id,
        current_user,
        employee_id=employee_id,
        department_id=department_id,
        start_date=start_date,
        end_date=end_date,
        status=status.value if status else None,
        page=page,
        limit=limit,
    )


@router.get("/dashboard", response_model=DashboardStatsResponse)
async def dashboard_stats(
    day: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_attendance_admin),
):
    return history_service.get_dashboard_stats(db, current_user.company_id, day)


@router.post("/manual", response_model=AttendanceRecordOut, status_code=201)
async def manual_entry(
    body: ManualEntryRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_attendance_admin),
):
    """Create or overwrite an employee's record for a date. Locked records are refused."""
    return attendance_service.create_manual_entry(
        db,
        current_user.company_id,
        employee_id=body.employee_id,
        day=body.date,
        reason=body.reason,
        actor_id=current_user.id,
        check_in_time=body.check_in_time,
        check_out_time=body.check_out_time,
        status=body.status.value if body.status else None,
        type=body.type.value if body.type else None,
        late_minutes=body.late_minutes,
        overtime_minutes=body.overtime_minutes,
    )


@router.put("/{record_id}/approve", response_model=AttendanceRecordOut)
async def approve_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_attendance_admin),
):
    return attendance_service.approve_record(db, record_id, current_user.company_id, current_user.id)


@router.put("/{record_id}/lock", response_model=AttendanceRecordOut)
async def lock_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_attendance_admin),
):
    return attendance_service.lock_record(db, record_id, current_user.company_id, current_user.id)


@router.put("/{record_id}/unlock", response_model=AttendanceRecordOut)
async def unlock_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_attendance_admin),
):
    return attendance_service.unlock_record(db, record_id, current_user.company_id, current_user.id)


@router.post("/bulk-lock", response_model=BulkLockResponse)
async def bulk_lock(
    body: BulkLockRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_attendance_admin),
):
    """Lock every approved, unlocked record between start_date and end_date (inclusive)."""
    locked_count = attendance_service.bulk_lock(
        db, current_user.company_id, body.start_date, body.end_date, current_user.id
    )
    return BulkLockResponse(locked_count=locked_count)
