"""
Attendance endpoints for the current employee: check-in/out, breaks, today's status,
own history and regularization requests.
Regularization decisions (PUT /regularization/{id}) need MANAGER, HR or ADMIN.
"""
import logging
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.core.deps import get_db, get_current_user, require_attendance_admin
from app.models.attendance import AttendanceStatus
from app.models.employee import Employee, Role
from app.schemas.attendance import (
    AttendanceHistoryResponse,
    BreakEndResponse,
    BreakStartResponse,
    CheckInRequest,
    CheckInResponse,
    CheckOutRequest,
    CheckOutResponse,
    TodayStatusResponse,
)
from app.schemas.regularization import RegularizationCreate, RegularizationDecision, RegularizationOut
from app.services import attendance_service, history_service, regularization_service

router = APIRouter()
_log = logging.getLogger(__name__)


def _client_ip(request: Request) -> Optional[str]:
    """Client IP: X-Forwarded-For (first hop) when behind proxy, else request.client.host."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def _device_info(request: Request, explicit: Optional[str]) -> Optional[str]:
    return explicit or request.headers.get("user-agent")


@router.post("/check-in", response_model=CheckInResponse, status_code=201)
async def check_in_endpoint(
    request: Request,
    body: Optional[CheckInRequest] = None,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Check in for today (company time zone).
    OFFICE check-ins are validated against the company's office geofences.
    """
    payload = body or CheckInRequest()
    record = attendance_service.check_in(
        db,
        current_user.id,
        current_user.company_id,
        type=payload.type.value,
        work_location=payload.work_location,
        location=payload.location.model_dump(exclude_none=True) if payload.location else None,
        note=payload.note,
        ip_address=_client_ip(request),
        device_info=_device_info(request, payload.device_info),
    )
    return CheckInResponse(
        record_id=record.id,
        check_in_time=record.check_in_time,
        status=record.status,
        late_minutes=record.late_minutes,
    )


@router.post("/check-out", response_model=CheckOutResponse)
async def check_out_endpoint(
    request: Request,
    body: Optional[CheckOutRequest] = None,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    payload = body or CheckOutRequest()
    record = attendance_service.check_out(
        db,
        current_user.id,
        current_user.company_id,
        location=payload.location.model_dump(exclude_none=True) if payload.location else None,
        note=payload.note,
        ip_address=_client_ip(request),
        device_info=_device_info(request, payload.device_info),
    )
    return CheckOutResponse(
        record_id=record.id,
        check_in_time=record.check_in_time,
        check_out_time=record.check_out_time,
        total_work_minutes=record.total_work_minutes,
        overtime_minutes=record.overtime_minutes,
        early_leave_minutes=record.early_leave_minutes,
        status=record.status,
    )


@router.post("/break/start", response_model=BreakStartResponse)
async def start_break_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    interval = attendance_service.start_break(db, current_user.id, current_user.company_id)
    return BreakStartResponse(ok=True, sequence=interval.sequence)


@router.post("/break/end", response_model=BreakEndResponse)
async def end_break_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    interval = attendance_service.end_break(db, current_user.id, current_user.company_id)
    return BreakEndResponse(
        duration_minutes=interval.duration_minutes,
        total_break_minutes=interval.record.total_break_minutes,
    )


@router.get("/today", response_model=TodayStatusResponse)
async def today_status(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Today's record plus holiday, weekend and approved-leave overlays."""
    return attendance_service.get_today_status(db, current_user.id, current_user.company_id)


@router.get("/my-history", response_model=AttendanceHistoryResponse)
async def my_history(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status: Optional[AttendanceStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    # Always scoped to the caller, whatever their role
    return history_service.get_history(
        db,
        current_user.company_id,
        current_user,
        employee_id=current_user.id,
        start_date=start_date,
        end_date=end_date,
        status=status.value if status else None,
        page=page,
        limit=limit,
    )


@router.post("/regularization", response_model=RegularizationOut, status_code=201)
async def create_regularization_endpoint(
    body: RegularizationCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return regularization_service.create_regularization(
        db,
        current_user.company_id,
        current_user.id,
        day=body.date,
        reason=body.reason,
        check_in_time=body.check_in_time,
        check_out_time=body.check_out_time,
    )


@router.get("/regularization", response_model=List[RegularizationOut])
async def list_regularizations_endpoint(
    employee_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None, pattern="^(PENDING|APPROVED|REJECTED)$"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Employees see their own requests; MANAGER/HR/ADMIN see the company's."""
    if current_user.role == Role.EMPLOYEE.value:
        employee_id = current_user.id
    return regularization_service.list_regularizations(
        db, current_user.company_id, employee_id=employee_id, status=status
    )


@router.put("/regularization/{request_id}", response_model=RegularizationOut)
async def decide_regularization_endpoint(
    request_id: int,
    body: RegularizationDecision,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_attendance_admin),
):
    """Approve (and reconcile the attendance record) or reject a pending request."""
    _log.info("Regularization %s -> %s by %s", request_id, body.status, current_user.id)
    return regularization_service.decide_regularization(
        db,
        current_user.company_id,
        request_id,
        status=body.status,
        approver_id=current_user.id,
        note=body.note,
        rejection_reason=body.rejection_reason,
    )
