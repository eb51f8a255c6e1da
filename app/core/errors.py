"""
Central error handling for the attendance engine

Domain errors subclass HTTPException so services can raise them directly and the
handlers below render them like any other HTTP error, with a stable ``code``.
"""
import logging
import traceback

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class AttendanceError(HTTPException):
    """Base class for attendance domain errors"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "ATTENDANCE_ERROR"
    default_detail = "Attendance operation failed"

    def __init__(self, detail: str = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


# --- Validation ---

class LocationRequired(AttendanceError):
    code = "LOCATION_REQUIRED"
    default_detail = "GPS location is required for office check-in"


class InvalidDateRange(AttendanceError):
    code = "INVALID_DATE_RANGE"
    default_detail = "start_date must be less than or equal to end_date"


# --- Conflict ---

class AlreadyCheckedIn(AttendanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_CHECKED_IN"
    default_detail = "Already checked in today"


class AlreadyCheckedOut(AttendanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_CHECKED_OUT"
    default_detail = "Already checked out today"


class NoCheckIn(AttendanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "NO_CHECK_IN"
    default_detail = "Please check in first"


class BreakAlreadyOpen(AttendanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "BREAK_ALREADY_OPEN"
    default_detail = "Please end your current break first"


class NoActiveBreak(AttendanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "NO_ACTIVE_BREAK"
    default_detail = "No active break found"


class DuplicatePendingRegularization(AttendanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "DUPLICATE_PENDING_REGULARIZATION"
    default_detail = "A pending request for this date already exists"


class RequestAlreadyProcessed(AttendanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "REQUEST_ALREADY_PROCESSED"
    default_detail = "Request is already processed"


class ConcurrentModification(AttendanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONCURRENT_MODIFICATION"
    default_detail = "Attendance record was modified by another request, please retry"


# --- Forbidden ---

class RecordLocked(AttendanceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "RECORD_LOCKED"
    default_detail = "Attendance record is locked"


class OutsideGeofence(AttendanceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "OUTSIDE_GEOFENCE"
    default_detail = "You are outside the office geofence. Please mark attendance as Remote/Field if allowed."


class RecordNotApproved(AttendanceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "RECORD_NOT_APPROVED"
    default_detail = "Attendance must be approved before locking"


# --- Not found ---

class EmployeeNotFound(AttendanceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "EMPLOYEE_NOT_FOUND"
    default_detail = "Employee not found"


class CompanyNotFound(AttendanceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "COMPANY_NOT_FOUND"
    default_detail = "Company not found"


class RecordNotFound(AttendanceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "RECORD_NOT_FOUND"
    default_detail = "Attendance record not found"


class RequestNotFound(AttendanceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "REQUEST_NOT_FOUND"
    default_detail = "Regularization request not found"


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    content = {
        "error": True,
        "status_code": exc.status_code,
        "detail": exc.detail,
        "path": str(request.url.path)
    }
    if isinstance(exc, AttendanceError):
        content["code"] = exc.code
        if exc.status_code == status.HTTP_403_FORBIDDEN:
            logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    from app.core.config import settings

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "status_code": 422,
                "detail": "Validation error: Invalid request data",
                "path": str(request.url.path)
            }
        )

    # Sanitize for JSON: e.g. ctx.error ValueError -> str
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": True,
            "status_code": 422,
            "detail": "Validation error",
            "errors": errors,
            "path": str(request.url.path)
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from app.core.config import settings

    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "status_code": 500,
                "detail": "Internal server error",
                "path": str(request.url.path)
            }
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": True,
            "status_code": 500,
            "detail": str(exc),
            "path": str(request.url.path),
            "traceback": traceback.format_exc() if settings.APP_ENV == "local" else None
        }
    )
