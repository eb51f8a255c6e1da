"""
Tests for today's status overlays
"""
from datetime import date, datetime, timezone

from app.models.holiday import Holiday
from app.models.leave import LeaveRequest
from app.services import attendance_service

UTC = timezone.utc


def _status(db, employee, now):
    return attendance_service.get_today_status(db, employee.id, employee.company_id, now=now)


def test_working_day_without_record(db, employee):
    status = _status(db, employee, datetime(2026, 3, 2, 8, 0, tzinfo=UTC))

    assert status["date"] == date(2026, 3, 2)
    assert status["attendance"] is None
    assert status["is_weekend"] is False
    assert status["holiday"] is None
    assert status["leave"] is None
    assert status["employee"]["shift"] == {"name": "General", "start_time": "09:00", "end_time": "18:00"}


def test_record_is_returned_after_check_in(db, employee):
    now = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
    record = attendance_service.check_in(db, employee.id, employee.company_id, now=now)

    status = _status(db, employee, now)

    assert status["attendance"].id == record.id
    assert status["is_on_break"] is False


def test_open_break_is_reported(db, employee):
    attendance_service.check_in(db, employee.id, employee.company_id, now=datetime(2026, 3, 2, 9, 0, tzinfo=UTC))
    attendance_service.start_break(db, employee.id, employee.company_id, now=datetime(2026, 3, 2, 12, 0, tzinfo=UTC))

    status = _status(db, employee, datetime(2026, 3, 2, 12, 10, tzinfo=UTC))

    assert status["is_on_break"] is True


def test_weekend_follows_shift_working_days(db, shift, employee):
    saturday = datetime(2026, 3, 7, 10, 0, tzinfo=UTC)
    assert _status(db, employee, saturday)["is_weekend"] is True

    shift.working_days = [1, 2, 3, 4, 5, 6]
    db.commit()

    assert _status(db, employee, saturday)["is_weekend"] is False


def test_weekend_without_shift(db, make_employee):
    unassigned = make_employee()

    status = _status(db, unassigned, datetime(2026, 3, 8, 10, 0, tzinfo=UTC))

    assert status["is_weekend"] is True
    assert status["employee"]["shift"] is None


def test_holiday_and_leave_overlays(db, company, employee):
    db.add(Holiday(company_id=company.id, date=date(2026, 3, 2), name="Founders Day", type="COMPANY"))
    db.add(LeaveRequest(
        company_id=company.id,
        employee_id=employee.id,
        leave_type="SL",
        from_date=date(2026, 3, 1),
        to_date=date(2026, 3, 3),
        status="APPROVED",
    ))
    db.commit()

    status = _status(db, employee, datetime(2026, 3, 2, 10, 0, tzinfo=UTC))

    assert status["holiday"] == {"name": "Founders Day", "type": "COMPANY"}
    assert status["leave"]["type"] == "SL"
    assert status["leave"]["to_date"] == date(2026, 3, 3)


def test_pending_leave_not_shown(db, company, employee):
    db.add(LeaveRequest(
        company_id=company.id,
        employee_id=employee.id,
        leave_type="CL",
        from_date=date(2026, 3, 2),
        to_date=date(2026, 3, 2),
        status="PENDING",
    ))
    db.commit()

    assert _status(db, employee, datetime(2026, 3, 2, 10, 0, tzinfo=UTC))["leave"] is None
