"""
Tests for check-in: lateness, shift resolution, date keys and the one-record-per-day rule
"""
from datetime import datetime, timezone

import pytest

from app.core.errors import AlreadyCheckedIn, EmployeeNotFound, OutsideGeofence, RecordLocked
from app.models.attendance import AttendanceRecord
from app.models.company import Company
from app.models.office_location import OfficeLocation
from app.models.shift import Shift
from app.services import attendance_service
from app.utils.datetime_utils import ensure_utc

UTC = timezone.utc


def at(hour, minute=0, second=0, day=2):
    """Instant on Monday 2026-03-02 (UTC) unless another March day is given"""
    return datetime(2026, 3, day, hour, minute, second, tzinfo=UTC)


def _check_in(db, employee, now, **kwargs):
    return attendance_service.check_in(db, employee.id, employee.company_id, now=now, **kwargs)


class TestLateness:
    def test_on_shift_start(self, db, employee):
        record = _check_in(db, employee, at(9))

        assert record.late_minutes == 0
        assert record.status == "PRESENT"
        assert ensure_utc(record.check_in_time) == at(9)

    def test_one_second_late_without_grace_rounds_to_zero(self, db, company, employee):
        company.grace_time_minutes = 0
        db.commit()

        record = _check_in(db, employee, at(9, 0, 1))

        assert record.late_minutes == 0

    def test_within_company_grace(self, db, employee):
        record = _check_in(db, employee, at(9, 10))

        assert record.late_minutes == 0

    def test_past_grace_counts_from_start(self, db, employee):
        record = _check_in(db, employee, at(9, 20))

        assert record.late_minutes == 20

    def test_shift_grace_wins_when_larger(self, db, shift, employee):
        shift.grace_time_in = 30
        db.commit()

        assert _check_in(db, employee, at(9, 25)).late_minutes == 0

    def test_shift_grace_larger_then_late(self, db, shift, employee):
        shift.grace_time_in = 30
        db.commit()

        assert _check_in(db, employee, at(9, 31)).late_minutes == 31

    def test_default_shift_used_when_none_assigned(self, db, company, make_employee):
        db.add(Shift(
            company_id=company.id,
            name="Default",
            start_time="10:00",
            end_time="19:00",
            grace_time_in=0,
            working_days=[1, 2, 3, 4, 5],
            is_default=True,
            is_active=True,
        ))
        db.commit()
        unassigned = make_employee()

        record = _check_in(db, unassigned, at(10, 30))

        assert record.late_minutes == 30

    def test_inactive_assigned_shift_falls_back_to_default(self, db, company, shift, employee):
        shift.is_active = False
        db.add(Shift(
            company_id=company.id,
            name="Default",
            start_time="08:00",
            end_time="17:00",
            working_days=[1, 2, 3, 4, 5],
            is_default=True,
            is_active=True,
        ))
        db.commit()

        record = _check_in(db, employee, at(8, 40))

        assert record.late_minutes == 40

    def test_no_shift_means_no_lateness(self, db, make_employee):
        unassigned = make_employee()

        record = _check_in(db, unassigned, at(15))

        assert record.late_minutes == 0


class TestDateKey:
    def test_utc_company_key_is_midnight(self, db, employee):
        record = _check_in(db, employee, at(9))

        assert ensure_utc(record.date) == datetime(2026, 3, 2, tzinfo=UTC)

    def test_kolkata_key_is_local_midnight(self, db, company, make_employee):
        company.timezone = "Asia/Kolkata"
        db.commit()
        emp = make_employee()

        # 01:30 IST on March 2
        record = _check_in(db, emp, datetime(2026, 3, 1, 20, 0, tzinfo=UTC))

        assert ensure_utc(record.date) == datetime(2026, 3, 1, 18, 30, tzinfo=UTC)

    def test_kolkata_shift_start_is_local(self, db, company, employee):
        company.timezone = "Asia/Kolkata"
        company.grace_time_minutes = 0
        db.commit()

        # 09:20 IST == 03:50 UTC
        record = _check_in(db, employee, datetime(2026, 3, 2, 3, 50, tzinfo=UTC))

        assert record.late_minutes == 20


class TestOneRecordPerDay:
    def test_second_check_in_rejected_and_record_unchanged(self, db, employee):
        first = _check_in(db, employee, at(9, 5), note="first")
        first_id = first.id

        with pytest.raises(AlreadyCheckedIn) as exc_info:
            _check_in(db, employee, at(9, 45), note="second")
        assert exc_info.value.status_code == 409

        records = db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == employee.id).all()
        assert len(records) == 1
        assert records[0].id == first_id
        assert ensure_utc(records[0].check_in_time) == at(9, 5)
        assert records[0].check_in_note == "first"

    def test_second_check_in_from_outside_geofence_is_already_checked_in(self, db, company, employee):
        db.add(OfficeLocation(company_id=company.id, name="HQ", latitude=12.9716, longitude=77.5946, radius=100))
        company.require_gps_tracking = True
        db.commit()
        _check_in(db, employee, at(9), location={"lat": 12.9717, "lng": 77.5947})

        with pytest.raises(AlreadyCheckedIn):
            _check_in(db, employee, at(9, 30), location={"lat": 13.5, "lng": 78.0})
        with pytest.raises(AlreadyCheckedIn):
            _check_in(db, employee, at(9, 31))

        record = db.query(AttendanceRecord).one()
        assert ensure_utc(record.check_in_time) == at(9)

    def test_rival_session_checks_in_first(self, db, session_factory, monkeypatch, employee):
        original = attendance_service.late_minutes_for
        rival_done = []

        def late_minutes_after_rival(*args, **kwargs):
            # Another session checks in after this one passed the existing-record read
            if not rival_done:
                rival_done.append(True)
                with session_factory() as rival:
                    attendance_service.check_in(
                        rival, employee.id, employee.company_id, now=at(9, 1), note="rival"
                    )
            return original(*args, **kwargs)

        monkeypatch.setattr(attendance_service, "late_minutes_for", late_minutes_after_rival)

        with pytest.raises(AlreadyCheckedIn):
            _check_in(db, employee, at(9, 2), note="mine")

        db.expire_all()
        records = db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == employee.id).all()
        assert len(records) == 1
        assert ensure_utc(records[0].check_in_time) == at(9, 1)
        assert records[0].check_in_note == "rival"

    def test_two_sessions_same_day_one_record(self, db, session_factory, employee):
        outcomes = []
        for minute in (5, 6):
            with session_factory() as session:
                try:
                    attendance_service.check_in(session, employee.id, employee.company_id, now=at(9, minute))
                    outcomes.append("ok")
                except AlreadyCheckedIn:
                    outcomes.append("conflict")

        assert outcomes == ["ok", "conflict"]
        db.expire_all()
        record = db.query(AttendanceRecord).one()
        assert ensure_utc(record.check_in_time) == at(9, 5)

    def test_next_day_gets_a_new_record(self, db, employee):
        monday = _check_in(db, employee, at(9))
        tuesday = _check_in(db, employee, at(9, day=3))

        assert monday.id != tuesday.id

    def test_placeholder_record_is_filled_in_place(self, db, company, employee):
        placeholder = AttendanceRecord(
            company_id=company.id,
            employee_id=employee.id,
            date=datetime(2026, 3, 2, tzinfo=UTC),
            status="ABSENT",
            type="OFFICE",
        )
        db.add(placeholder)
        db.commit()
        placeholder_id = placeholder.id

        record = _check_in(db, employee, at(9, 20))

        assert record.id == placeholder_id
        assert record.status == "PRESENT"
        assert record.late_minutes == 20
        assert record.version == 2
        assert db.query(AttendanceRecord).count() == 1

    def test_locked_placeholder_refuses_check_in(self, db, company, employee):
        db.add(AttendanceRecord(
            company_id=company.id,
            employee_id=employee.id,
            date=datetime(2026, 3, 2, tzinfo=UTC),
            status="ABSENT",
            type="OFFICE",
            is_approved=True,
            is_locked=True,
        ))
        db.commit()

        with pytest.raises(RecordLocked):
            _check_in(db, employee, at(9))

        record = db.query(AttendanceRecord).one()
        assert record.check_in_time is None


class TestEmployeeScope:
    def test_inactive_employee(self, db, make_employee):
        emp = make_employee(active=False)

        with pytest.raises(EmployeeNotFound):
            _check_in(db, emp, at(9))

    def test_employee_of_another_company(self, db, employee):
        other = Company(name="Other", timezone="UTC")
        db.add(other)
        db.commit()

        with pytest.raises(EmployeeNotFound):
            attendance_service.check_in(db, employee.id, other.id, now=at(9))


class TestLocationAndType:
    def test_work_location_defaults(self, db, employee, make_employee):
        office = _check_in(db, employee, at(9))
        remote = _check_in(db, make_employee(), at(9), type="REMOTE")

        assert office.work_location == "OFFICE"
        assert remote.work_location == "HOME"
        assert remote.type == "REMOTE"

    def test_explicit_work_location_and_metadata(self, db, employee):
        record = _check_in(
            db,
            employee,
            at(9),
            type="FIELD",
            work_location="CLIENT_SITE",
            location={"lat": 12.9, "lng": 77.5, "address": None},
            ip_address="10.0.0.1",
            device_info="pytest",
        )

        assert record.work_location == "CLIENT_SITE"
        assert record.check_in_location == {"lat": 12.9, "lng": 77.5}
        assert record.check_in_ip == "10.0.0.1"
        assert record.check_in_device == "pytest"

    def test_outside_geofence_creates_no_record(self, db, company, employee):
        db.add(OfficeLocation(company_id=company.id, name="HQ", latitude=12.9716, longitude=77.5946, radius=100))
        db.commit()

        with pytest.raises(OutsideGeofence):
            _check_in(db, employee, at(9), location={"lat": 13.5, "lng": 78.0})

        assert db.query(AttendanceRecord).count() == 0

    def test_inside_geofence_accepted(self, db, company, employee):
        db.add(OfficeLocation(company_id=company.id, name="HQ", latitude=12.9716, longitude=77.5946, radius=100))
        db.commit()

        record = _check_in(db, employee, at(9), location={"lat": 12.9717, "lng": 77.5947})

        assert record.id is not None
