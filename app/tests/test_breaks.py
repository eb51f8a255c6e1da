"""
Tests for break intervals
"""
from datetime import datetime, timezone

import pytest

from app.core.errors import AlreadyCheckedOut, BreakAlreadyOpen, ConcurrentModification, NoActiveBreak, NoCheckIn
from app.models.attendance import AttendanceRecord
from app.services import attendance_service, attendance_store

UTC = timezone.utc


def at(hour, minute=0, second=0):
    return datetime(2026, 3, 2, hour, minute, second, tzinfo=UTC)


@pytest.fixture
def checked_in(db, employee):
    return attendance_service.check_in(db, employee.id, employee.company_id, now=at(9))


def _start(db, employee, now):
    return attendance_service.start_break(db, employee.id, employee.company_id, now=now)


def _end(db, employee, now):
    return attendance_service.end_break(db, employee.id, employee.company_id, now=now)


def test_break_requires_check_in(db, employee):
    with pytest.raises(NoCheckIn):
        _start(db, employee, at(12))


def test_break_after_check_out(db, employee, checked_in):
    attendance_service.check_out(db, employee.id, employee.company_id, now=at(17))

    with pytest.raises(AlreadyCheckedOut):
        _start(db, employee, at(17, 30))


def test_start_and_end_break(db, employee, checked_in):
    started = _start(db, employee, at(12))
    assert started.sequence == 1
    assert started.end_at is None

    ended = _end(db, employee, at(12, 45, 30))

    assert ended.id == started.id
    assert ended.duration_minutes == 45
    assert ended.record.total_break_minutes == 45
    assert ended.record.is_on_break is False


def test_total_is_sum_of_closed_breaks(db, employee, checked_in):
    _start(db, employee, at(11))
    _end(db, employee, at(11, 15))
    second = _start(db, employee, at(13))
    _end(db, employee, at(13, 30))

    record = db.query(AttendanceRecord).one()
    assert second.sequence == 2
    assert [b.duration_minutes for b in record.breaks] == [15, 30]
    assert record.total_break_minutes == 45


def test_open_break_not_counted(db, employee, checked_in):
    _start(db, employee, at(11))
    _end(db, employee, at(11, 20))
    _start(db, employee, at(14))

    record = db.query(AttendanceRecord).one()
    assert record.is_on_break is True
    assert record.total_break_minutes == 20


def test_second_open_break_rejected(db, employee, checked_in):
    _start(db, employee, at(12))

    with pytest.raises(BreakAlreadyOpen) as exc_info:
        _start(db, employee, at(12, 5))
    assert exc_info.value.status_code == 409


def test_end_without_open_break(db, employee, checked_in):
    with pytest.raises(NoActiveBreak):
        _end(db, employee, at(12))


def test_end_without_record(db, employee):
    with pytest.raises(NoActiveBreak):
        _end(db, employee, at(12))


def test_concurrent_write_detected(db, session_factory, employee, checked_in):
    """A write based on a stale copy of the record fails instead of overwriting"""
    # Load today's record into this session; it stays cached in the identity map
    stale = attendance_store.find_record(db, employee.id, datetime(2026, 3, 2, tzinfo=UTC))
    assert stale.version == 1

    other = session_factory()
    try:
        attendance_service.start_break(other, employee.id, employee.company_id, now=at(12))
    finally:
        other.close()

    with pytest.raises(ConcurrentModification) as exc_info:
        attendance_service.check_out(db, employee.id, employee.company_id, now=at(18))
    assert exc_info.value.status_code == 409

    db.expire_all()
    record = db.query(AttendanceRecord).one()
    assert record.check_out_time is None
    assert record.is_on_break is True
