"""
Pure time arithmetic for attendance: lateness, overtime, early leave and half-day status

All minute quantities are whole minutes rounded down (floor(seconds / 60)).
Nothing here touches the database.
"""
from datetime import date, datetime, timedelta
from typing import NamedTuple, Optional

from app.models.attendance import AttendanceStatus
from app.utils.datetime_utils import ZonedClock, ensure_utc, parse_hhmm, whole_minutes

MINUTES_PER_DAY = 24 * 60


class ShiftWindow(NamedTuple):
    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return whole_minutes(self.start, self.end)


def shift_duration_minutes(start_hhmm: str, end_hhmm: str) -> int:
    """Scheduled length of a shift; an end earlier than the start crosses midnight."""
    start = parse_hhmm(start_hhmm)
    end = parse_hhmm(end_hhmm)
    duration = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    if duration < 0:
        duration += MINUTES_PER_DAY
    return duration


def shift_window(shift, clock: ZonedClock, day: Optional[date] = None) -> ShiftWindow:
    """
    Shift start/end instants on a local calendar day (today by default).

    The start is placed on the same local wall-clock day as the clock, not on
    UTC midnight; the end follows from the scheduled duration so a night shift
    ends on the next local day.
    """
    start = clock.at(shift.start_time, day)
    end = start + timedelta(minutes=shift_duration_minutes(shift.start_time, shift.end_time))
    return ShiftWindow(start, end)


def effective_grace_minutes(shift, company_grace_minutes: int) -> int:
    """Grace applied at check-in: the larger of the shift's and the company's grace."""
    return max(shift.grace_time_in or 0, company_grace_minutes or 0)


def calculate_late_minutes(check_in: datetime, shift_start: datetime, grace_minutes: int) -> int:
    """
    Minutes late for a check-in.

    A check-in up to and including shift_start + grace is on time (0). Past the
    grace limit the count is measured from the scheduled start, not from the
    end of grace.
    """
    check_in = ensure_utc(check_in)
    shift_start = ensure_utc(shift_start)
    if check_in <= shift_start + timedelta(minutes=grace_minutes):
        return 0
    return whole_minutes(shift_start, check_in)


def calculate_work_minutes(check_in: datetime, check_out: datetime, break_minutes: int = 0) -> int:
    return max(0, whole_minutes(check_in, check_out) - (break_minutes or 0))


def calculate_overtime_minutes(total_work_minutes: int, threshold_minutes: int) -> int:
    return max(0, total_work_minutes - threshold_minutes)


def calculate_early_leave_minutes(
    check_out: datetime,
    shift_end: datetime,
    total_work_minutes: int,
    expected_minutes: int,
) -> int:
    """Minutes before the scheduled end, counted only when the shift was not worked in full."""
    if ensure_utc(check_out) < ensure_utc(shift_end) and total_work_minutes < expected_minutes:
        return whole_minutes(check_out, shift_end)
    return 0


def resolve_checkout_status(
    current_status: str,
    total_work_minutes: int,
    late_minutes: int,
    half_day_threshold: Optional[int],
) -> str:
    """
    Status after check-out.

    Below the half-day threshold the day is a HALF_DAY. A punctual employee
    (late_minutes == 0) who worked at least twice the threshold is PRESENT.
    Lateness recorded at check-in is never forgiven here.
    """
    status = current_status
    if not half_day_threshold:
        return status
    if total_work_minutes < half_day_threshold:
        status = AttendanceStatus.HALF_DAY.value
    if late_minutes == 0 and total_work_minutes >= 2 * half_day_threshold:
        status = AttendanceStatus.PRESENT.value
    return status
