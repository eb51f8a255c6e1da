"""
Late check-in sweep

Every LATE_CHECKIN_SWEEP_INTERVAL_SECONDS the sweeper walks all active
companies. Active employees are grouped by their effective shift (assigned
shift, else the company default). Between the end of a shift's grace period
and LATE_ALERT_WINDOW_HOURS after its start, every employee of that shift
without a check-in today gets one ATTENDANCE_LATE notification per day.

The sweep only writes notifications; attendance records are read, never locked.
"""
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import NOTIFICATION_ATTENDANCE_LATE
from app.db.session import SessionLocal
from app.models.attendance import AttendanceRecord
from app.models.company import Company
from app.models.employee import AccountStatus, Employee
from app.models.shift import Shift
from app.services.directory_service import company_grace_minutes
from app.services.notification_service import create_notification, notification_exists
from app.services.shift_resolver import resolve_shift
from app.utils.datetime_utils import ZonedClock, now_utc

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "late-checkin-sweep"


class LateCheckinSweeper:
    """
    One sweep = one pass over every active company.

    Dependencies are injected so tests can call sweep(now=...) with a fixed
    instant and their own session factory.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        alert_window_hours: Optional[int] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        self.session_factory = session_factory
        self.alert_window = timedelta(hours=alert_window_hours or settings.LATE_ALERT_WINDOW_HOURS)
        self.stop_event = stop_event or threading.Event()

    def sweep(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Run one pass.

        A failure while processing one company is logged and the sweep moves on
        to the next company. The stop event is honoured between companies.

        Returns:
            {"companies": processed, "notified": notifications created, "failed": companies that errored}
        """
        now = now or now_utc()
        stats = {"companies": 0, "notified": 0, "failed": 0}

        with self.session_factory() as db:
            company_ids = [
                row[0] for row in db.query(Company.id).filter(
                    Company.is_active == True  # noqa: E712
                ).order_by(Company.id).all()
            ]

        for company_id in company_ids:
            if self.stop_event.is_set():
                logger.info("Late check-in sweep interrupted before company %s", company_id)
                break
            try:
                with self.session_factory() as db:
                    stats["notified"] += self._sweep_company(db, company_id, now)
                stats["companies"] += 1
            except Exception:
                stats["failed"] += 1
                logger.exception("Late check-in sweep failed for company %s", company_id)

        logger.info(
            "Late check-in sweep done: companies=%s notified=%s failed=%s",
            stats["companies"], stats["notified"], stats["failed"],
        )
        return stats

    def _sweep_company(self, db: Session, company_id: int, now: datetime) -> int:
        company = db.get(Company, company_id)
        clock = ZonedClock(company.timezone, now)
        weekday = clock.weekday()
        company_grace = max(company_grace_minutes(company), 0)

        notified = 0
        for shift, employees in self._employees_by_shift(db, company_id):
            if weekday not in (shift.working_days or []):
                continue

            shift_start = clock.at(shift.start_time)
            grace_limit = shift_start + timedelta(minutes=max(shift.grace_time_in or 0, 0) + company_grace)
            alert_end = shift_start + self.alert_window
            if not (grace_limit < clock.now_utc < alert_end):
                continue

            notified += self._notify_missing(db, company, shift, employees, clock)
        return notified

    def _employees_by_shift(self, db: Session, company_id: int) -> List[Tuple[Shift, List[Employee]]]:
        employees = db.query(Employee).filter(
            Employee.company_id == company_id,
            Employee.active == True,  # noqa: E712
            Employee.account_status == AccountStatus.ACTIVE.value,
        ).order_by(Employee.id).all()

        groups: Dict[int, Tuple[Shift, List[Employee]]] = {}
        for employee in employees:
            shift = resolve_shift(db, employee)
            if shift is None:
                continue
            groups.setdefault(shift.id, (shift, []))[1].append(employee)
        return [groups[shift_id] for shift_id in sorted(groups)]

    def _notify_missing(
        self, db: Session, company: Company, shift: Shift, employees: List[Employee], clock: ZonedClock
    ) -> int:
        today = clock.today()
        checked_in = {
            row[0] for row in db.query(AttendanceRecord.employee_id).filter(
                AttendanceRecord.company_id == company.id,
                AttendanceRecord.date == clock.day_start_utc(),
                AttendanceRecord.check_in_time.isnot(None),
            ).all()
        }

        notified = 0
        for employee in employees:
            if employee.id in checked_in:
                continue
            if notification_exists(db, employee.id, NOTIFICATION_ATTENDANCE_LATE, today):
                continue

            notification = create_notification(
                db,
                company_id=company.id,
                user_id=employee.id,
                type=NOTIFICATION_ATTENDANCE_LATE,
                title="Late Check-in Alert",
                message=(
                    f"You have not checked in yet for your shift starting at {shift.start_time}. "
                    "Please check in immediately."
                ),
                entity_id=shift.id,
                entity_type="Shift",
                dedupe_date=today,
            )
            if notification is not None:
                notified += 1
                logger.info("Sent late check-in alert to employee %s", employee.id)
        return notified


class SweepScheduler:
    """Runs LateCheckinSweeper.sweep as an APScheduler interval job."""

    def __init__(self, sweeper: Optional[LateCheckinSweeper] = None, interval_seconds: Optional[int] = None):
        self.stop_event = threading.Event()
        self.sweeper = sweeper or LateCheckinSweeper(stop_event=self.stop_event)
        self.sweeper.stop_event = self.stop_event
        self.interval_seconds = interval_seconds or settings.LATE_CHECKIN_SWEEP_INTERVAL_SECONDS
        self.scheduler: Optional[BackgroundScheduler] = None

    def _run(self) -> None:
        try:
            self.sweeper.sweep()
        except Exception:
            logger.exception("Late check-in sweep crashed")

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def start(self) -> None:
        if self.running:
            logger.warning("Late check-in scheduler already running")
            return
        self.stop_event.clear()
        # A slow sweep never overlaps the next one; missed runs collapse into one
        self.scheduler = BackgroundScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": self.interval_seconds,
            },
        )
        self.scheduler.add_job(
            self._run,
            "interval",
            seconds=self.interval_seconds,
            id=SWEEP_JOB_ID,
            next_run_time=now_utc(),
        )
        self.scheduler.start()
        logger.info("Late check-in scheduler started (interval=%ss)", self.interval_seconds)

    def stop(self, wait: bool = True) -> None:
        self.stop_event.set()
        if self.running:
            self.scheduler.shutdown(wait=wait)
        self.scheduler = None
        logger.info("Late check-in scheduler stopped")
