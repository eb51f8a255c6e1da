"""
Attendance store - owns the one-record-per-employee-per-day table

Writes that may create the day's record go through a single conditional
INSERT ... ON CONFLICT (employee_id, date) DO UPDATE ... WHERE <guard>, so two
concurrent check-ins cannot both succeed. Read-modify-write paths (check-out,
breaks) rely on the version column and surface a lost race as
ConcurrentModification.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConcurrentModification
from app.models.attendance import AttendanceRecord
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def find_record(db: Session, employee_id: int, date_key: datetime) -> Optional[AttendanceRecord]:
    """Get the record of an employee for a normalized date key"""
    return db.query(AttendanceRecord).options(
        selectinload(AttendanceRecord.breaks)
    ).filter(
        AttendanceRecord.employee_id == employee_id,
        AttendanceRecord.date == date_key,
    ).first()


def get_company_record(db: Session, record_id: int, company_id: int) -> Optional[AttendanceRecord]:
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.id == record_id,
        AttendanceRecord.company_id == company_id,
    ).first()


def find_records_between(
    db: Session,
    employee_id: int,
    start: datetime,
    end: datetime,
) -> List[AttendanceRecord]:
    """Records of an employee with start <= date <= end, oldest id first"""
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.employee_id == employee_id,
        AttendanceRecord.date >= start,
        AttendanceRecord.date <= end,
    ).order_by(AttendanceRecord.id.asc()).all()


def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


def upsert_record(
    db: Session,
    *,
    company_id: int,
    employee_id: int,
    date_key: datetime,
    values: Dict[str, Any],
    guard,
) -> Optional[AttendanceRecord]:
    """
    Insert the day's record or update it in place, atomically.

    Args:
        db: Database session
        company_id: Owning company
        employee_id: Employee the record belongs to
        date_key: Normalized date (UTC instant of local midnight)
        values: Column values written on insert and on update
        guard: SQL condition on the existing row; the update only applies when it holds

    Returns:
        The inserted or updated record, or None when a row exists and the guard
        rejected the update. The caller owns the commit.
    """
    now = now_utc()
    insert = _dialect_insert(db)

    if insert is not None:
        stmt = insert(AttendanceRecord).values(
            company_id=company_id,
            employee_id=employee_id,
            date=date_key,
            version=1,
            created_at=now,
            updated_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[AttendanceRecord.employee_id, AttendanceRecord.date],
            set_={**values, "version": AttendanceRecord.version + 1, "updated_at": now},
            where=guard,
        ).returning(AttendanceRecord.id)
        row = db.execute(stmt).first()
        if row is None:
            return None
        record_id = row[0]
    else:
        record_id = _insert_or_update_fallback(db, company_id, employee_id, date_key, values, guard, now)
        if record_id is None:
            return None

    return db.get(AttendanceRecord, record_id, populate_existing=True)


def _insert_or_update_fallback(db, company_id, employee_id, date_key, values, guard, now) -> Optional[int]:
    # Dialects without ON CONFLICT: insert under a savepoint, then a guarded UPDATE
    try:
        with db.begin_nested():
            record = AttendanceRecord(
                company_id=company_id,
                employee_id=employee_id,
                date=date_key,
                created_at=now,
                updated_at=now,
                **values,
            )
            db.add(record)
        return record.id
    except IntegrityError:
        logger.debug("Record for employee %s on %s exists, updating in place", employee_id, date_key)

    result = db.execute(
        update(AttendanceRecord)
        .where(and_(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.date == date_key,
            guard,
        ))
        .values(**values, version=AttendanceRecord.version + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None
    return db.query(AttendanceRecord.id).filter(
        AttendanceRecord.employee_id == employee_id,
        AttendanceRecord.date == date_key,
    ).scalar()


def save(db: Session, record: AttendanceRecord) -> AttendanceRecord:
    """
    Commit pending changes of a record loaded earlier in the session.

    Raises:
        ConcurrentModification: the row's version changed since it was loaded
    """
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.info("Concurrent update detected on attendance record %s", record.id)
        raise ConcurrentModification()
    db.refresh(record)
    return record


def lock_approved_between(db: Session, company_id: int, start: datetime, end: datetime) -> int:
    """Lock approved, unlocked records with start <= date < end. Returns the number locked."""
    now = now_utc()
    result = db.execute(
        update(AttendanceRecord)
        .where(and_(
            AttendanceRecord.company_id == company_id,
            AttendanceRecord.date >= start,
            AttendanceRecord.date < end,
            AttendanceRecord.is_approved == True,  # noqa: E712
            AttendanceRecord.is_locked == False,  # noqa: E712
        ))
        .values(
            is_locked=True,
            locked_at=now,
            version=AttendanceRecord.version + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount
