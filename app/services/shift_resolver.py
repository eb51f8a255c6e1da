"""
Effective shift resolution

Check-in, check-out, regularization and the late check-in sweep all go through
resolve_shift so the company-default fallback behaves the same everywhere.
"""
from typing import Optional
from sqlalchemy.orm import Session
from app.models.employee import Employee
from app.models.shift import Shift


def find_default_shift(db: Session, company_id: int) -> Optional[Shift]:
    return db.query(Shift).filter(
        Shift.company_id == company_id,
        Shift.is_default == True,  # noqa: E712
        Shift.is_active == True,  # noqa: E712
    ).order_by(Shift.id).first()


def resolve_shift(db: Session, employee: Employee) -> Optional[Shift]:
    """
    Return the employee's assigned shift, else the company default shift.

    None means the company tracks no shift for this employee: callers skip
    lateness, overtime and early-leave computation instead of failing.
    """
    if employee.shift_id is not None:
        shift = db.get(Shift, employee.shift_id)
        if shift is not None and shift.is_active:
            return shift
    return find_default_shift(db, employee.company_id)
