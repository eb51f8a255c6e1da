"""
Read-only lookups against the employee, office-location, holiday and leave tables

These tables are owned by other parts of the HRMS; the attendance engine only reads them.
"""
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.errors import CompanyNotFound, EmployeeNotFound
from app.models.company import Company
from app.models.employee import Employee
from app.models.holiday import Holiday
from app.models.leave import LeaveRequest, LeaveStatus
from app.models.office_location import OfficeLocation


def find_active_employee(db: Session, employee_id: int, company_id: int) -> Employee:
    """
    Get an active employee belonging to the company

    Raises:
        EmployeeNotFound: unknown employee, inactive employee, or employee of another company
    """
    employee = db.query(Employee).filter(
        Employee.id == employee_id,
        Employee.company_id == company_id,
        Employee.active == True,  # noqa: E712
    ).first()
    if not employee:
        raise EmployeeNotFound()
    return employee


def get_company(db: Session, company_id: int) -> Company:
    company = db.get(Company, company_id)
    if company is None:
        raise CompanyNotFound()
    return company


def company_grace_minutes(company: Company) -> int:
    value = company.grace_time_minutes
    return settings.DEFAULT_GRACE_MINUTES if value is None else value


def company_overtime_threshold(company: Company) -> int:
    value = company.overtime_threshold_minutes
    return settings.DEFAULT_OVERTIME_THRESHOLD_MINUTES if value is None else value


def list_active_office_locations(db: Session, company_id: int) -> List[OfficeLocation]:
    return db.query(OfficeLocation).filter(
        OfficeLocation.company_id == company_id,
        OfficeLocation.is_active == True,  # noqa: E712
    ).order_by(OfficeLocation.id).all()


def find_holiday(db: Session, company_id: int, day: date) -> Optional[Holiday]:
    return db.query(Holiday).filter(
        Holiday.company_id == company_id,
        Holiday.date == day,
        Holiday.active == True,  # noqa: E712
    ).first()


def list_holiday_dates(db: Session, company_id: int, start: date, end: date) -> List[date]:
    rows = db.query(Holiday.date).filter(
        Holiday.company_id == company_id,
        Holiday.date >= start,
        Holiday.date <= end,
        Holiday.active == True,  # noqa: E712
    ).all()
    return [row[0] for row in rows]


def find_approved_leave(db: Session, employee_id: int, day: date) -> Optional[LeaveRequest]:
    """Approved leave covering the given local date, if any"""
    return db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status == LeaveStatus.APPROVED.value,
        LeaveRequest.from_date <= day,
        LeaveRequest.to_date >= day,
    ).first()
