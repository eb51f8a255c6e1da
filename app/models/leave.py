"""
Leave request model (read-only for the attendance engine)
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, String, Text, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(String, nullable=False)  # e.g. CL, SL, PL
    from_date = Column(Date, nullable=False, index=True)
    to_date = Column(Date, nullable=False, index=True)
    reason = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=LeaveStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        CheckConstraint("from_date <= to_date", name="ck_leave_date_range"),
    )

    employee = relationship("Employee")
