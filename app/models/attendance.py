"""
Attendance record and break models
"""
from sqlalchemy import (
    Column,
    Integer,
    DateTime,
    ForeignKey,
    String,
    Text,
    Boolean,
    JSON,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    HALF_DAY = "HALF_DAY"
    ON_LEAVE = "ON_LEAVE"


class AttendanceType(str, enum.Enum):
    OFFICE = "OFFICE"
    REMOTE = "REMOTE"
    FIELD = "FIELD"


class AttendanceRecord(Base):
    """One row per employee per company-local calendar day."""

    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    # UTC instant of local midnight in the company time zone
    date = Column(DateTime(timezone=True), nullable=False, index=True)

    check_in_time = Column(DateTime(timezone=True), nullable=True)
    check_out_time = Column(DateTime(timezone=True), nullable=True)
    check_in_location = Column(JSON, nullable=True)  # {"lat", "lng", "address"}
    check_out_location = Column(JSON, nullable=True)
    check_in_ip = Column(String, nullable=True)
    check_out_ip = Column(String, nullable=True)
    check_in_device = Column(String, nullable=True)
    check_out_device = Column(String, nullable=True)
    check_in_note = Column(Text, nullable=True)
    check_out_note = Column(Text, nullable=True)

    status = Column(String, nullable=False, default=AttendanceStatus.PRESENT.value)
    type = Column(String, nullable=False, default=AttendanceType.OFFICE.value)
    work_location = Column(String, nullable=True)

    total_break_minutes = Column(Integer, nullable=False, default=0)
    total_work_minutes = Column(Integer, nullable=False, default=0)
    late_minutes = Column(Integer, nullable=False, default=0)
    overtime_minutes = Column(Integer, nullable=False, default=0)
    early_leave_minutes = Column(Integer, nullable=False, default=0)

    is_manual_entry = Column(Boolean, nullable=False, default=False)
    manual_entry_reason = Column(Text, nullable=True)
    is_approved = Column(Boolean, nullable=False, default=False)
    approved_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    is_locked = Column(Boolean, nullable=False, default=False)
    locked_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
        Index("ix_attendance_company_date", "company_id", "date"),
    )
    __mapper_args__ = {"version_id_col": version}

    employee = relationship("Employee", foreign_keys=[employee_id], backref="attendance_records")
    breaks = relationship(
        "AttendanceBreak",
        back_populates="record",
        order_by="AttendanceBreak.sequence",
        cascade="all, delete-orphan",
    )

    @property
    def open_break(self):
        """The open break interval, if any (only the last one may be open)."""
        if self.breaks and self.breaks[-1].end_at is None:
            return self.breaks[-1]
        return None

    @property
    def is_on_break(self) -> bool:
        return self.open_break is not None


class AttendanceBreak(Base):
    __tablename__ = "attendance_breaks"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(Integer, ForeignKey("attendance_records.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("record_id", "sequence", name="uq_attendance_break_sequence"),
    )

    record = relationship("AttendanceRecord", back_populates="breaks")
