"""
Company model (tenant settings consumed by the attendance engine)
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    timezone = Column(String, nullable=True)  # IANA name, e.g. "Asia/Kolkata"; None => DEFAULT_TIMEZONE
    grace_time_minutes = Column(Integer, nullable=False, default=15)
    overtime_threshold_minutes = Column(Integer, nullable=False, default=480)
    require_gps_tracking = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    shifts = relationship("Shift", back_populates="company")
    office_locations = relationship("OfficeLocation", back_populates="company")
