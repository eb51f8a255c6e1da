"""
Shift model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    start_time = Column(String(5), nullable=False)  # "HH:mm", company local wall-clock
    end_time = Column(String(5), nullable=False)  # "HH:mm"; earlier than start_time => crosses midnight
    grace_time_in = Column(Integer, nullable=False, default=0)  # minutes
    working_days = Column(JSON, nullable=False, default=lambda: [1, 2, 3, 4, 5])  # ISO weekdays, Monday=1
    half_day_threshold = Column(Integer, nullable=True)  # minutes
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    company = relationship("Company", back_populates="shifts")
