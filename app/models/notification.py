"""
In-app notification model
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, String, Text, Boolean, UniqueConstraint
from sqlalchemy.sql import func
from app.db.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    type = Column(String, nullable=False, index=True)  # e.g. ATTENDANCE_LATE
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    entity_id = Column(Integer, nullable=True)
    entity_type = Column(String, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    # Set only for once-per-day types; NULLs never collide in the unique constraint
    dedupe_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "type", "dedupe_date", name="uq_notification_user_type_day"),
    )
