"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from app.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)
    actor_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    action = Column(String, nullable=False)  # e.g., "ATTENDANCE_CHECK_IN", "REGULARIZATION_APPROVE"
    entity_type = Column(String, nullable=False)  # e.g., "attendance_records", "regularization_requests"
    entity_id = Column(Integer, nullable=True)  # ID of the affected entity
    meta_json = Column(JSON, nullable=True)  # Additional metadata as JSON
    # Set by log_audit in UTC
    created_at = Column(DateTime(timezone=True), nullable=False)
