"""
Audit Log Database Model.

Tracks security events and admin actions for compliance and monitoring.
Salary before/after values live in salary_history; this table records who
did what through the API.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from salary_backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking security events and admin actions.

    Events logged:
    - LOGIN_SUCCESS / LOGIN_FAILED / LOGOUT
    - SALARY_SUBMITTED / SALARY_UPDATED / SALARY_BULK_UPDATED
    - COMMISSION_UPDATED
    - USER_DEACTIVATED / USER_REACTIVATED
    """
    __tablename__ = "audit_logs"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for anonymous submissions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_email = Column(String(255), nullable=True)

    action = Column(String(100), nullable=False, index=True)

    # Who was the target of the action
    target_user_id = Column(Integer, index=True, nullable=True)
    target_email = Column(String(255), nullable=True)

    meta_data = Column(JSON, nullable=True)

    ip_address = Column(String(50), nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_email}, target={self.target_email})>"
