"""
Commission Policy database model.

Versioned default commission. Old versions are deactivated, never deleted.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey, Index, text
from sqlalchemy.sql import func
from salary_backend.app.db.session import Base


class CommissionPolicy(Base):
    """
    Commission Policy model.

    Holds the commission applied when a salary write omits one.
    Only one row is active at a time; the partial unique index makes the
    database reject a second active row from a racing writer.
    """
    __tablename__ = "commission_policies"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        Index(
            "uq_commission_policies_single_active",
            "is_active",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(String(255), nullable=True)

    # Validity
    is_active = Column(Boolean, default=True, nullable=False)
    deactivated_at = Column(DateTime(timezone=True), nullable=True)

    # Audit
    created_by = Column(Integer, ForeignKey('users.id', ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<CommissionPolicy(id={self.id}, amount={self.amount}, active={self.is_active})>"
