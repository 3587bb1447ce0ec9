"""
Salary Entry database model.

Current-state salary record, exactly one per subject.
"""

from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey, Text, CheckConstraint
from sqlalchemy.sql import func
from salary_backend.app.db.session import Base


class SalaryEntry(Base):
    """
    Salary Entry model.

    reference_amount and displayed_total are derived by the SalaryLedger
    and always satisfy displayed_total == round(reference_amount + commission, 2).
    The unique subject_id closes the window between concurrent first submissions.
    """
    __tablename__ = "salary_entries"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        CheckConstraint("local_amount >= 0", name="ck_salary_entries_local_amount"),
        CheckConstraint("commission >= 0", name="ck_salary_entries_commission"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    subject_id = Column(Integer, ForeignKey('users.id'), nullable=False, unique=True, index=True)

    # Submitted values
    local_amount = Column(Numeric(14, 2), nullable=False)
    local_currency_code = Column(String(3), nullable=False, default="EUR", index=True)

    # Derived values
    reference_amount = Column(Numeric(14, 2), nullable=False, index=True)
    commission = Column(Numeric(10, 2), nullable=False)
    displayed_total = Column(Numeric(14, 2), nullable=False)

    effective_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<SalaryEntry(id={self.id}, subject_id={self.subject_id}, "
            f"reference={self.reference_amount}, total={self.displayed_total})>"
        )
