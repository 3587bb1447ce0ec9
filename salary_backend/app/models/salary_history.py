"""
Salary History database model.

Immutable before/after record of one committed salary update.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum, event
from sqlalchemy.sql import func
from salary_backend.app.db.session import Base
from salary_backend.app.models.salary_enums import SalaryChangeType


class HistoryImmutableError(Exception):
    """Raised when something tries to modify or delete a history row."""


class SalaryHistory(Base):
    """
    Salary History model.

    Append-only. One row per committed update of a SalaryEntry;
    initial creation is not recorded. NO updates or deletions allowed.
    """
    __tablename__ = "salary_history"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Linkage
    subject_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    entry_id = Column(Integer, ForeignKey('salary_entries.id'), nullable=False, index=True)

    # Before / after
    old_local_amount = Column(Numeric(14, 2), nullable=False)
    new_local_amount = Column(Numeric(14, 2), nullable=False)
    old_currency_code = Column(String(3), nullable=False)
    new_currency_code = Column(String(3), nullable=False)
    old_reference_amount = Column(Numeric(14, 2), nullable=False)
    new_reference_amount = Column(Numeric(14, 2), nullable=False)
    old_commission = Column(Numeric(10, 2), nullable=False)
    new_commission = Column(Numeric(10, 2), nullable=False)
    old_displayed_total = Column(Numeric(14, 2), nullable=False)
    new_displayed_total = Column(Numeric(14, 2), nullable=False)

    # Who and why (None for system-initiated changes)
    changed_by = Column(Integer, ForeignKey('users.id', ondelete="SET NULL"), nullable=True, index=True)
    change_reason = Column(String(255), nullable=False)
    change_type = Column(Enum(SalaryChangeType), nullable=False, index=True)

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    @property
    def salary_change_amount(self) -> Decimal:
        return self.new_reference_amount - self.old_reference_amount

    @property
    def commission_change_amount(self) -> Decimal:
        return self.new_commission - self.old_commission

    @property
    def total_change_amount(self) -> Decimal:
        return self.new_displayed_total - self.old_displayed_total

    @property
    def change_summary(self) -> str:
        """Human-readable summary, e.g. 'Salary: +850.00 EUR, Commission: -200.00 EUR'."""
        changes = []
        if self.salary_change_amount != 0:
            changes.append(f"Salary: {self.salary_change_amount:+.2f} EUR")
        if self.commission_change_amount != 0:
            changes.append(f"Commission: {self.commission_change_amount:+.2f} EUR")
        return ", ".join(changes) or "No changes"

    def __repr__(self):
        return (
            f"<SalaryHistory(id={self.id}, subject_id={self.subject_id}, "
            f"type='{self.change_type.value}', total={self.old_displayed_total}->{self.new_displayed_total})>"
        )


@event.listens_for(SalaryHistory, "before_update")
def _reject_history_update(mapper, connection, target):
    raise HistoryImmutableError(f"Salary history record {target.id} is immutable")


@event.listens_for(SalaryHistory, "before_delete")
def _reject_history_delete(mapper, connection, target):
    raise HistoryImmutableError(f"Salary history record {target.id} cannot be deleted")
