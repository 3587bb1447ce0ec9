"""
Salary History Store.

Append-only persistence of salary changes. Records are written inside the
caller's transaction so an entry update and its history row commit or roll
back together.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from salary_backend.app.core.config import settings
from salary_backend.app.models.salary_entry import SalaryEntry
from salary_backend.app.models.salary_enums import SalaryChangeType
from salary_backend.app.models.salary_history import SalaryHistory


@dataclass(frozen=True)
class EntrySnapshot:
    """Values of an entry captured before it is mutated."""
    local_amount: Decimal
    currency_code: str
    reference_amount: Decimal
    commission: Decimal
    displayed_total: Decimal

    @classmethod
    def of(cls, entry: SalaryEntry) -> "EntrySnapshot":
        return cls(
            local_amount=Decimal(entry.local_amount),
            currency_code=entry.local_currency_code,
            reference_amount=Decimal(entry.reference_amount),
            commission=Decimal(entry.commission),
            displayed_total=Decimal(entry.displayed_total),
        )


def classify_change(before: EntrySnapshot, entry: SalaryEntry) -> SalaryChangeType:
    """
    SALARY_CHANGE when the local amount or currency moved, else
    COMMISSION_CHANGE when the commission moved, else GENERAL_UPDATE.
    """
    if (
        Decimal(entry.local_amount) != before.local_amount
        or entry.local_currency_code != before.currency_code
    ):
        return SalaryChangeType.SALARY_CHANGE
    if Decimal(entry.commission) != before.commission:
        return SalaryChangeType.COMMISSION_CHANGE
    return SalaryChangeType.GENERAL_UPDATE


class SalaryHistoryStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(
        self,
        entry: SalaryEntry,
        before: EntrySnapshot,
        changed_by: Optional[int],
        reason: Optional[str] = None
    ) -> SalaryHistory:
        """
        Record one update of `entry` against the snapshot taken before it.

        Flushes but does not commit.
        """
        record = SalaryHistory(
            subject_id=entry.subject_id,
            entry_id=entry.id,
            old_local_amount=before.local_amount,
            new_local_amount=entry.local_amount,
            old_currency_code=before.currency_code,
            new_currency_code=entry.local_currency_code,
            old_reference_amount=before.reference_amount,
            new_reference_amount=entry.reference_amount,
            old_commission=before.commission,
            new_commission=entry.commission,
            old_displayed_total=before.displayed_total,
            new_displayed_total=entry.displayed_total,
            changed_by=changed_by,
            change_reason=(reason or "").strip() or settings.default_change_reason,
            change_type=classify_change(before, entry),
        )
        self.db.add(record)
        await self.db.flush()
        return record

    async def page_for_subject(
        self,
        subject_id: int,
        page: int = 1,
        page_size: Optional[int] = None
    ) -> List[SalaryHistory]:
        """Newest first; id breaks ties between rows sharing a timestamp."""
        page_size = page_size or settings.history_page_size
        result = await self.db.execute(
            select(SalaryHistory)
            .where(SalaryHistory.subject_id == subject_id)
            .order_by(SalaryHistory.created_at.desc(), SalaryHistory.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all())

    async def count_for_subject(self, subject_id: int) -> int:
        result = await self.db.execute(
            select(func.count(SalaryHistory.id)).where(SalaryHistory.subject_id == subject_id)
        )
        return result.scalar() or 0
