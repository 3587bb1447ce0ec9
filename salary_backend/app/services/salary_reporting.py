"""
Salary Reporting Service.

Aggregates for the admin dashboard. READ-ONLY; results are cached
for a short time and the cache is cleared by every salary write.
"""

from decimal import Decimal
from typing import Dict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from salary_backend.app.core.config import settings
from salary_backend.app.domain.salary.currency import round_money
from salary_backend.app.models.salary_entry import SalaryEntry
from salary_backend.app.models.salary_history import SalaryHistory
from salary_backend.app.schemas.salary import SalaryStatistics
from salary_backend.app.services.cache import CacheService

STATISTICS_CACHE_KEY = "salary:statistics"

ZERO = Decimal("0.00")


class SalaryReportingService:

    @staticmethod
    async def _median_reference_amount(db: AsyncSession, count: int) -> Decimal:
        """Middle value (or mean of the two middle values) of reference_amount."""
        if count == 0:
            return ZERO

        query = (
            select(SalaryEntry.reference_amount)
            .order_by(SalaryEntry.reference_amount)
            .offset((count - 1) // 2)
            .limit(2 if count % 2 == 0 else 1)
        )
        values = [Decimal(v) for v in (await db.execute(query)).scalars().all()]
        return round_money(sum(values) / len(values))

    @staticmethod
    async def _currency_distribution(db: AsyncSession) -> Dict[str, int]:
        query = (
            select(SalaryEntry.local_currency_code, func.count(SalaryEntry.id))
            .group_by(SalaryEntry.local_currency_code)
            .order_by(SalaryEntry.local_currency_code)
        )
        return {code: total for code, total in (await db.execute(query)).all()}

    @staticmethod
    async def compute_statistics(db: AsyncSession) -> SalaryStatistics:
        """Aggregate over every salary entry; zeros when there are none."""
        totals = (await db.execute(
            select(
                func.count(SalaryEntry.id),
                func.avg(SalaryEntry.reference_amount),
                func.min(SalaryEntry.reference_amount),
                func.max(SalaryEntry.reference_amount),
                func.sum(SalaryEntry.commission),
                func.avg(SalaryEntry.commission),
                func.avg(SalaryEntry.displayed_total),
            )
        )).one()
        count, avg_ref, min_ref, max_ref, sum_commission, avg_commission, avg_total = totals

        history_count = (await db.execute(select(func.count(SalaryHistory.id)))).scalar() or 0

        def money(value) -> Decimal:
            return round_money(Decimal(str(value))) if value is not None else ZERO

        return SalaryStatistics(
            total_entries=count or 0,
            average_reference_amount=money(avg_ref),
            median_reference_amount=await SalaryReportingService._median_reference_amount(db, count or 0),
            min_reference_amount=money(min_ref),
            max_reference_amount=money(max_ref),
            total_commission=money(sum_commission),
            average_commission=money(avg_commission),
            average_displayed_total=money(avg_total),
            currency_distribution=await SalaryReportingService._currency_distribution(db),
            history_records=history_count,
        )

    @staticmethod
    async def get_salary_statistics(db: AsyncSession) -> SalaryStatistics:
        cached = await CacheService.get(STATISTICS_CACHE_KEY)
        if cached is not None:
            return cached

        stats = await SalaryReportingService.compute_statistics(db)
        await CacheService.set(STATISTICS_CACHE_KEY, stats, ttl_seconds=settings.statistics_cache_ttl_seconds)
        return stats
