"""
Salary search for the admin table.

Read-only. Filters, sorts and paginates salary entries joined with their subject.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from salary_backend.app.core.exceptions import ValidationError
from salary_backend.app.models.salary_entry import SalaryEntry
from salary_backend.app.models.user import User

SORTABLE_COLUMNS = {
    "created_at": SalaryEntry.created_at,
    "updated_at": SalaryEntry.updated_at,
    "reference_amount": SalaryEntry.reference_amount,
    "commission": SalaryEntry.commission,
    "displayed_total": SalaryEntry.displayed_total,
    "name": User.name,
    "email": User.email,
}


@dataclass
class SalarySearch:
    page: int = 1
    page_size: int = 20
    search: Optional[str] = None
    currency: Optional[str] = None
    salary_min: Optional[Decimal] = None
    salary_max: Optional[Decimal] = None
    sort_by: str = "created_at"
    sort_direction: str = "desc"


async def search_salaries(db: AsyncSession, params: SalarySearch) -> Tuple[List[Tuple[SalaryEntry, User]], int]:
    """
    Return one page of (entry, subject) rows and the total match count.

    `search` matches name or e-mail, case-insensitively.
    `salary_min`/`salary_max` bound the reference amount (EUR).
    """
    sort_column = SORTABLE_COLUMNS.get(params.sort_by)
    if sort_column is None:
        raise ValidationError(
            f"Cannot sort by '{params.sort_by}'",
            field="sort_by",
            details={"allowed": sorted(SORTABLE_COLUMNS)}
        )
    if params.sort_direction not in ("asc", "desc"):
        raise ValidationError("sort_direction must be 'asc' or 'desc'", field="sort_direction")
    if (
        params.salary_min is not None
        and params.salary_max is not None
        and params.salary_min > params.salary_max
    ):
        raise ValidationError("salary_min cannot be greater than salary_max", field="salary_min")

    filters = []
    if params.search:
        term = params.search.strip()
        # % and _ in the term match literally
        filters.append(or_(
            User.name.icontains(term, autoescape=True),
            User.email.icontains(term, autoescape=True),
        ))
    if params.currency:
        filters.append(SalaryEntry.local_currency_code == params.currency.strip().upper())
    if params.salary_min is not None:
        filters.append(SalaryEntry.reference_amount >= params.salary_min)
    if params.salary_max is not None:
        filters.append(SalaryEntry.reference_amount <= params.salary_max)

    count_query = select(func.count(SalaryEntry.id)).join(User, User.id == SalaryEntry.subject_id).where(*filters)
    total = (await db.execute(count_query)).scalar() or 0

    order = sort_column.asc() if params.sort_direction == "asc" else sort_column.desc()
    query = (
        select(SalaryEntry, User)
        .join(User, User.id == SalaryEntry.subject_id)
        .where(*filters)
        .order_by(order, SalaryEntry.id.desc())
        .offset((params.page - 1) * params.page_size)
        .limit(params.page_size)
    )
    result = await db.execute(query)
    return [(row.SalaryEntry, row.User) for row in result], total
