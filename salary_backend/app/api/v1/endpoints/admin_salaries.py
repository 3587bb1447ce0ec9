"""
Admin Salary Endpoints.

Salary table, single-entry edits, bulk edits, history and statistics.
Every write clears the statistics cache and is recorded in the audit log.
"""

import math
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from salary_backend.app.db.session import get_db
from salary_backend.app.core.guards import require_admin
from salary_backend.app.domain.salary.ledger import SalaryLedger, SalaryChanges, BulkItem
from salary_backend.app.schemas.salary import (
    SalaryListResponse, AdminSalaryRow, SalaryEntryResponse, SalaryUpdateRequest,
    BulkUpdateRequest, BulkUpdateResponse, SalaryHistoryResponse, SalaryHistoryItem,
    SalaryStatistics
)
from salary_backend.app.services.audit import log_admin_action, AuditAction
from salary_backend.app.services.cache import CacheService
from salary_backend.app.services.salary_reporting import SalaryReportingService
from salary_backend.app.services.salary_search import SalarySearch, search_salaries

router = APIRouter(prefix="/admin/salaries", tags=["Admin - Salaries"])


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@router.get("", response_model=SalaryListResponse)
async def list_salaries(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=255, description="Name or e-mail contains"),
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
    salary_min: Optional[Decimal] = Query(None, ge=0, description="Minimum reference amount"),
    salary_max: Optional[Decimal] = Query(None, ge=0, description="Maximum reference amount"),
    sort_by: str = Query("created_at"),
    sort_direction: str = Query("desc"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Paginated, filterable salary table."""
    rows, total = await search_salaries(db, SalarySearch(
        page=page,
        page_size=page_size,
        search=search,
        currency=currency,
        salary_min=salary_min,
        salary_max=salary_max,
        sort_by=sort_by,
        sort_direction=sort_direction,
    ))

    items = [
        AdminSalaryRow(
            **SalaryEntryResponse.model_validate(entry).model_dump(),
            name=subject.name,
            email=subject.email,
            is_active=subject.is_active,
        )
        for entry, subject in rows
    ]
    return SalaryListResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        last_page=max(1, math.ceil(total / page_size)),
    )


@router.get("/statistics", response_model=SalaryStatistics)
async def salary_statistics(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return await SalaryReportingService.get_salary_statistics(db)


@router.post("/bulk-update", response_model=BulkUpdateResponse)
async def bulk_update_salaries(
    payload: BulkUpdateRequest,
    request: Request,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Apply several updates at once.

    Best effort: items that fail are listed in `errors`, the rest are saved.
    """
    items = [
        BulkItem(
            subject_id=update.subject_id,
            changes=SalaryChanges.from_mapping(update.model_dump(exclude_unset=True, exclude={"subject_id"})),
        )
        for update in payload.updates
    ]
    result = await SalaryLedger(db).bulk_update(items, actor_id=admin["user_id"], reason=payload.reason)

    if result.success_count:
        await CacheService.clear()

    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.SALARY_BULK_UPDATED,
        metadata={
            "subject_ids": [item.subject_id for item in items],
            "success_count": result.success_count,
            "failure_count": result.failure_count,
            "reason": payload.reason,
        },
        ip_address=_client_ip(request),
    )

    return BulkUpdateResponse(
        success_count=result.success_count,
        failure_count=result.failure_count,
        errors=result.errors,
    )


@router.get("/{subject_id}", response_model=SalaryEntryResponse)
async def get_salary(
    subject_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    entry = await SalaryLedger(db).get_entry(subject_id)
    return SalaryEntryResponse.model_validate(entry)


@router.put("/{subject_id}", response_model=SalaryEntryResponse)
async def update_salary(
    subject_id: int,
    payload: SalaryUpdateRequest,
    request: Request,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Update one salary entry.

    Only the fields present in the body change; send "commission": null
    to fall back to the active default commission.
    """
    changes = payload.model_dump(exclude_unset=True)
    reason = changes.pop("reason", None)

    entry = await SalaryLedger(db).update(
        subject_id,
        SalaryChanges.from_mapping(changes),
        actor_id=admin["user_id"],
        reason=reason,
    )
    await CacheService.clear()

    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.SALARY_UPDATED,
        target_user_id=subject_id,
        metadata={
            "changes": payload.model_dump(mode="json", exclude_unset=True, exclude={"reason"}),
            "reason": reason,
        },
        ip_address=_client_ip(request),
    )

    return SalaryEntryResponse.model_validate(entry)


@router.get("/{subject_id}/history", response_model=SalaryHistoryResponse)
async def salary_history(
    subject_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Change history of one subject's salary, newest first."""
    history = await SalaryLedger(db).get_history(subject_id, page=page, page_size=page_size)

    return SalaryHistoryResponse(
        items=[SalaryHistoryItem.model_validate(record) for record in history.items],
        total=history.total,
        page=history.page,
        page_size=history.page_size,
        last_page=history.last_page,
    )
