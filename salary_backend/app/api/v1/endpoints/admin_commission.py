"""
Admin Commission Endpoints.

The default commission applied to new salary entries, and its version history.
Changing it does not touch existing entries.
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from salary_backend.app.db.session import get_db
from salary_backend.app.core.guards import require_admin
from salary_backend.app.domain.salary.commission_policy import CommissionPolicyResolver
from salary_backend.app.schemas.commission import (
    CommissionUpdateRequest, CommissionPolicyResponse, CommissionHistoryResponse
)
from salary_backend.app.services.audit import log_admin_action, AuditAction
from salary_backend.app.services.cache import CacheService

router = APIRouter(prefix="/admin/commission", tags=["Admin - Commission"])


@router.get("", response_model=CommissionPolicyResponse)
async def get_commission(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Active commission policy (the default is created on first access)."""
    policy = await CommissionPolicyResolver(db).get_active_policy()
    await db.commit()
    return CommissionPolicyResponse.model_validate(policy)


@router.put("", response_model=CommissionPolicyResponse)
async def set_commission(
    payload: CommissionUpdateRequest,
    request: Request,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Activate a new default commission. Setting the current amount is a no-op."""
    resolver = CommissionPolicyResolver(db)
    previous = await resolver.get_active_policy()
    previous_id, previous_amount = previous.id, previous.amount

    policy = await resolver.set_active(payload.amount, actor_id=admin["user_id"], description=payload.description)
    await db.commit()
    await CacheService.clear()

    if policy.id != previous_id:
        await log_admin_action(
            db=db,
            admin=admin,
            action=AuditAction.COMMISSION_UPDATED,
            metadata={
                "old_amount": str(previous_amount),
                "new_amount": str(policy.amount),
                "policy_id": policy.id,
            },
            ip_address=request.client.host if request.client else None
        )

    return CommissionPolicyResponse.model_validate(policy)


@router.get("/history", response_model=CommissionHistoryResponse)
async def commission_history(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Every commission version, newest first."""
    policies, total = await CommissionPolicyResolver(db).list_policies(page=page, page_size=page_size)
    return CommissionHistoryResponse(
        items=[CommissionPolicyResponse.model_validate(policy) for policy in policies],
        total=total,
        page=page,
        page_size=page_size,
    )
