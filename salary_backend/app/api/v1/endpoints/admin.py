"""
Admin API Endpoints.

Provides admin-only user management endpoints with audit logging.
Deactivating a user never touches their salary entry.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from salary_backend.app.db.session import get_db
from salary_backend.app.models.enums import UserRole
from salary_backend.app.models.user import User
from salary_backend.app.schemas.admin import (
    UserListResponse, UserListItem, UserStatusRequest, UserUpdateRequest,
    AdminActionResponse, AuditTrailResponse, AuditLogResponse
)
from salary_backend.app.core.guards import require_admin
from salary_backend.app.core.token_revocation import revoke_all_user_tokens, clear_user_token_revocation
from salary_backend.app.services.audit import log_admin_action, AuditAction, get_audit_trail
from salary_backend.app.services.subjects import SubjectDirectory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List all users in the system (admin-only).

    Returns paginated user list with role and status information.
    """
    total = (await db.execute(select(func.count(User.id)))).scalar()

    offset = (page - 1) * page_size
    query = select(User).order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(page_size)
    result = await db.execute(query)
    users = result.scalars().all()

    return UserListResponse(
        users=[UserListItem.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.patch("/users/{user_id}", response_model=UserListItem)
async def update_user(
    user_id: int,
    payload: UserUpdateRequest,
    request: Request,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Rename a user (admin-only).

    Resubmitting the public form never changes a name, so this is the only
    way to correct one. Unchanged names are not audited.
    """
    directory = SubjectDirectory(db)
    target_user = await _get_user_or_404(db, user_id)
    old_name = target_user.name

    target_user = await directory.rename(user_id, payload.name)
    await db.commit()

    if target_user.name != old_name:
        logger.info("User %s renamed by admin %s", target_user.email, admin["user_id"])
        await log_admin_action(
            db=db,
            admin=admin,
            action=AuditAction.USER_UPDATED,
            target_user_id=target_user.id,
            target_email=target_user.email,
            metadata={"old_name": old_name, "new_name": target_user.name},
            ip_address=request.client.host if request.client else None
        )

    return UserListItem.model_validate(target_user)


async def _change_status(
    db: AsyncSession,
    admin: dict,
    user_id: int,
    active: bool,
    reason: Optional[str],
    request: Request
) -> AdminActionResponse:
    """Flip is_active, sync token revocation and audit it. Salary entries are left alone."""
    target_user = await _get_user_or_404(db, user_id)

    if not active:
        if target_user.id == admin["user_id"]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot deactivate yourself"
            )
        if target_user.role == UserRole.ADMIN:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Cannot deactivate another admin user"
            )

    if target_user.is_active == active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"User is already {'active' if active else 'inactive'}"
        )

    target_user.is_active = active
    await db.commit()

    # Deactivation ends open sessions now rather than at token expiry
    if active:
        await clear_user_token_revocation(user_id)
        action, verb = AuditAction.USER_REACTIVATED, "reactivated"
    else:
        await revoke_all_user_tokens(user_id)
        action, verb = AuditAction.USER_DEACTIVATED, "deactivated"

    logger.info("User %s %s by admin %s", target_user.email, verb, admin["user_id"])

    audit_log = await log_admin_action(
        db=db,
        admin=admin,
        action=action,
        target_user_id=target_user.id,
        target_email=target_user.email,
        metadata={"reason": reason} if reason else None,
        ip_address=request.client.host if request.client else None
    )

    return AdminActionResponse(
        success=True,
        message=f"User '{target_user.email}' has been {verb}",
        user_id=user_id,
        action=action,
        audit_log_id=audit_log.id
    )


@router.post("/users/{user_id}/deactivate", response_model=AdminActionResponse)
async def deactivate_user(
    user_id: int,
    payload: UserStatusRequest,
    request: Request,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate a user and revoke all their active tokens (admin-only).

    Admins cannot deactivate themselves or each other.
    """
    return await _change_status(db, admin, user_id, False, payload.reason, request)


@router.post("/users/{user_id}/reactivate", response_model=AdminActionResponse)
async def reactivate_user(
    user_id: int,
    payload: UserStatusRequest,
    request: Request,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Reactivate a user and clear their token revocation (admin-only)."""
    return await _change_status(db, admin, user_id, True, payload.reason, request)


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    user_id: int = Query(None, description="Filter by target user ID"),
    action: str = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Get audit trail with optional filtering (admin-only).
    """
    logs = await get_audit_trail(
        db=db,
        target_user_id=user_id,
        action=action,
        limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
