"""
Audit logging service for tracking security events and admin actions.

Salary before/after values live in salary_history. This log answers
"who did what through the API", including logins and commission changes.
"""

from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from salary_backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"

    SALARY_SUBMITTED = "SALARY_SUBMITTED"
    SALARY_UPDATED = "SALARY_UPDATED"
    SALARY_BULK_UPDATED = "SALARY_BULK_UPDATED"

    COMMISSION_UPDATED = "COMMISSION_UPDATED"

    USER_DEACTIVATED = "USER_DEACTIVATED"
    USER_REACTIVATED = "USER_REACTIVATED"
    USER_UPDATED = "USER_UPDATED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_email: Optional[str] = None,
    target_user_id: Optional[int] = None,
    target_email: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log a security or admin event to the audit log.

    Commits its own transaction, so call it after the audited change
    has been committed.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action (None for public submissions)
        actor_email: E-mail of actor
        target_user_id: ID of user being acted upon (if applicable)
        target_email: E-mail of target
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_email=actor_email,
        action=action,
        target_user_id=target_user_id,
        target_email=target_email,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_admin_action(
    db: AsyncSession,
    admin: Dict[str, Any],
    action: str,
    target_user_id: Optional[int] = None,
    target_email: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log an admin action (salary edit, commission change, deactivation).

    Args:
        admin: Token payload of the acting admin (user_id, sub)
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=admin.get("user_id"),
        actor_email=admin.get("sub"),
        target_user_id=target_user_id,
        target_email=target_email,
        metadata=metadata,
        ip_address=ip_address
    )


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    email: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an authentication event (login success/failure, logout).

    Args:
        action: AuditAction.LOGIN_SUCCESS, LOGIN_FAILED or LOGOUT
        user_id: ID of the user, None when the e-mail is unknown
        metadata: Additional context (e.g., failure reason)
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=user_id,
        actor_email=email,
        ip_address=ip_address,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    target_user_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> List[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target_user_id:
        query = query.where(AuditLog.target_user_id == target_user_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
