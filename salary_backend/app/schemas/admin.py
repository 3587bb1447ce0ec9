"""
Admin API Schema Definitions.

Pydantic schemas for admin user-management endpoints.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from salary_backend.app.models.enums import UserRole


class UserListItem(BaseModel):
    """Schema for user in list response."""
    id: int
    email: str
    name: str
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Schema for list users response."""
    users: List[UserListItem]
    total: int
    page: int
    page_size: int


class UserUpdateRequest(BaseModel):
    """Schema for editing a user's profile."""
    name: str = Field(..., max_length=255, description="New display name")


class UserStatusRequest(BaseModel):
    """Schema for deactivating or reactivating a user."""
    reason: Optional[str] = Field(None, description="Reason (for audit log)")


class AdminActionResponse(BaseModel):
    """Schema for admin action response."""
    success: bool
    message: str
    user_id: int
    action: str
    audit_log_id: int


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor_id: Optional[int]
    actor_email: Optional[str]
    action: str
    target_user_id: Optional[int]
    target_email: Optional[str]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
