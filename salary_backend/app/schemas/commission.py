"""
Commission Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List


class CommissionUpdateRequest(BaseModel):
    """Schema for changing the default commission."""
    amount: Decimal = Field(..., description="New default commission in EUR")
    description: Optional[str] = Field(None, max_length=255)


class CommissionPolicyResponse(BaseModel):
    """Schema for displaying a commission policy version."""
    id: int
    amount: Decimal
    description: Optional[str]
    is_active: bool
    created_by: Optional[int]
    created_at: datetime
    deactivated_at: Optional[datetime]

    class Config:
        from_attributes = True


class CommissionHistoryResponse(BaseModel):
    items: List[CommissionPolicyResponse]
    total: int
    page: int
    page_size: int
