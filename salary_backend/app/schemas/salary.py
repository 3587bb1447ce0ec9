"""
Salary Schemas.

Amounts are Decimals and serialize as strings ("850.00") so no precision
is lost on the way to the client. Range and precision rules are enforced
by the ledger, which returns the common error envelope.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict
from salary_backend.app.models.salary_enums import SalaryChangeType


class SalarySubmission(BaseModel):
    """Schema for the public salary form."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    local_amount: Decimal = Field(..., description="Salary in the local currency")
    currency_code: str = Field(..., min_length=3, max_length=3, description="3-letter currency code")
    effective_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class SalaryEntryResponse(BaseModel):
    """Schema for displaying a salary entry."""
    id: int
    subject_id: int
    local_amount: Decimal
    local_currency_code: str
    reference_amount: Decimal
    commission: Decimal
    displayed_total: Decimal
    effective_date: date
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SalarySubmissionResponse(BaseModel):
    entry: SalaryEntryResponse
    was_created: bool = Field(..., description="True when this submission created the entry")
    subject_created: bool


class AdminSalaryRow(SalaryEntryResponse):
    """Salary entry with its subject, as shown in the admin table."""
    name: str
    email: str
    is_active: bool


class SalaryListResponse(BaseModel):
    items: List[AdminSalaryRow]
    total: int
    page: int
    page_size: int
    last_page: int


class SalaryUpdateRequest(BaseModel):
    """
    Partial update of a salary entry.

    Omitted fields keep their value. "commission": null resets the
    commission to the active commission policy.
    """
    local_amount: Optional[Decimal] = None
    currency_code: Optional[str] = Field(None, min_length=3, max_length=3)
    commission: Optional[Decimal] = None
    effective_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)
    reason: Optional[str] = Field(None, max_length=255, description="Stored as the change reason")


class BulkUpdateItem(BaseModel):
    subject_id: int
    local_amount: Optional[Decimal] = None
    currency_code: Optional[str] = Field(None, min_length=3, max_length=3)
    commission: Optional[Decimal] = None
    effective_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class BulkUpdateRequest(BaseModel):
    updates: List[BulkUpdateItem] = Field(..., min_length=1)
    reason: Optional[str] = Field(None, max_length=255)


class BulkUpdateResponse(BaseModel):
    success_count: int
    failure_count: int
    errors: List[str]


class SalaryHistoryItem(BaseModel):
    """Schema for one history record, with derived change amounts."""
    id: int
    subject_id: int
    entry_id: int
    old_local_amount: Decimal
    new_local_amount: Decimal
    old_currency_code: str
    new_currency_code: str
    old_reference_amount: Decimal
    new_reference_amount: Decimal
    old_commission: Decimal
    new_commission: Decimal
    old_displayed_total: Decimal
    new_displayed_total: Decimal
    salary_change_amount: Decimal
    commission_change_amount: Decimal
    total_change_amount: Decimal
    change_summary: str
    changed_by: Optional[int]
    change_reason: str
    change_type: SalaryChangeType
    created_at: datetime

    class Config:
        from_attributes = True


class SalaryHistoryResponse(BaseModel):
    items: List[SalaryHistoryItem]
    total: int
    page: int
    page_size: int
    last_page: int


class SalaryStatistics(BaseModel):
    """Aggregates over all entries. Reference amounts are in EUR."""
    total_entries: int
    average_reference_amount: Decimal
    median_reference_amount: Decimal
    min_reference_amount: Decimal
    max_reference_amount: Decimal
    total_commission: Decimal
    average_commission: Decimal
    average_displayed_total: Decimal
    currency_distribution: Dict[str, int]
    history_records: int


class CurrencyRate(BaseModel):
    code: str
    rate_to_reference: Decimal


class CurrencyListResponse(BaseModel):
    reference_currency: str
    currencies: List[CurrencyRate]
