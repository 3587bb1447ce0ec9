"""
Public Salary API Endpoints.

Unauthenticated salary form. A submission for an e-mail that already has
a salary updates that salary instead of creating a second one.
"""

from decimal import Decimal
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from salary_backend.app.db.session import get_db
from salary_backend.app.domain.salary.currency import EXCHANGE_RATES, REFERENCE_CURRENCY
from salary_backend.app.domain.salary.ledger import SalaryLedger
from salary_backend.app.schemas.salary import (
    SalarySubmission, SalarySubmissionResponse, SalaryEntryResponse,
    CurrencyListResponse, CurrencyRate
)
from salary_backend.app.services.audit import log_event, AuditAction
from salary_backend.app.services.cache import CacheService

router = APIRouter(prefix="/public", tags=["Public"])


@router.post("/salaries", response_model=SalarySubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_salary(
    submission: SalarySubmission,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Submit a salary.

    The commission is never taken from the public form; new entries get
    the active default commission and resubmissions keep theirs.
    """
    result = await SalaryLedger(db).record_submission(
        email=submission.email,
        name=submission.name,
        local_amount=submission.local_amount,
        currency_code=submission.currency_code,
        effective_date=submission.effective_date,
        notes=submission.notes,
    )
    await CacheService.clear()

    entry = result.entry
    await log_event(
        db=db,
        action=AuditAction.SALARY_SUBMITTED,
        target_user_id=entry.subject_id,
        target_email=submission.email.lower(),
        metadata={
            "entry_created": result.entry_created,
            "local_amount": str(entry.local_amount),
            "currency_code": entry.local_currency_code,
        },
        ip_address=request.client.host if request.client else None,
    )

    return SalarySubmissionResponse(
        entry=SalaryEntryResponse.model_validate(entry),
        was_created=result.entry_created,
        subject_created=result.subject_created,
    )


@router.get("/currencies", response_model=CurrencyListResponse)
async def list_currencies():
    """Currencies with a known conversion rate to the reference currency."""
    return CurrencyListResponse(
        reference_currency=REFERENCE_CURRENCY,
        currencies=[
            CurrencyRate(code=code, rate_to_reference=Decimal(rate))
            for code, rate in sorted(EXCHANGE_RATES.items())
        ],
    )
